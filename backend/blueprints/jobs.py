import logging
import math
from datetime import datetime

from flask import Blueprint, g, jsonify, request

from services.auth import ADMIN_ROLE
from services.discovery import SORT_RANKED, PageRequest, SearchFilter
from services.discovery.models import parse_timestamp
from services.jobs import OWNER_STATUSES
from utils.decorators import token_optional, token_required
from utils.services import get_access_gateway, get_discovery_index, get_posting_service

logger = logging.getLogger(__name__)
jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")

EMPLOYER_ROLE = "employer"
POSTING_ROLES = (EMPLOYER_ROLE, ADMIN_ROLE)

_STATUS_MESSAGES = {
    "active": "Job activated successfully",
    "paused": "Job paused successfully",
    "closed": "Job closed successfully",
}

# Fields never shown to the public
_PRIVATE_FIELDS = ("is_deleted", "relevance", "tier_rank", "search_vector")


def _public_posting(posting: dict, reveal_salary: bool = False) -> dict:
    """Project a posting for display, hiding salary when the employer opted out.

    The owner always sees the salary (reveal_salary=True).
    """
    result = {}
    for key, value in posting.items():
        if key in _PRIVATE_FIELDS:
            continue
        result[key] = value.isoformat() if isinstance(value, datetime) else value

    if not reveal_salary and not posting.get("salary_visible", True):
        result["salary_min"] = None
        result["salary_max"] = None
    return result


def _search_filter_from_args(args) -> SearchFilter:
    return SearchFilter(
        text=args.get("q") or args.get("text") or None,
        city=args.get("city") or None,
        status=args.get("status") or None,
        category=args.get("category") or None,
        job_type=args.get("job_type") or None,
        employer_id=args.get("employer_id") or None,
        posted_after=parse_timestamp(args.get("posted_after")),
        posted_before=parse_timestamp(args.get("posted_before")),
        min_salary=args.get("min_salary", type=float),
        max_salary=args.get("max_salary", type=float),
    )


def _page_metadata(total: int, page_number: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page_number,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }

def _load_owned_posting(posting_id: str):
    """Fetch a live posting and check the caller may modify it.

    Returns:
        Tuple of (posting, None) or (None, error response)
    """
    posting_service = get_posting_service()
    posting = posting_service.get_posting(posting_id)
    if not posting or posting.get("is_deleted"):
        return None, (jsonify({"error": f"Job {posting_id} not found"}), 404)

    get_access_gateway().authorize_header(
        request.headers.get("Authorization"),
        required_role=POSTING_ROLES,
        resource_owner_id=posting["employer_id"],
    )
    return posting, None


@jobs_bp.route("", methods=["GET"])
def api_search_jobs():
    """Public ranked search over active postings."""
    filters = _search_filter_from_args(request.args)
    sort = request.args.get("sort", SORT_RANKED)
    page_number = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)
    page = PageRequest.for_page(page_number, limit)

    discovery_index = get_discovery_index()
    jobs = discovery_index.search(filters, sort=sort, page=page)
    total = discovery_index.count(filters)

    return jsonify(
        {
            "jobs": [_public_posting(job) for job in jobs],
            **_page_metadata(total, page_number, limit),
        }
    ), 200


@jobs_bp.route("/employer/my-jobs", methods=["GET"])
@token_required(EMPLOYER_ROLE)
def api_my_jobs():
    """List the signed-in employer's postings in any status."""
    page_number = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)
    page = PageRequest.for_page(page_number, limit)

    jobs, total = get_posting_service().list_employer_postings(
        g.claims.subject,
        status=request.args.get("status") or None,
        page=page,
        sort_by=request.args.get("sort_by", "posted_at"),
        sort_order=request.args.get("sort_order", "desc"),
    )

    return jsonify(
        {
            "jobs": [_public_posting(job, reveal_salary=True) for job in jobs],
            **_page_metadata(total, page_number, limit),
        }
    ), 200


@jobs_bp.route("/<posting_id>", methods=["GET"])
@token_optional
def api_get_job(posting_id: str):
    """Get a single posting. Deleted postings are not found.

    Every view except the owner's own is counted.
    """
    posting_service = get_posting_service()
    posting = posting_service.get_posting(posting_id)
    if not posting or posting.get("is_deleted"):
        return jsonify({"error": f"Job {posting_id} not found"}), 404

    is_owner = g.claims is not None and g.claims.subject == str(posting["employer_id"])
    if not is_owner:
        view_count = posting_service.increment_view_count(posting_id)
        if view_count is not None:
            posting["view_count"] = view_count

    response = jsonify({"job": _public_posting(posting, reveal_salary=is_owner)})
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    return response, 200


@jobs_bp.route("", methods=["POST"])
@token_required(POSTING_ROLES)
def api_create_job():
    """Publish a posting for the signed-in employer."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    employer_id = g.claims.subject
    # Admins may publish on behalf of an employer
    if g.claims.role == ADMIN_ROLE and data.get("employer_id"):
        employer_id = str(data["employer_id"])

    fields = {k: v for k, v in data.items() if k != "employer_id"}
    posting = get_posting_service().create_posting(employer_id, fields)
    return jsonify({"message": "Job created successfully", "job": _public_posting(posting)}), 201


@jobs_bp.route("/<posting_id>", methods=["PUT"])
@token_required(POSTING_ROLES)
def api_update_job(posting_id: str):
    """Update a posting owned by the signed-in employer."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "No data provided"}), 400

    _, error = _load_owned_posting(posting_id)
    if error:
        return error

    posting = get_posting_service().update_posting(posting_id, data)
    if not posting:
        return jsonify({"error": f"Job {posting_id} not found"}), 404
    return jsonify({"message": "Job updated successfully", "job": _public_posting(posting)}), 200


@jobs_bp.route("/<posting_id>/status", methods=["PATCH"])
@token_required(POSTING_ROLES)
def api_update_job_status(posting_id: str):
    """Pause, resume or close a posting owned by the signed-in employer."""
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if status not in OWNER_STATUSES:
        return jsonify({"error": f"Status must be one of: {', '.join(OWNER_STATUSES)}"}), 400

    _, error = _load_owned_posting(posting_id)
    if error:
        return error

    posting = get_posting_service().set_status(posting_id, status)
    if not posting:
        return jsonify({"error": f"Job {posting_id} not found"}), 404
    return jsonify(
        {"message": _STATUS_MESSAGES[status], "job": _public_posting(posting, reveal_salary=True)}
    ), 200


@jobs_bp.route("/<posting_id>", methods=["DELETE"])
@token_required(POSTING_ROLES)
def api_delete_job(posting_id: str):
    """Soft-delete a posting owned by the signed-in employer."""
    _, error = _load_owned_posting(posting_id)
    if error:
        return error

    get_posting_service().soft_delete(posting_id)
    logger.info(f"Posting {posting_id} deleted by {g.claims.subject}")
    return jsonify({"message": "Job deleted successfully"}), 200
