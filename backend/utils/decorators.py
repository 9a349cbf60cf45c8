import logging
from datetime import datetime
from functools import wraps

from flask import g, jsonify, request

from .services import get_access_gateway

from services.auth import Unauthenticated

logger = logging.getLogger(__name__)

# Rate limiting storage (in-memory, resets on restart)
_rate_limit_storage: dict[str, list[float]] = {}


def token_required(role=None):
    """Require a valid access token, optionally with one of the given roles.

    Verified claims are stored on ``g.claims``. Unauthenticated and Forbidden
    propagate to the app's error handlers.

    Args:
        role: Role name or collection of role names allowed to proceed
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            gateway = get_access_gateway()
            g.claims = gateway.authorize_header(
                request.headers.get("Authorization"), required_role=role
            )
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def token_optional(f):
    """Attach verified claims to ``g.claims`` when a usable access token is sent.

    A missing or unusable token leaves ``g.claims`` as None so the route stays public.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.claims = None
        header = request.headers.get("Authorization")
        if header:
            try:
                g.claims = get_access_gateway().authorize_header(header)
            except Unauthenticated as e:
                logger.debug(f"Ignoring unusable token on public route: {e.reason}")
        return f(*args, **kwargs)

    return decorated_function


def rate_limit(max_calls: int = 5, window_seconds: int = 60):
    """Simple rate limiting decorator.

    Authenticated callers are keyed by subject, anonymous ones by remote address.

    Args:
        max_calls: Maximum number of calls allowed
        window_seconds: Time window in seconds
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            claims = g.get("claims")
            caller = claims.subject if claims else (request.remote_addr or "unknown")

            # Use caller + endpoint as key
            key = f"{caller}:{f.__name__}"
            now = datetime.now().timestamp()

            _drop_idle_callers(f.__name__, now, window_seconds)
            recent = [
                timestamp
                for timestamp in _rate_limit_storage.get(key, [])
                if now - timestamp < window_seconds
            ]

            # Check rate limit
            if len(recent) >= max_calls:
                _rate_limit_storage[key] = recent
                logger.warning(f"Rate limit exceeded for {caller} on {f.__name__}")
                return jsonify(
                    {
                        "error": f"Rate limit exceeded. Maximum {max_calls} requests per {window_seconds} seconds."
                    }
                ), 429

            # Record this call
            recent.append(now)
            _rate_limit_storage[key] = recent

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def _drop_idle_callers(endpoint: str, now: float, window_seconds: int) -> None:
    """Forget callers of an endpoint with no calls left inside the window."""
    suffix = f":{endpoint}"
    idle = [
        key
        for key, timestamps in _rate_limit_storage.items()
        if key.endswith(suffix) and all(now - t >= window_seconds for t in timestamps)
    ]
    for key in idle:
        del _rate_limit_storage[key]
