#!/usr/bin/env python3
"""
Inspect a bearer token without trusting it.

Prints the token's claims without checking the signature, whether it is
expired, and (when the signing secrets are configured) whether it verifies.

Usage:
    python scripts/inspect_token.py TOKEN [--verify]
"""

import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from services.auth import TokenError, TokenService  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode and inspect a bearer token")
    parser.add_argument("token", help="Encoded token")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Also verify the signature with JWT_SECRET / JWT_REFRESH_SECRET",
    )
    args = parser.parse_args()

    env_name = os.getenv("ENVIRONMENT", "development")
    env_file = repo_root / f".env.{env_name}"
    load_dotenv(env_file if env_file.exists() else repo_root / ".env")

    token_service = TokenService(
        access_secret=os.getenv("JWT_SECRET"),
        refresh_secret=os.getenv("JWT_REFRESH_SECRET"),
        algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
    )

    claims = token_service.decode_unsafe(args.token)
    if claims is None:
        print("Token could not be decoded", file=sys.stderr)
        return 1

    print(json.dumps(claims, indent=2, sort_keys=True, default=str))
    print(f"expired: {token_service.is_expired(args.token)}")

    if args.verify:
        try:
            verified = token_service.verify(args.token)
        except TokenError as e:
            print(f"verified: no ({e.reason}: {e})")
            return 2
        print(f"verified: yes (subject={verified.subject}, role={verified.role}, kind={verified.kind})")

    return 0


if __name__ == "__main__":
    sys.exit(main())
