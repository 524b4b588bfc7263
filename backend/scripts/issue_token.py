"""CLI script that prints a development bearer token for the local API.
Usage: python scripts/issue_token.py [--subject NAME] [--scope SCOPE ...] [--minutes N]
"""
import sys
import argparse
import pathlib
from typing import List, Optional
# Ensure `backend/` is on sys.path so `userapi` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from userapi.auth import SCOPE_READ, SCOPE_WRITE, create_access_token


def main(subject: str, scopes: List[str], minutes: Optional[int] = None):
    """Sign a token with the configured shared secret and print it.

    Tokens for deployed environments come from the real issuer; this is
    only for trying the API locally, e.g. with curl or the Swagger UI.
    """
    print(create_access_token(subject, scopes, expires_minutes=minutes))


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--subject', default='dev', help='Value of the `sub` claim')
    parser.add_argument('--scope', action='append', dest='scopes', help='Scope to grant (repeatable)')
    parser.add_argument('--minutes', type=int, help='Lifetime in minutes (default JWT_EXPIRE_MINUTES)')
    args = parser.parse_args()
    main(args.subject, args.scopes or [SCOPE_READ, SCOPE_WRITE], minutes=args.minutes)
