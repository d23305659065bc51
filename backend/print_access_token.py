"""Print a provider access token to stdout.

Usage:
    python -m backend.print_access_token <provider_id> [expires_minutes]
"""
import sys

from backend.auth.jwt_handler import create_access_token
from backend.database import SessionLocal
from backend.models import availability  # noqa: F401
from backend.models.provider import Provider


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(__doc__.strip(), file=sys.stderr)
        sys.exit(2)

    provider_id = args[0]
    expires_minutes = int(args[1]) if len(args) > 1 else None

    db = SessionLocal()
    try:
        provider = db.query(Provider).filter(Provider.id == provider_id).first()
    finally:
        db.close()

    if provider is None:
        print(f"Provider {provider_id} not found.", file=sys.stderr)
        sys.exit(1)

    print(create_access_token(subject=provider.id, expires_minutes=expires_minutes))


if __name__ == "__main__":
    main()
