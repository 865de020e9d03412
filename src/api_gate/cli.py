"""Issue an API key straight against the configured database.

Usage:
    api-gate-keygen --name "svc-a"
"""

import argparse
import sys

from .config import Settings
from .database import build_engine, build_session_factory, create_tables, get_redis_client
from .services.api_keys import APIKeyService
from .store.api_keys import APIKeyStore
from .utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="api-gate-keygen", description="Generate a new API key"
    )
    parser.add_argument(
        "--name", default="Initial API Key", help="Name for the API key"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (defaults to DATABASE_URL / settings)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings()
    if args.database_url:
        settings.database_url = args.database_url

    setup_logging("warning")

    engine = build_engine(settings.database_url)
    try:
        create_tables(engine)
        store = APIKeyStore(build_session_factory(engine), get_redis_client(settings.redis_url))
        response = APIKeyService(store).issue(args.name)
    except Exception as e:
        print(f"❌ Failed to create API key: {e}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print("API Key generated successfully!\n")
    print(f"Name: {response.name}")
    print(f"Key:  {response.key}")
    print(f"Created at: {response.created_at:%Y-%m-%d %H:%M:%S}\n")
    print("⚠️  IMPORTANT: Save this key securely. It cannot be retrieved later.")
    print("\nYou can use it like this:")
    print(f'  curl "http://localhost:{settings.port}/hello?api={response.key}"')
    return 0


if __name__ == "__main__":
    sys.exit(main())
