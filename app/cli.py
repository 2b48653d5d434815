"""Administrative commands: issue and manage API keys.

    sales-admin generate-key "Web frontend" --type frontend --rate-limit 60
    sales-admin manage-key 3 disable
    sales-admin init-db
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ServiceError
from app.database.engine import SessionLocal
from app.models.api_key import KEY_TYPES, ApiKey
from app.services.api_key_service import ApiKeyService
from app.services.rate_limiter import RateLimiter, RedisCounterStore


def _default_limiter() -> RateLimiter:
    return RateLimiter(RedisCounterStore(settings.REDIS_URL))


def _print_table(rows: List[tuple], out) -> None:
    width = max(len(field) for field, _ in rows)
    for field, value in rows:
        print(f"  {field.ljust(width)}  {value}", file=out)


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y %H:%M:%S") if value else "Never"


def _basic_rows(k: ApiKey) -> List[tuple]:
    return [
        ("ID", k.id),
        ("Name", k.name),
        ("Type", k.type),
        ("Status", "active" if k.is_active else "inactive"),
        ("Key", k.masked_key),
    ]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_generate_key(args, service: ApiKeyService, out) -> int:
    if args.type not in KEY_TYPES:
        print(f"Invalid type. Use: {', '.join(KEY_TYPES)}", file=sys.stderr)
        return 1

    metadata = {}
    if args.client:
        metadata["client"] = args.client
    if args.app_version:
        metadata["version"] = args.app_version
    metadata["created_by"] = "cli"
    metadata["created_at"] = datetime.now(timezone.utc).isoformat()

    try:
        issued = service.generate(
            name=args.name,
            key_type=args.type,
            rate_limit_per_minute=args.rate_limit,
            allowed_endpoints=args.endpoint or None,
            metadata=metadata,
        )
    except ServiceError as e:
        print(f"Could not create API key: {e.message}", file=sys.stderr)
        return 1

    k = issued.api_key
    print("API key created.\n", file=out)
    _print_table([
        ("ID", k.id),
        ("Name", k.name),
        ("Type", k.type),
        ("Rate limit", f"{k.rate_limit_per_minute} req/min"),
        ("Endpoints", ", ".join(k.allowed_endpoints) if k.allowed_endpoints else "all"),
        ("Status", "active" if k.is_active else "inactive"),
        ("Created", _fmt_time(k.created_at)),
    ], out)
    print("\nAPI key (store it now, it will not be shown again):", file=out)
    print(issued.raw_key, file=out)
    print(f'\nUsage: curl -H "X-API-Key: {issued.raw_key}" <url>', file=out)
    if k.type == "internal":
        print("\nWARNING: internal key, use it only for service-to-service calls.", file=out)
    return 0


def cmd_manage_key(args, service: ApiKeyService, out) -> int:
    try:
        api_key = service.get(args.id)
    except ServiceError:
        print(f"API key {args.id} not found", file=sys.stderr)
        return 1

    if args.action == "info":
        return _show_info(api_key, service, out)

    enable = args.action == "enable"
    if api_key.is_active == enable:
        print(f"API key '{api_key.name}' is already {'active' if enable else 'inactive'}", file=out)
        return 0

    service.set_active(api_key.id, enable)
    print(f"API key '{api_key.name}' {'enabled' if enable else 'disabled'}", file=out)
    if not enable and api_key.type == "internal":
        print("WARNING: service-to-service calls using this key will now fail", file=out)
    _print_table(_basic_rows(api_key), out)
    return 0


def _show_info(k: ApiKey, service: ApiKeyService, out) -> int:
    rows = _basic_rows(k) + [
        ("Prefix", k.key_prefix),
        ("Rate limit", f"{k.rate_limit_per_minute} requests/minute"),
        ("Total requests", f"{k.total_requests:,}"),
        ("Last used", _fmt_time(k.last_used_at)),
        ("Created", _fmt_time(k.created_at)),
        ("Updated", _fmt_time(k.updated_at)),
    ]
    _print_table(rows, out)

    if k.allowed_endpoints:
        print("\nAllowed endpoints:", file=out)
        for pattern in k.allowed_endpoints:
            print(f"  - {pattern}", file=out)
    else:
        print("\nAccess to all endpoints", file=out)

    if k.metadata_:
        print("\nMetadata:", file=out)
        for key, value in k.metadata_.items():
            print(f"  - {key}: {value}", file=out)

    used = service.current_usage(k)
    if used is not None:
        remaining = max(0, k.rate_limit_per_minute - used)
        print("\nRate limit (this minute):", file=out)
        print(f"  - used: {used}/{k.rate_limit_per_minute}", file=out)
        print(f"  - remaining: {remaining}", file=out)
    return 0


def cmd_init_db(args, service, out) -> int:
    from app.database.session import init_db

    init_db()
    print("Tables created.", file=out)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sales-admin", description="Sales service administration")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate-key", help="Generate a new API key")
    gen.add_argument("name", help="Descriptive name for the key")
    gen.add_argument("--type", default="frontend", help="frontend, internal or admin")
    gen.add_argument("--rate-limit", type=int, default=None, help="Requests per minute")
    gen.add_argument("--endpoint", action="append", help="Allowed endpoint glob (repeatable)")
    gen.add_argument("--client", help="Client name stored in metadata")
    gen.add_argument("--app-version", help="Application version stored in metadata")
    gen.set_defaults(handler=cmd_generate_key)

    manage = sub.add_parser("manage-key", help="Enable, disable or inspect an API key")
    manage.add_argument("id", type=int)
    manage.add_argument("action", choices=["enable", "disable", "info"])
    manage.set_defaults(handler=cmd_manage_key)

    init = sub.add_parser("init-db", help="Create database tables (development)")
    init.set_defaults(handler=cmd_init_db)

    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    limiter_factory: Callable[[], RateLimiter] = _default_limiter,
    out=None,
) -> int:
    args = build_parser().parse_args(argv)
    out = out or sys.stdout

    if args.handler is cmd_init_db:
        return cmd_init_db(args, None, out)

    db = session_factory()
    try:
        return args.handler(args, ApiKeyService(db, limiter_factory()), out)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
