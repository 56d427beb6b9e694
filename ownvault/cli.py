"""
ownvault CLI: entry point for all operations.

Usage:
    ownvault set --as alice "i'm a secret"   # upsert alice's secret
    ownvault get --as alice                  # print alice's secret
    ownvault token alice                     # issue an API bearer token
    ownvault serve                           # start the API server
    ownvault migrate                         # create the postgres schema
    ownvault events -n 20                    # recent write notifications
    ownvault status                          # show configuration and backends
    ownvault version                         # show version
"""

from __future__ import annotations

import argparse
import sys


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ownvault",
        description="ownvault: one secret per identity, readable only by that identity.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # set
    set_parser = subparsers.add_parser("set", help="Create or overwrite your secret")
    set_parser.add_argument("--as", dest="identity", required=True, help="Acting identity")
    set_parser.add_argument(
        "value", nargs="?", help="Secret value (read from stdin when omitted)"
    )

    # get
    get_parser = subparsers.add_parser("get", help="Print your secret")
    get_parser.add_argument("--as", dest="identity", required=True, help="Acting identity")

    # token
    token_parser = subparsers.add_parser("token", help="Issue an API bearer token")
    token_parser.add_argument("identity", help="Identity the token authenticates")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Create the postgres vault_records table")
    migrate_parser.add_argument(
        "--dry-run", action="store_true", help="Print the schema SQL without executing"
    )
    migrate_parser.add_argument(
        "--check", action="store_true", help="Exit 1 if the table is missing"
    )

    # events
    events_parser = subparsers.add_parser("events", help="Show recent write notifications")
    events_parser.add_argument("-n", "--count", type=int, default=10, help="How many to show")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: OWNVAULT_API_PORT)")

    # status
    subparsers.add_parser("status", help="Show system status")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from ownvault import __version__

        print(f"ownvault {__version__}")
        return 0

    if args.command == "set":
        return _cmd_set(args)
    elif args.command == "get":
        return _cmd_get(args)
    elif args.command == "token":
        return _cmd_token(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "events":
        return _cmd_events(args)
    elif args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "status":
        return _cmd_status(args)
    else:
        parser.print_help()
        return 0


def _cmd_set(args: argparse.Namespace) -> int:
    from ownvault import vault

    payload: bytes
    if args.value is not None:
        payload = args.value.encode("utf-8")
    else:
        payload = sys.stdin.buffer.read()

    try:
        vault.set(args.identity, payload)
    except vault.PayloadRejectedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Secret stored for {args.identity}.")
    return 0


def _cmd_get(args: argparse.Namespace) -> int:
    from ownvault import vault

    try:
        value = vault.get(args.identity)
    except vault.SecretNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    sys.stdout.buffer.write(value)
    if sys.stdout.isatty():
        sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()
    return 0


def _cmd_token(args: argparse.Namespace) -> int:
    from ownvault.api.auth import issue_token
    from ownvault.config import get_config

    try:
        print(issue_token(args.identity, get_config().auth_secret))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    try:
        from ownvault.db import schema
    except ImportError:
        print("Error: psycopg2 is required. Install with: pip install ownvault")
        return 1

    if args.dry_run:
        print(schema.schema_sql())
        return 0

    try:
        if args.check:
            ready = schema.schema_ready()
            print(f"{schema.TABLE}: {'present' if ready else 'MISSING'}")
            return 0 if ready else 1
        created = schema.ensure_schema()
    except Exception as e:
        print(f"Error: Schema setup failed: {e}")
        print("Check OWNVAULT_DB_* environment variables and ensure PostgreSQL is running.")
        return 1
    print(f"{'Created' if created else 'Already present'}: {schema.TABLE}")
    return 0


def _cmd_events(args: argparse.Namespace) -> int:
    from ownvault.events import bus
    from ownvault.events.notifier import VAULT_STREAM

    if not bus.EVENT_BUS_ENABLED:
        print("Event bus disabled (EVENT_BUS_ENABLED=false).")
        return 1

    events = bus.read_recent(VAULT_STREAM, count=args.count)
    if not events:
        print("No write notifications.")
        return 0
    for event in events:
        kind = "created" if event["payload"].get("created") else "updated"
        trace = f"  [{event['correlation_id']}]" if event["correlation_id"] else ""
        print(f"{event['timestamp'][:19]}  {event['actor']:<24} {kind}{trace}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install with: pip install ownvault[api]")
        return 1

    from ownvault.config import get_config

    cfg = get_config()
    if not cfg.auth_secret:
        print("Warning: OWNVAULT_AUTH_SECRET is not set; every request will be rejected.")

    port = args.port or cfg.api_port
    print(f"Starting ownvault API on {args.host}:{port}...")
    uvicorn.run("ownvault.api.app:app", host=args.host, port=port)
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    from ownvault import __version__
    from ownvault.config import get_config
    from ownvault.events import bus

    cfg = get_config()
    print(f"ownvault v{__version__}")
    print()

    print(f"  Backend:     {cfg.backend}")
    if cfg.backend == "postgres":
        print(f"  PostgreSQL:  {cfg.db.host}:{cfg.db.port}/{cfg.db.name}")
    else:
        print(f"  Snapshot:    {cfg.snapshot_dir or 'disabled (in-memory only)'}")

    try:
        from ownvault import vault

        print(f"  Records:     {vault.get_store().backend.count()}")
    except Exception as e:
        print(f"  Records:     UNAVAILABLE ({e})")

    if bus.EVENT_BUS_ENABLED:
        print(f"  Event bus:   {cfg.redis.host}:{cfg.redis.port} ({bus.stream_length('vault')} vault events)")
    else:
        print("  Event bus:   disabled")

    print(f"  API auth:    {'configured' if cfg.auth_secret else 'NOT CONFIGURED'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
