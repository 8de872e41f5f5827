"""dealdocs CLI - operator commands for the document engine.

Usage:
    dealdocs init-db
    dealdocs audit [--migrate] [--repair] [--dry-run] [--workers N]
    dealdocs resolve --path PATH [--name NAME] [--deal-id ID]
    dealdocs move --document-id ID --to-deal ID --reason TEXT
    dealdocs serve [--host HOST] [--port PORT]

Configuration is read from DEALDOCS_* environment variables (see
dealdocs.config and dealdocs.persistence.db). All commands print JSON to
stdout; logs go to stderr.

Exit codes:
    0: Success / audit clean / path resolved
    1: Internal error / audit aborted
    2: Problems found / path unresolved / request rejected
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from dealdocs.engine import DocumentEngine
from dealdocs.errors import AuditAbortedError, ConfigError, DocumentEngineError
from dealdocs.persistence.db import get_engine, is_database_configured
from dealdocs.persistence.migrate import get_current_revision, run_upgrade

logger = logging.getLogger(__name__)


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2, default=str))


def _make_error_result(
    code: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create an error payload."""
    return {"error": {"code": code, "message": message, "details": details or {}}}


def cmd_init_db(args: argparse.Namespace) -> int:
    """Run database migrations to head."""
    if not is_database_configured():
        _output_json(
            _make_error_result(
                "DATABASE_NOT_CONFIGURED", "Set DEALDOCS_DATABASE_URL to initialize a database"
            )
        )
        return 2

    engine = get_engine()
    run_upgrade(engine)
    _output_json({"revision": get_current_revision(engine), "status": "ok"})
    return 0


def cmd_audit(args: argparse.Namespace) -> int:
    """Run the audit & repair runner and print the report."""
    engine = DocumentEngine.from_env()
    runner = engine.audit_runner(workers=args.workers)
    try:
        report = runner.run(migrate=args.migrate, repair=args.repair, dry_run=args.dry_run)
    except AuditAbortedError as e:
        _output_json(e.report.to_dict())
        return 1

    _output_json(report.to_dict())
    return 2 if report.has_findings else 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve a recorded path and print diagnostics."""
    engine = DocumentEngine.from_env()
    diagnostics = engine.resolver.diagnostics(args.path, args.name, deal_id=args.deal_id)
    _output_json(diagnostics)
    return 0 if diagnostics["resolution"]["found"] else 2


def cmd_move(args: argparse.Namespace) -> int:
    """Move a document to another deal."""
    engine = DocumentEngine.from_env()
    move = engine.guard.move(args.document_id, args.to_deal, args.reason)
    _output_json({"move": move.model_dump(mode="json")})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the document API."""
    from dealdocs.api.main import create_app

    app = create_app(DocumentEngine.from_env())

    import uvicorn

    uvicorn.run(app, host=args.host, port=args.port, log_level="info")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dealdocs",
        description="dealdocs - document storage & resolution engine CLI",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init-db", help="Run database migrations")

    # audit command
    audit_parser = subparsers.add_parser("audit", help="Audit document storage health")
    audit_parser.add_argument(
        "--migrate", action="store_true", help="Promote filesystem documents to database storage"
    )
    audit_parser.add_argument(
        "--repair", action="store_true", help="Rewrite broken paths on high/medium confidence"
    )
    audit_parser.add_argument(
        "--dry-run", action="store_true", help="Report changes without writing them"
    )
    audit_parser.add_argument(
        "--workers", type=int, default=None, metavar="N", help="Worker pool size"
    )

    # resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Resolve a recorded document path")
    resolve_parser.add_argument("--path", required=True, help="Recorded file path")
    resolve_parser.add_argument("--name", default=None, help="Display file name")
    resolve_parser.add_argument("--deal-id", type=int, default=None, help="Owning deal id")

    # move command
    move_parser = subparsers.add_parser("move", help="Move a document to another deal")
    move_parser.add_argument("--document-id", type=int, required=True)
    move_parser.add_argument("--to-deal", type=int, required=True)
    move_parser.add_argument("--reason", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Serve the document API")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000, help="Port to listen on (default: 8000)"
    )

    return parser


COMMANDS = {
    "init-db": cmd_init_db,
    "audit": cmd_audit,
    "resolve": cmd_resolve,
    "move": cmd_move,
    "serve": cmd_serve,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected) / audit aborted
        2: Problems found / request rejected
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except DocumentEngineError as e:
        _output_json(_make_error_result(e.code, e.message, e.details))
        return 2
    except ConfigError as e:
        _output_json(_make_error_result("CONFIG_ERROR", str(e)))
        return 2
    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        logger.exception("Command %s failed", args.command)
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
