"""
Command line interface for Rantboard.

Usage:
    rantboard serve [--listen HOST:PORT]
    rantboard init-db
    rantboard check-db
    rantboard reset --yes
    rantboard posts

All output except `serve` is JSON. Exit codes: 0=success, 1=refused, 2=error.
"""
import argparse
import json
import sys
from typing import Any, Dict


def _output(data: Dict[str, Any], exit_code: int = 0):
    """Print JSON output and exit."""
    print(json.dumps(data, indent=2, default=str))
    sys.exit(exit_code)


def cmd_serve(args):
    """Handle serve subcommand."""
    import uvicorn
    from rantboard.config import get_listen_addr
    from rantboard_web.server import app, configure_logging, parse_listen_addr

    configure_logging()
    host, port = parse_listen_addr(args.listen or get_listen_addr())
    uvicorn.run(app, host=host, port=port, log_level="info")


def cmd_init_db(args):
    """Handle init-db subcommand."""
    from rantboard.database import init_db
    init_db()
    _output({"success": True, "message": "Tables created"})


def cmd_check_db(args):
    """Handle check-db subcommand."""
    from rantboard.database import check_connection
    status = check_connection()
    _output(status, exit_code=0 if status.get("status") == "connected" else 2)


def cmd_reset(args):
    """Handle reset subcommand."""
    from rantboard.config import is_dev_mode
    from rantboard.database import reset_db

    if not is_dev_mode():
        _output({"success": False, "error": "Reset is only allowed with DEV_ENV=TRUE"}, exit_code=1)
    if not args.yes:
        _output({"success": False, "error": "Refusing to wipe the store without --yes"}, exit_code=1)

    reset_db()
    _output({"success": True, "message": "Store wiped and recreated"})


def cmd_posts(args):
    """Handle posts subcommand."""
    from rantboard.services import list_posts
    posts = list_posts()
    _output({"count": len(posts), "posts": posts})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rantboard",
        description="Rantboard: a small discussion board",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--listen", help="Listen address (default: LISTEN_ADDR or config)")
    serve_parser.set_defaults(func=cmd_serve)

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    check_parser = subparsers.add_parser("check-db", help="Check the database connection")
    check_parser.set_defaults(func=cmd_check_db)

    reset_parser = subparsers.add_parser("reset", help="Wipe the store (development only)")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the wipe")
    reset_parser.set_defaults(func=cmd_reset)

    posts_parser = subparsers.add_parser("posts", help="List posts, newest first")
    posts_parser.set_defaults(func=cmd_posts)

    return parser


def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        args.func(args)
    except SystemExit:
        raise
    except Exception as e:
        _output({"success": False, "error": str(e)}, exit_code=2)


if __name__ == "__main__":
    main()
