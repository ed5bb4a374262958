"""
Command-line entry point for quick checks against a running backend.

    queuedesk login --email a@b.co --password Secret1
    queuedesk whoami
    queuedesk queue
    queuedesk summary --date 2025-01-31
    queuedesk logout

The session is persisted between invocations using the configured session
storage (a JSON file by default).
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from api.main import QueueDeskApp
from core.config import get_settings
from services.exceptions import InputValidationError
from shared.api_errors import ApiError, error_message

logger = logging.getLogger(__name__)


def _dump(value: Any) -> str:
    if isinstance(value, list):
        value = [v.model_dump(mode="json", by_alias=True) for v in value]
    elif hasattr(value, "model_dump"):
        value = value.model_dump(mode="json", by_alias=True)
    return json.dumps(value, indent=2)


async def run_command(args: argparse.Namespace, app: QueueDeskApp) -> Any:
    """Execute one parsed command and return its printable result."""
    if args.command == "login":
        return await app.auth.login(args.email, args.password)
    if args.command == "logout":
        return {"acknowledged": await app.auth.logout()}
    if not app.session.is_authenticated:
        raise InputValidationError("session", "Not signed in; run `queuedesk login` first")
    if args.command == "whoami":
        return await app.auth.get_current_user()
    if args.command == "queue":
        return await app.queue.get_waiting()
    if args.command == "assign":
        return await app.queue.assign(args.staff_id)
    if args.command == "summary":
        return await app.dashboard.get_summary(args.date)
    if args.command == "staff-load":
        return await app.dashboard.get_staff_load(args.date)
    raise ValueError(f"Unknown command: {args.command}")


async def _main(args: argparse.Namespace) -> int:
    async with QueueDeskApp() as app:
        try:
            result = await run_command(args, app)
        except InputValidationError as e:
            print(e.message, file=sys.stderr)
            return 2
        except ApiError as e:
            print(error_message(e), file=sys.stderr)
            return 1
    print(_dump(result))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queuedesk",
        description="Appointment and queue management client.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in and persist the session")
    login.add_argument("--email", required=True)
    login.add_argument("--password", required=True)

    commands.add_parser("logout", help="Sign out and clear the persisted session")
    commands.add_parser("whoami", help="Show the signed-in user")
    commands.add_parser("queue", help="List appointments waiting for a staff member")

    assign = commands.add_parser("assign", help="Assign the next waiting appointment")
    assign.add_argument("staff_id")

    for name, help_text in (("summary", "Dashboard summary"), ("staff-load", "Staff load")):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("--date", default=None, help="YYYY-MM-DD (default: today)")
    return parser


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
