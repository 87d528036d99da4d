#!/usr/bin/env python3
"""
Account administration for the Parley credential store.

Works directly against the configured store backend (STORE_BACKEND,
USERS_FILE, SQLITE_PATH, REDIS_URL), so the API server does not need
to be running.

Usage:
    python manage_users.py list
    python manage_users.py create --name "Ana" --email ana@example.com --password secret1
    python manage_users.py set-status user_123 disabled
    python manage_users.py reset-password ana@example.com newsecret
    python manage_users.py delete user_123 --yes
"""

import argparse
import asyncio
import sys

from rich.console import Console
from rich.table import Table

from api.dependencies import ServiceContainer
from modules.auth.models import PublicUser, UserStatus
from modules.auth.store import UserStore
from shared.exceptions import ParleyError

console = Console()


def render_users(users: list[PublicUser]) -> None:
    """Print the account table."""
    if not users:
        console.print("[dim]No users found.[/dim]")
        return

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Status")
    table.add_column("Logins", justify="right")
    table.add_column("Last Login")

    for user in users:
        status = user.status.value
        color = "green" if user.status == UserStatus.ACTIVE else "yellow"
        table.add_row(
            user.id,
            user.name,
            user.email,
            f"[{color}]{status}[/{color}]",
            str(user.login_count),
            user.last_login_at.strftime("%Y-%m-%d %H:%M:%S") if user.last_login_at else "",
        )
    console.print(table)


async def run_command(store: UserStore, args: argparse.Namespace) -> int:
    """Execute one subcommand against ``store``; returns the exit code."""
    if args.command == "list":
        render_users(await store.list_users())

    elif args.command == "create":
        user = await store.create(
            {"name": args.name, "email": args.email, "password": args.password}
        )
        console.print(f"[green]✓[/green] Created {user.email} ({user.id})")

    elif args.command == "set-status":
        user = await store.set_status(args.user_id, args.status)
        console.print(f"[green]✓[/green] {user.email} is now {user.status.value}")

    elif args.command == "reset-password":
        await store.reset_password(args.email, args.password)
        console.print(f"[green]✓[/green] Password reset for {args.email}")

    elif args.command == "delete":
        if not args.yes:
            response = input(f"Delete user {args.user_id}? [y/N] ")
            if response.lower() != "y":
                console.print("Aborted.")
                return 1
        await store.delete(args.user_id)
        console.print(f"[green]✓[/green] Deleted {args.user_id}")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage Parley user accounts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List all accounts")

    create = subparsers.add_parser("create", help="Create an account")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--password", required=True)

    status = subparsers.add_parser("set-status", help="Activate, disable or suspend an account")
    status.add_argument("user_id")
    status.add_argument("status", choices=[s.value for s in UserStatus])

    reset = subparsers.add_parser("reset-password", help="Set a new password")
    reset.add_argument("email")
    reset.add_argument("password")

    delete = subparsers.add_parser("delete", help="Delete an account")
    delete.add_argument("user_id")
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    return parser


async def _run(args: argparse.Namespace) -> int:
    container = ServiceContainer()
    await container.startup()
    try:
        return await run_command(container.store, args)
    finally:
        await container.shutdown()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        return asyncio.run(_run(args))
    except ParleyError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
