#!/usr/bin/env python3
"""
Admin utilities for managing BriefMate.

Commands:
    python scripts/admin.py stats                     - Show database stats
    python scripts/admin.py owners                    - List recent owners
    python scripts/admin.py resend-verification ID T  - Email a verification link with token T
    python scripts/admin.py delete-owner ID           - Delete an owner with briefs and clients
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from briefmate.config import configure_logging
from briefmate.db import PostgresRepository, get_postgres_connection
from briefmate.errors import BriefMateError
from briefmate.lib import OwnerService, get_notifier


def _count(repo, sql, params=()):
    with repo.conn.cursor() as cur:
        cur.execute(sql, params)
        return cur.fetchone()[0]


def cmd_stats(repo, args):
    """Show database statistics."""
    print("\n📊 Database Statistics")
    print("=" * 40)

    print(f"Owners: {_count(repo, 'SELECT COUNT(*) FROM owners')}")
    print(f"Active subscriptions: {_count(repo, 'SELECT COUNT(*) FROM owners WHERE subscription_active')}")
    print(f"Clients: {_count(repo, 'SELECT COUNT(*) FROM clients')}")

    for status in ("DRAFT", "SUBMITTED", "VALIDATED"):
        count = _count(repo, "SELECT COUNT(*) FROM briefs WHERE status = %s", (status,))
        print(f"Briefs {status.lower():10} {count}")

    validated = _count(repo, "SELECT COUNT(*) FROM briefs WHERE client_validated")
    print(f"Validated by client: {validated}")


def cmd_owners(repo, args):
    """List recent owners."""
    print("\n👤 Recent Owners")
    print("=" * 60)

    for owner in repo.list_owners(limit=args.limit):
        plan = "paid" if owner.subscription.active else "free"
        created = owner.created_at.strftime("%Y-%m-%d") if owner.created_at else ""
        print(f"  [{plan:4}] {owner.email[:30]:30} {owner.language} ({created})")


def cmd_resend_verification(repo, args):
    """Send the verification email again."""
    try:
        OwnerService(repo, get_notifier()).send_verification(args.id, args.token)
    except BriefMateError as e:
        print(f"✗ {e.detail}")
        return
    print(f"✓ Verification email sent to owner {args.id}")


def cmd_delete_owner(repo, args):
    """Delete an owner and everything they own."""
    try:
        OwnerService(repo).delete_owner(args.id)
    except BriefMateError as e:
        print(f"✗ {e.detail}")
        return
    print(f"✓ Owner {args.id} deleted")


def main():
    parser = argparse.ArgumentParser(description="Admin utilities")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Stats command
    subparsers.add_parser("stats", help="Show database statistics")

    # Owners command
    owners_parser = subparsers.add_parser("owners", help="List recent owners")
    owners_parser.add_argument("--limit", type=int, default=20, help="How many to show")

    # Verification command
    resend_parser = subparsers.add_parser("resend-verification", help="Resend verification email")
    resend_parser.add_argument("id", help="Owner ID")
    resend_parser.add_argument("token", help="Verification token issued by the auth provider")

    # Delete command
    delete_parser = subparsers.add_parser("delete-owner", help="Delete an owner")
    delete_parser.add_argument("id", help="Owner ID")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    configure_logging()
    repo = PostgresRepository(get_postgres_connection())

    commands = {
        "stats": cmd_stats,
        "owners": cmd_owners,
        "resend-verification": cmd_resend_verification,
        "delete-owner": cmd_delete_owner,
    }

    try:
        commands[args.command](repo, args)
    finally:
        repo.close()


if __name__ == "__main__":
    main()
