#!/usr/bin/env python3
"""
Set up the database schema.
Run this once to create all tables and indexes.

Usage:
    python scripts/setup_database.py            # print the SQL
    python scripts/setup_database.py --apply    # run it against DATABASE_URL

The deadline column type follows DEADLINE_UNIT (date or datetime).
For production, you may want to run the SQL directly in the Supabase
SQL editor for more control.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from briefmate.config import get_settings
from briefmate.db import INDEXES_SQL, check_table_exists, get_postgres_connection, render_schema


def print_schema(schema_sql: str):
    """Print the schema SQL for manual execution."""
    print("=" * 60)
    print("DATABASE SCHEMA")
    print("=" * 60)
    print("\nCopy and paste this SQL into Supabase SQL Editor:\n")
    print("-" * 60)
    print(schema_sql)
    print("-" * 60)
    print("\nINDEXES:")
    print("-" * 60)
    print(INDEXES_SQL)
    print("-" * 60)


def apply_schema(schema_sql: str):
    """Execute schema and indexes in one transaction."""
    conn = get_postgres_connection()
    try:
        with conn:
            with conn.cursor() as cur:
                cur.execute(schema_sql)
                cur.execute(INDEXES_SQL)

        for table in ("owners", "clients", "briefs"):
            status = "ok" if check_table_exists(conn, table) else "MISSING"
            print(f"  {table:10} {status}")
    finally:
        conn.close()


def main():
    parser = argparse.ArgumentParser(description="BriefMate database setup")
    parser.add_argument("--apply", action="store_true", help="Execute the SQL against DATABASE_URL")
    args = parser.parse_args()

    settings = get_settings()
    schema_sql = render_schema(settings.deadline_unit)

    print("BriefMate - Database Setup")
    print("=" * 40)
    print(f"Deadline unit: {settings.deadline_unit}")
    print()

    if not args.apply:
        print_schema(schema_sql)
        print()
        print("Next steps:")
        print("1. Go to your Supabase project dashboard")
        print("2. Open the SQL Editor")
        print("3. Paste the schema SQL above and run it")
        print("   (or re-run this script with --apply)")
        return

    apply_schema(schema_sql)
    print("\nSchema applied.")


if __name__ == "__main__":
    main()
