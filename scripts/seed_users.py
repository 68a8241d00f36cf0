"""
Standalone script to seed the initial roommates.

Inserts each roommate by name with their display color. Existing names are
left untouched unless --update-colors is passed.
"""

import argparse
import os
import sys

from dotenv import load_dotenv
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

# --- Path Setup ---
# This allows the script to import modules from the 'src' directory
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

load_dotenv()

from roommate_schedule.common.config import settings
from roommate_schedule.database.models import Base, Users


INITIAL_USERS = [
    {"name": "Riko", "color": "#BB86FC"},
    {"name": "Narumi", "color": "#03DAC6"},
    {"name": "John", "color": "#CF6679"},
]


def sync_url(async_url: str) -> str:
    """The scripts run synchronously, so swap the asyncpg driver for psycopg2."""
    return async_url.replace("+asyncpg", "+psycopg2")


def seed_users(session, users: list[dict], update_colors: bool) -> None:
    for user in users:
        existing = session.execute(
            select(Users).filter(Users.name == user["name"])
        ).scalars().first()

        if existing is None:
            print(f"Inserting user: {user['name']} with color: {user['color']}")
            session.add(Users(name=user["name"], color=user["color"]))
        elif update_colors and existing.color != user["color"]:
            print(f"Updating color of {user['name']}: {existing.color} -> {user['color']}")
            existing.color = user["color"]
        else:
            print(f"User {user['name']} already exists, skipping.")


def main():
    parser = argparse.ArgumentParser(description="Seed the initial roommates.")
    parser.add_argument("--test", action="store_true", help="Use the test database.")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first.")
    parser.add_argument("--update-colors", action="store_true", help="Reset colors of existing users.")
    parser.add_argument("--add", metavar="NAME", action="append", default=[],
                        help="Also seed this roommate with the default color (repeatable).")
    args = parser.parse_args()

    url = settings.DATABASE_URL_TEST if args.test else settings.DATABASE_URL_PROD
    engine = create_engine(sync_url(url))

    if args.create_tables:
        print("Creating tables...")
        Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    with Session() as session:
        try:
            extra = [{"name": name, "color": settings.DEFAULT_USER_COLOR} for name in args.add]
            seed_users(session, INITIAL_USERS + extra, args.update_colors)
            session.commit()
            print("Seeding complete.")
        except Exception as e:
            session.rollback()
            print(f"Seeding failed, rolled back: {e}")
            raise


if __name__ == "__main__":
    main()
