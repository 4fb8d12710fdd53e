"""Seed the desk with its initial staff accounts.

Run via: python -m groupdesk.seed
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from groupdesk.database.engine import sync_engine
from groupdesk.models.enums import UserRole
from groupdesk.models.user import User
from groupdesk.modules.auth.passwords import hash_password

DEFAULT_PASSWORD = "groupdesk123"

USERS: list[dict] = [
    {"username": "admin", "role": UserRole.ADMIN, "email": "admin@example.com"},
    {"username": "desk1", "role": UserRole.GROUP_DESK, "email": "desk1@example.com"},
    {"username": "desk2", "role": UserRole.GROUP_DESK, "email": "desk2@example.com"},
    {"username": "rc1", "role": UserRole.ROUTE_CONTROLLER, "email": "rc1@example.com"},
    {"username": "rc2", "role": UserRole.ROUTE_CONTROLLER, "email": "rc2@example.com"},
]


def seed_users(session: Session) -> int:
    """Insert missing users; existing usernames are left untouched."""
    existing = set(session.scalars(select(User.username)).all())
    password_hash = hash_password(DEFAULT_PASSWORD)
    created = 0
    for user in USERS:
        if user["username"] in existing:
            continue
        session.add(User(password_hash=password_hash, enabled=True, **user))
        created += 1
    return created


def main() -> None:
    print("Seeding group desk database...")
    with Session(sync_engine) as session:
        with session.begin():
            created = seed_users(session)
    print(f"  Seeded {created} users.")
    print("Seeding complete.")


if __name__ == "__main__":
    main()
