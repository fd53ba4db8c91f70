from datetime import timedelta

from sqlmodel import Session, select

from clock import Calendar, load_calendar
from db import engine
from models import Standup, User
from store import to_storage

SAMPLE_USERS = [
    ("testuser", "test@example.com"),
    ("johndoe", "john@example.com"),
    ("janedoe", "jane@example.com"),
]


def sample_standups(user: User, calendar: Calendar) -> list[Standup]:
    """Today, yesterday and three days ago, backdated past the ledger on purpose."""
    now = calendar.now()
    samples = [
        (now, "worked on setting up the API", "will implement authentication", "None"),
        (now - timedelta(days=1), "planned the sprint", "worked on setting up the API", "Waiting on design review"),
        (now - timedelta(days=3), "onboarding", "planned the sprint", "No blockers"),
    ]
    return [
        Standup(
            user_id=user.id,
            yesterday=f"{user.username} {yesterday}",
            today=f"{user.username} {today}",
            blockers=blockers,
            created_at=to_storage(created_at),
            day_bucket=calendar.day_bucket(created_at),
        )
        for created_at, yesterday, today, blockers in samples
    ]


def seed_database(calendar: Calendar | None = None):
    """Seed the database with sample data."""
    calendar = calendar or load_calendar()
    with Session(engine) as session:
        # Check if data already exists
        existing = session.exec(select(User)).first()
        if existing:
            print("Database already has data, skipping seed.")
            return

        users = [User(username=username, email=email) for username, email in SAMPLE_USERS]
        session.add_all(users)
        session.commit()
        for user in users:
            session.refresh(user)

        standups = [standup for user in users for standup in sample_standups(user, calendar)]
        session.add_all(standups)
        session.commit()
        print(f"Seeded database with {len(users)} users and {len(standups)} sample standups.")


if __name__ == "__main__":
    from db import create_db_and_tables

    create_db_and_tables()
    seed_database()
