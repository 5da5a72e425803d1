"""
Seed data script for the Hatchwatch database.
Populates the animals lookup table used for display labels and cycles.
"""
from sqlalchemy.orm import Session

from hatchwatch.database import SessionLocal
from hatchwatch.models import Animal

ANIMALS = [
    {"id": "chicken", "name": "Chicken", "incubation_days": 21},
    {"id": "duck", "name": "Duck", "incubation_days": 28},
    {"id": "goose", "name": "Goose", "incubation_days": 30},
    {"id": "quail", "name": "Quail", "incubation_days": 17},
    {"id": "turkey", "name": "Turkey", "incubation_days": 28},
    {"id": "guinea_fowl", "name": "Guinea fowl", "incubation_days": 27},
]


def seed_animals(session: Session) -> int:
    """Insert missing animals; existing rows are left as they are."""
    existing = {a.id for a in session.query(Animal.id).all()}
    added = 0
    for row in ANIMALS:
        if row["id"] in existing:
            continue
        session.add(Animal(**row))
        added += 1
    session.commit()
    return added


def seed_database():
    session = SessionLocal()
    try:
        added = seed_animals(session)
        print(f"✓ Seeded {added} animals ({session.query(Animal).count()} total)")
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
