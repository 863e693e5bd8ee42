"""
Merit Badge Counselor Backend — Merit Badge Catalog Seed
=========================================================

What:  Fills the `merit_badges` table with the official badge names.
Why:   The API never writes the catalog; the form can only offer (and the
       writer can only resolve) badges that exist here.
How:   Inserts every name not yet present. Running it twice is harmless.

Usage (from backend/, after `alembic upgrade head`):
    python -m scripts.seed_merit_badges
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Iterable

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import select

from counselor.database import Database
from counselor.models.merit_badge import MeritBadge

logger = logging.getLogger("counselor.seed")

MERIT_BADGES = [
    "American Business", "American Cultures", "American Heritage", "American Labor",
    "Animal Science", "Animation", "Archaeology", "Archery", "Architecture", "Art",
    "Astronomy", "Athletics", "Automotive Maintenance", "Aviation", "Backpacking",
    "Basketry", "Bird Study", "Bugling", "Camping", "Canoeing", "Chemistry",
    "Chess", "Citizenship in Society", "Citizenship in the Community",
    "Citizenship in the Nation", "Citizenship in the World", "Climbing",
    "Coin Collecting", "Collections", "Communication", "Composite Materials",
    "Cooking", "Crime Prevention", "Cycling", "Dentistry", "Digital Technology",
    "Disabilities Awareness", "Dog Care", "Drafting", "Electricity", "Electronics",
    "Emergency Preparedness", "Energy", "Engineering", "Entrepreneurship",
    "Environmental Science", "Exploration", "Family Life", "Farm Mechanics",
    "Fingerprinting", "Fire Safety", "First Aid", "Fish and Wildlife Management",
    "Fishing", "Fly Fishing", "Forestry", "Game Design", "Gardening", "Genealogy",
    "Geocaching", "Geology", "Golf", "Graphic Arts", "Hiking", "Home Repairs",
    "Horsemanship", "Indian Lore", "Insect Study", "Inventing", "Journalism",
    "Kayaking", "Landscape Architecture", "Law", "Leatherwork", "Lifesaving",
    "Mammal Study", "Medicine", "Metalwork", "Mining in Society", "Model Design and Building",
    "Motorboating", "Moviemaking", "Music", "Nature", "Nuclear Science",
    "Oceanography", "Orienteering", "Painting", "Personal Fitness",
    "Personal Management", "Pets", "Photography", "Pioneering", "Plant Science",
    "Plumbing", "Pottery", "Programming", "Public Health", "Public Speaking",
    "Pulp and Paper", "Radio", "Railroading", "Reading", "Reptile and Amphibian Study",
    "Rifle Shooting", "Robotics", "Rowing", "Safety", "Salesmanship",
    "Scholarship", "Scouting Heritage", "Scuba Diving", "Sculpture",
    "Search and Rescue", "Shotgun Shooting", "Signs, Signals, and Codes",
    "Skating", "Small-Boat Sailing", "Snow Sports", "Soil and Water Conservation",
    "Space Exploration", "Sports", "Stamp Collecting", "Surveying",
    "Sustainability", "Swimming", "Textile", "Theater", "Traffic Safety",
    "Truck Transportation", "Veterinary Medicine", "Water Sports", "Weather",
    "Welding", "Whitewater", "Wilderness Survival", "Wood Carving", "Woodwork",
]


async def seed(database: Database, names: Iterable[str] = MERIT_BADGES) -> int:
    """
    Insert every badge name that is not in the catalog yet.

    Returns: Number of rows inserted.
    """
    wanted = list(dict.fromkeys(names))
    async with database.session() as session:
        result = await session.execute(select(MeritBadge.name))
        existing = set(result.scalars().all())
        missing = [name for name in wanted if name not in existing]
        session.add_all([MeritBadge(name=name) for name in missing])
        await session.commit()
    return len(missing)


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    database = Database()
    try:
        inserted = await seed(database)
        logger.info("Merit badge seed OK: %d inserted, %d total", inserted, len(MERIT_BADGES))
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
