import argparse
import asyncio

from employee_directory.core.logging_config import setup_logging
from employee_directory.db.seed import CEO, seed_database
from employee_directory.db.session import Database


async def main(include_samples: bool) -> None:
    database = Database.from_settings()
    try:
        # Only creates tables that are missing; Alembic remains the source of truth
        await database.create_all()
        async with database.session() as db:
            counts = await seed_database(db, include_samples=include_samples)
    finally:
        await database.dispose()

    print(f"Seeded: {counts}")
    print(f"CEO login: {CEO['email']} / {CEO['password']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the employee directory database")
    parser.add_argument("--no-samples", action="store_true", help="Only seed reference data and the CEO")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(not args.no_samples))
