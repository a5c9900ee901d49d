"""Script to create the user document tables without running migrations."""

import asyncio

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Create the users collection and its login index."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    await engine.dispose()

    print("✓ Database initialized successfully!")
    for table in metadata.sorted_tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    asyncio.run(init_db())
