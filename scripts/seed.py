import asyncio
import logging
import sys

from categories.category_repo import CategoryRepo
from settings.db import close_db, init_db
from settings.logging_config import configure_logging
from utils.periods import to_iso, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
	{"name": "Food", "color": "#f87171"},
	{"name": "Transport", "color": "#60a5fa"},
	{"name": "Entertainment", "color": "#fbbf24"},
	{"name": "Utilities", "color": "#34d399"},
]


async def seed_global_categories(repo: CategoryRepo) -> int:
	"""Insert any missing default categories (no owner, so visible to everyone)."""
	created = 0
	for category in DEFAULT_CATEGORIES:
		existing = [c for c in await repo.find_by_name(None, category["name"]) if not c.get("user_id")]
		if existing:
			continue
		now = to_iso(utcnow())
		await repo.insert({**category, "created_at": now, "updated_at": now})
		created += 1
	return created


async def main() -> None:
	db = await init_db()  # also applies the schema and its indexes
	try:
		created = await seed_global_categories(CategoryRepo(db))
		logger.info(f"Seed completed: {created} global categories created")
	finally:
		await close_db()


if __name__ == "__main__":
	configure_logging()
	try:
		asyncio.run(main())
	except Exception:
		logger.exception("Seed failed")
		sys.exit(1)
