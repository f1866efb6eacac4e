"""
Product Category Cache - item name -> spending category

Keyed by the normalized item name so "  Leche Entera " and "leche entera"
share one entry. Shared across vendors and invoices.

Cache Strategy:
1. First time seeing an item → Call AI → Cache it
2. Next time (any invoice) → Cache hit → Free & instant
3. Non-informative categories ("Otros", "uncategorized") are never cached,
   so the item is retried on the next invoice

The cache never blocks classification: read failures are a miss and write
failures are a no-op. Both are logged.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from packages.common.database import DatabaseSessionManager
from packages.common.errors import CacheError
from packages.common.metrics import cache_lookups
from packages.common.models import ProductCategory

logger = structlog.get_logger()

NON_INFORMATIVE_CATEGORIES = frozenset({"otros", "uncategorized"})


def normalize_item_name(item_name: str) -> str:
    """Cache key for an item name (trimmed, lowercased)"""
    return (item_name or "").strip().lower()


def is_cacheable(category: Optional[str]) -> bool:
    """True if the category carries information worth caching"""
    if not category or not category.strip():
        return False
    return category.strip().lower() not in NON_INFORMATIVE_CATEGORIES


def _upsert_statement(dialect_name: str, key: str, category: str):
    """INSERT ... ON CONFLICT (product_key) DO UPDATE; the last writer wins"""
    insert = sqlite_insert if dialect_name == "sqlite" else postgresql_insert
    now = datetime.now(timezone.utc)
    stmt = insert(ProductCategory).values(product_key=key, category=category, last_updated=now)
    return stmt.on_conflict_do_update(
        index_elements=[ProductCategory.product_key],
        set_={"category": stmt.excluded.category, "last_updated": stmt.excluded.last_updated},
    )


class CategoryCache:
    """
    Read-through/write-through cache of product categories.

    Entries are never evicted or expired here.
    """

    def __init__(self, sessionmanager: DatabaseSessionManager):
        self.sessionmanager = sessionmanager

    async def get(self, item_name: str) -> Optional[str]:
        """
        Look up the cached category for an item.

        Args:
            item_name: Raw item name from the receipt

        Returns:
            Cached category or None on miss (or when the store is unavailable)
        """
        key = normalize_item_name(item_name)
        if not key:
            return None

        try:
            category = await self._read(key)
        except CacheError as e:
            cache_lookups.labels(result="error").inc()
            logger.warning("cache_read_failed",
                           product_key=key,
                           error=str(e))
            return None

        if category:
            cache_lookups.labels(result="hit").inc()
            logger.debug("cache_hit", product_key=key, category=category)
        else:
            cache_lookups.labels(result="miss").inc()
            logger.debug("cache_miss", product_key=key)
        return category

    async def put(self, item_name: str, category: str) -> bool:
        """
        Store an item's category.

        Args:
            item_name: Raw item name from the receipt
            category: Category to cache

        Returns:
            True if the entry was written
        """
        key = normalize_item_name(item_name)
        if not key or not is_cacheable(category):
            logger.debug("cache_write_skipped", product_key=key, category=category)
            return False

        try:
            await self._write(key, category)
        except CacheError as e:
            logger.warning("cache_write_failed",
                           product_key=key,
                           category=category,
                           error=str(e))
            return False

        logger.info("cache_write", product_key=key, category=category)
        return True

    async def _read(self, key: str) -> Optional[str]:
        try:
            async with self.sessionmanager.session() as db:
                entry = await db.get(ProductCategory, key)
                return entry.category if entry else None
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            raise CacheError(f"Category cache read failed: {e}") from e

    async def _write(self, key: str, category: str) -> None:
        try:
            async with self.sessionmanager.session() as db:
                await db.execute(_upsert_statement(db.bind.dialect.name, key, category))
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            raise CacheError(f"Category cache write failed: {e}") from e
