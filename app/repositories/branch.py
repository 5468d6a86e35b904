from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.redis import RedisClient, redis_client
from app.models.branch import Branch

logger = structlog.get_logger(__name__)


class BranchRepository:
    """Branch lookup with an optional Redis read-through cache."""

    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[RedisClient] = None,
        cache_ttl_seconds: Optional[int] = None,
    ):
        self.db = db
        self.cache = cache or redis_client
        self.cache_ttl_seconds = (
            settings.BRANCH_CACHE_TTL_SECONDS
            if cache_ttl_seconds is None
            else cache_ttl_seconds
        )

    @property
    def cache_enabled(self) -> bool:
        return self.cache_ttl_seconds > 0

    async def get_by_id(
        self, branch_id: int, for_update: bool = False
    ) -> Optional[Branch]:
        """Resolve a branch.

        ``for_update`` takes a row lock held until the surrounding transaction
        ends and always reads the database.
        """
        if self.cache_enabled and not for_update:
            snapshot = await self.cache.get_branch(branch_id)
            if snapshot is not None:
                logger.debug("Branch cache hit", branch_id=branch_id)
                return Branch.from_cache(snapshot)

        query = select(Branch).where(Branch.id == branch_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        branch = result.scalar_one_or_none()

        if branch is not None and self.cache_enabled:
            await self.cache.set_branch(
                branch_id, branch.to_cache(), expire=self.cache_ttl_seconds
            )

        return branch
