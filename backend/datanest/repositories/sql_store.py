"""SqlMarketplaceStore — unit of work bundling every repository over one AsyncSession.

Invariants:
    - All repositories share the same session: one commit covers every write of an operation
    - rollback() discards everything written since the last commit

Design Decisions:
    - Composition over a god-repository: each aggregate keeps its own small class
"""

from sqlalchemy.ext.asyncio import AsyncSession

from datanest.repositories.datasets import SqlDatasetRepository
from datanest.repositories.messages import SqlMessageRepository
from datanest.repositories.purchases import SqlPurchaseRepository
from datanest.repositories.requests import SqlProposalRepository, SqlRequestRepository
from datanest.repositories.users import SqlUserRepository


class SqlMarketplaceStore:
    """MarketplaceStore implementation backed by SQLAlchemy."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = SqlUserRepository(db)
        self.datasets = SqlDatasetRepository(db)
        self.requests = SqlRequestRepository(db)
        self.proposals = SqlProposalRepository(db)
        self.purchases = SqlPurchaseRepository(db)
        self.messages = SqlMessageRepository(db)

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
