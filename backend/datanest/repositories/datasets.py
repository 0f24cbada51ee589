"""Dataset repository — catalogue listing, download counter, delisting."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datanest.core.domain_types import ALL_CATEGORIES
from datanest.models.dataset import Dataset


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _matches_search(dataset: Dataset, needle: str) -> bool:
    return (
        needle in dataset.title.lower()
        or needle in dataset.description.lower()
        or any(needle in str(tag).lower() for tag in (dataset.tags or []))
    )


class SqlDatasetRepository:
    """DatasetRepository over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Dataset:
        dataset = Dataset(**data)
        self.db.add(dataset)
        await self.db.flush()
        return dataset

    async def get(self, dataset_id: uuid.UUID) -> Dataset | None:
        return await self.db.get(Dataset, dataset_id)

    async def list_available(
        self,
        category: str | None = None,
        file_format: str | None = None,
        search: str | None = None,
    ) -> list[Dataset]:
        """Available datasets, newest first. Search spans title, description and tags."""
        query = (
            select(Dataset)
            .where(Dataset.is_available.is_(True))
            .order_by(Dataset.created_at.desc())
        )
        if category and category != ALL_CATEGORIES:
            query = query.where(Dataset.category == category)
        if file_format:
            query = query.where(Dataset.format == file_format)
        result = await self.db.execute(query)
        datasets = list(result.scalars().all())
        if search:
            needle = search.strip().lower()
            datasets = [d for d in datasets if _matches_search(d, needle)]
        return datasets

    async def list_by_seller(self, seller_id: uuid.UUID) -> list[Dataset]:
        result = await self.db.execute(
            select(Dataset)
            .where(Dataset.seller_id == seller_id)
            .order_by(Dataset.created_at.desc()),
        )
        return list(result.scalars().all())

    async def increment_downloads(self, dataset_id: uuid.UUID) -> None:
        await self.db.execute(
            update(Dataset)
            .where(Dataset.id == dataset_id)
            .values(downloads=Dataset.downloads + 1, updated_at=_now()),
        )

    async def set_availability(self, dataset_id: uuid.UUID, is_available: bool) -> None:
        await self.db.execute(
            update(Dataset)
            .where(Dataset.id == dataset_id)
            .values(is_available=is_available, updated_at=_now()),
        )

    async def delete(self, dataset_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(Dataset).where(Dataset.id == dataset_id),
        )
        return result.rowcount == 1
