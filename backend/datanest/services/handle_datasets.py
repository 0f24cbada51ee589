"""Dataset Handlers — catalogue reads, upload, download, delete.

Invariants:
    - Upload is validated (mime type, size) before anything is stored
    - A failed dataset creation removes the already-stored blob
    - Download: gate -> blob exists -> downloads += 1 committed -> stream
    - Downloads counter incremented in the database (no read-modify-write)
    - A dataset with purchases is delisted, never hard-deleted (purchasers keep access)

Design Decisions:
    - Gate decides with has_purchased resolved here, so core stays IO-free
    - Seller summaries fetched in one batch per listing (get_many)
"""

import logging
from typing import AsyncIterator, BinaryIO
from uuid import UUID

from datanest.core.access_gate import check_dataset_owner, check_download_access, check_role
from datanest.core.domain_types import UserRole
from datanest.core.enforce_uploads import validate_upload
from datanest.core.errors import BlobMissingError, ResourceNotFoundError
from datanest.core.repository_protocols import (
    BlobStore, DatasetLike, MarketplaceStore, UserLike,
)
from datanest.schemas.datasets import DatasetCreate, DatasetDeleteResponse, DatasetWithSeller
from datanest.schemas.users import UserSummary

logger = logging.getLogger(__name__)


class DatasetHandlers:
    """Catalogue operations over the store and the blob store."""

    def __init__(
        self, store: MarketplaceStore, blobs: BlobStore, max_upload_bytes: int,
    ):
        self.store = store
        self.blobs = blobs
        self.max_upload_bytes = max_upload_bytes

    async def get_or_404(self, dataset_id: UUID) -> DatasetLike:
        dataset = await self.store.datasets.get(dataset_id)
        if not dataset:
            raise ResourceNotFoundError("Dataset", str(dataset_id))
        return dataset

    async def with_sellers(self, datasets: list[DatasetLike]) -> list[DatasetWithSeller]:
        sellers = await self.store.users.get_many({d.seller_id for d in datasets})
        return [
            DatasetWithSeller.model_validate(d, from_attributes=True).model_copy(
                update={"seller": _summary(sellers.get(d.seller_id))},
            )
            for d in datasets
        ]

    async def list_datasets(
        self,
        category: str | None = None,
        file_format: str | None = None,
        search: str | None = None,
    ) -> list[DatasetWithSeller]:
        datasets = await self.store.datasets.list_available(
            category=category, file_format=file_format, search=search,
        )
        return await self.with_sellers(datasets)

    async def get_dataset(self, dataset_id: UUID) -> DatasetWithSeller:
        dataset = await self.get_or_404(dataset_id)
        (enriched,) = await self.with_sellers([dataset])
        return enriched

    async def list_seller_datasets(self, seller: UserLike) -> list[DatasetLike]:
        return await self.store.datasets.list_by_seller(seller.id)

    async def create_dataset(
        self,
        seller: UserLike,
        meta: DatasetCreate,
        source: BinaryIO,
        file_name: str,
        mime_type: str | None,
        size: int,
    ) -> DatasetLike:
        """Store the file, then the row; roll both back if the row cannot be written."""
        error = check_role(seller, UserRole.SELLER) or validate_upload(
            mime_type, size, self.max_upload_bytes,
        )
        if error:
            raise error

        seller_id = seller.id
        file_path = await self.blobs.put(source, file_name)
        try:
            dataset = await self.store.datasets.create({
                **meta.model_dump(),
                "seller_id": seller_id,
                "file_name": file_name,
                "file_size": size,
                "file_path": file_path,
                "mime_type": mime_type,
            })
            await self.store.users.increment_total_datasets(seller_id)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            await self.blobs.delete(file_path)
            logger.error(
                "Dataset creation failed, stored file removed",
                extra={"user_id": seller_id},
            )
            raise

        logger.info(
            "Dataset created",
            extra={"dataset_id": dataset.id, "user_id": seller.id},
        )
        return dataset

    async def download(
        self, user: UserLike, dataset_id: UUID,
    ) -> tuple[DatasetLike, AsyncIterator[bytes]]:
        """Authorize, count, and hand back the byte stream."""
        dataset = await self.get_or_404(dataset_id)
        has_purchased = await self.store.purchases.has_purchased(user.id, dataset.id)
        error = check_download_access(user, dataset, has_purchased)
        if error:
            raise error
        if not await self.blobs.exists(dataset.file_path):
            raise BlobMissingError(str(dataset.id))

        await self.store.datasets.increment_downloads(dataset.id)
        await self.store.commit()
        logger.info(
            "Dataset downloaded",
            extra={"dataset_id": dataset.id, "user_id": user.id},
        )
        return dataset, self.blobs.open_read_stream(dataset.file_path)

    async def delete_dataset(self, user: UserLike, dataset_id: UUID) -> DatasetDeleteResponse:
        dataset = await self.get_or_404(dataset_id)
        error = check_dataset_owner(user, dataset)
        if error:
            raise error

        if await self.store.purchases.list_by_dataset(dataset.id):
            await self.store.datasets.set_availability(dataset.id, False)
            await self.store.commit()
            logger.info("Dataset delisted", extra={"dataset_id": dataset.id})
            return DatasetDeleteResponse(id=dataset.id, deleted=False, delisted=True)

        file_path = dataset.file_path
        await self.store.datasets.delete(dataset_id)
        await self.store.commit()
        await self.blobs.delete(file_path)
        logger.info("Dataset deleted", extra={"dataset_id": dataset_id})
        return DatasetDeleteResponse(id=dataset_id, deleted=True, delisted=False)


def _summary(user: UserLike | None) -> UserSummary | None:
    return UserSummary.model_validate(user, from_attributes=True) if user else None
