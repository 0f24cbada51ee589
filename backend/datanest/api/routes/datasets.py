"""Dataset Routes — catalogue listing, detail, multipart upload, download, delete.

Invariants:
    - Upload metadata validated by DatasetCreate before the file is stored
    - Download headers: original mime type, Content-Disposition attachment with original name
"""

import logging
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from datanest.api.deps import get_current_user, get_dataset_handlers
from datanest.models.user import User
from datanest.schemas.datasets import (
    DatasetCreate, DatasetDeleteResponse, DatasetResponse, DatasetWithSeller,
)
from datanest.services.handle_datasets import DatasetHandlers

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/datasets", tags=["datasets"])


def _content_disposition(file_name: str) -> str:
    fallback = file_name.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.get("", response_model=list[DatasetWithSeller])
async def list_datasets(
    category: str | None = Query(None),
    file_format: str | None = Query(None, alias="format"),
    search: str | None = Query(None, max_length=200),
    handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    """Available datasets, newest first."""
    return await handlers.list_datasets(category, file_format, search)


@router.get("/{dataset_id}", response_model=DatasetWithSeller)
async def get_dataset(
    dataset_id: UUID, handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    return await handlers.get_dataset(dataset_id)


@router.post("", response_model=DatasetResponse, status_code=status.HTTP_201_CREATED)
async def create_dataset(
    dataset: UploadFile = File(...),
    title: str = Form(...),
    description: str = Form(...),
    price: str = Form(...),
    category: str = Form(...),
    tags: str = Form("[]"),
    format: str = Form(...),
    data_type: str = Form(...),
    license: str = Form(...),
    user: User = Depends(get_current_user),
    handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    """Seller upload: file part 'dataset' plus metadata form fields."""
    try:
        meta = DatasetCreate(
            title=title, description=description, price=price, category=category,
            tags=tags, format=format, data_type=data_type, license=license,
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))

    return await handlers.create_dataset(
        user,
        meta,
        dataset.file,
        dataset.filename or "dataset",
        dataset.content_type,
        _upload_size(dataset),
    )


@router.get("/{dataset_id}/download")
async def download_dataset(
    dataset_id: UUID,
    user: User = Depends(get_current_user),
    handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    """Owner or completed purchaser only; counted before the first byte is sent."""
    dataset, stream = await handlers.download(user, dataset_id)
    return StreamingResponse(
        stream,
        media_type=dataset.mime_type,
        headers={"Content-Disposition": _content_disposition(dataset.file_name)},
    )


@router.delete("/{dataset_id}", response_model=DatasetDeleteResponse)
async def delete_dataset(
    dataset_id: UUID,
    user: User = Depends(get_current_user),
    handlers: DatasetHandlers = Depends(get_dataset_handlers),
):
    """Hard delete when never purchased; otherwise delisted."""
    return await handlers.delete_dataset(user, dataset_id)
