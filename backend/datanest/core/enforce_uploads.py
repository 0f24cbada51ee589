"""Upload Validation — checks a dataset file before it is accepted into the catalogue.

Invariants:
    - PURE: receives metadata only, never touches the stored blob
    - Empty files, oversized files and unknown mime types are rejected
"""

from datanest.core.domain_types import ALLOWED_DATASET_MIME_TYPES
from datanest.core.errors import InputValidationError


def check_mime_type(mime_type: str | None) -> InputValidationError | None:
    if mime_type not in ALLOWED_DATASET_MIME_TYPES:
        return InputValidationError(
            "Invalid file type. Please upload a valid dataset file.", "file",
        )
    return None


def check_file_size(size: int, max_bytes: int) -> InputValidationError | None:
    if size <= 0:
        return InputValidationError("Dataset file is empty", "file")
    if size > max_bytes:
        return InputValidationError(
            f"Dataset file exceeds the {max_bytes // (1024 * 1024)}MB limit", "file",
        )
    return None


def validate_upload(
    mime_type: str | None, size: int, max_bytes: int,
) -> InputValidationError | None:
    return check_mime_type(mime_type) or check_file_size(size, max_bytes)
