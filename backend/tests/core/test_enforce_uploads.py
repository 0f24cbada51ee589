"""Upload Validation — tests for mime type and size checks."""

from datanest.core.enforce_uploads import check_file_size, check_mime_type, validate_upload

MB = 1024 * 1024


def test_csv_accepted():
    assert validate_upload("text/csv", 100, 500 * MB) is None


def test_unknown_mime_rejected():
    error = check_mime_type("application/x-msdownload")
    assert error.field == "file"
    assert error.http_status == 400


def test_missing_mime_rejected():
    assert check_mime_type(None) is not None


def test_empty_file_rejected():
    assert check_file_size(0, 500 * MB) is not None


def test_oversized_file_rejected():
    error = check_file_size(500 * MB + 1, 500 * MB)
    assert "500MB" in error.message


def test_mime_checked_before_size():
    error = validate_upload("application/x-msdownload", 0, 500 * MB)
    assert "file type" in error.message
