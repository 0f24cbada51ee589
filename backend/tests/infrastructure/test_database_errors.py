"""translate_db_error — driver failures onto the error hierarchy."""

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from datanest.core.errors import ConflictError, DatabaseError
from datanest.infrastructure.database import translate_db_error


def test_unique_violation_is_conflict():
    error = translate_db_error(IntegrityError("INSERT", {}, Exception("UNIQUE")))
    assert isinstance(error, ConflictError)
    assert error.http_status == 409


def test_operational_error_is_503():
    error = translate_db_error(OperationalError("SELECT 1", {}, Exception("gone")))
    assert isinstance(error, DatabaseError)
    assert error.operation == "execute"
    assert error.http_status == 503


def test_unknown_sqlalchemy_error():
    assert translate_db_error(SQLAlchemyError("x")).operation == "unknown"
