"""Tests for the driver-error translation of the SQLAlchemy unit of work."""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from marketcore.domain.exceptions import (
    DuplicateKeyError,
    InternalError,
    NotFoundError,
    TransientStorageError,
)
from marketcore.infrastructure.persistence.database import create_db_engine, create_schema, create_session_factory
from marketcore.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork, is_transient


class _PgError(Exception):
    def __init__(self, pgcode: str) -> None:
        super().__init__("error")
        self.pgcode = pgcode


def _operational(orig: Exception) -> OperationalError:
    return OperationalError("UPDATE stock", {}, orig)


def _uow() -> SqlAlchemyUnitOfWork:
    engine = create_db_engine("sqlite://")
    create_schema(engine)
    return SqlAlchemyUnitOfWork(create_session_factory(engine))


class TestIsTransient:

    @pytest.mark.parametrize("code", ["40001", "40P01", "55P03"])
    def test_postgres_codes(self, code):
        assert is_transient(_operational(_PgError(code)))

    def test_sqlite_lock(self):
        assert is_transient(_operational(sqlite3.OperationalError("database is locked")))

    def test_other_errors(self):
        assert not is_transient(_operational(sqlite3.OperationalError("no such table: orders")))
        assert not is_transient(ValueError("database is locked"))


class TestTranslate:

    def test_lock_becomes_transient(self):
        uow = _uow()
        with pytest.raises(TransientStorageError):
            with uow:
                raise _operational(sqlite3.OperationalError("database is locked"))

    def test_integrity_becomes_duplicate(self):
        uow = _uow()
        with pytest.raises(DuplicateKeyError):
            with uow:
                raise IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))

    def test_anything_else_is_internal(self):
        uow = _uow()
        with pytest.raises(InternalError) as exc_info:
            with uow:
                raise ProgrammingError("SELECT", {}, sqlite3.ProgrammingError("bad"))
        assert not isinstance(exc_info.value, TransientStorageError)

    def test_domain_errors_pass_through(self):
        uow = _uow()
        with pytest.raises(NotFoundError):
            with uow:
                raise NotFoundError("gone")

    def test_uncommitted_work_is_rolled_back(self):
        uow = _uow()
        with uow:
            assert uow.accounts.get_by_id(1) is None
        assert not uow._is_active()
