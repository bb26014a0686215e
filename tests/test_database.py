import threading

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from library_backend.core.database import StorageGateway
from library_backend.core.errors import ConflictError, StorageError, UnavailableError
from library_backend.models import models
from library_backend.services.loans import LoanService


def test_lifecycle(db_url):
    gw = StorageGateway(db_url)
    assert gw.is_ready() is False
    with pytest.raises(StorageError):
        with gw.transaction():
            pass
    gw.init()
    gw.init()
    assert gw.is_ready() is True
    gw.dispose()
    assert gw.is_ready() is False


def test_in_memory_database():
    gw = StorageGateway("sqlite://")
    gw.init()
    try:
        with gw.transaction() as db:
            db.add(models.Member(member_code="M-1", full_name="Ann"))
        with gw.session() as db:
            assert db.query(models.Member).count() == 1
    finally:
        gw.dispose()


def test_pool_is_bounded(db_url):
    gw = StorageGateway(db_url, pool_size=3)
    gw.init()
    try:
        assert gw.engine.pool.size() == 3
    finally:
        gw.dispose()


def test_run_in_transaction_commits(gateway):
    def add(db):
        member = models.Member(member_code="M-1", full_name="Ann")
        db.add(member)
        db.flush()
        return member.member_id

    member_id = gateway.run_in_transaction(add)
    with gateway.session() as db:
        assert db.get(models.Member, member_id).full_name == "Ann"


def test_application_error_rolls_back(gateway):
    gateway.run_in_transaction(
        lambda db: db.add(models.Book(isbn="1", title="T", author="A", total_copies=1, available_copies=1))
    )

    def take_copy_then_fail(db):
        book = db.query(models.Book).one()
        book.available_copies -= 1
        db.add(models.Member(member_code="M-1", full_name="Ann"))
        db.flush()
        raise UnavailableError()

    with pytest.raises(UnavailableError):
        gateway.run_in_transaction(take_copy_then_fail)
    with gateway.session() as db:
        assert db.query(models.Book).one().available_copies == 1
        assert db.query(models.Member).count() == 0


def test_copy_bounds_are_enforced_by_the_store(gateway):
    with pytest.raises(ConflictError):
        with gateway.transaction() as db:
            db.add(models.Book(isbn="1", title="T", author="A", total_copies=1, available_copies=2))
    with pytest.raises(ConflictError):
        with gateway.transaction() as db:
            db.add(models.Book(isbn="2", title="T", author="A", total_copies=1, available_copies=-1))


def test_loan_requires_existing_book(gateway):
    with pytest.raises(ConflictError):
        gateway.run_in_transaction(
            lambda db: db.execute(text(
                "INSERT INTO loans (book_id, member_id, borrow_date, due_date, is_returned) "
                "VALUES (99, 99, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, 0)"
            ))
        )


def test_storage_faults_surface_as_storage_error(gateway):
    def broken(db):
        db.execute(text("SELECT * FROM no_such_table"))

    with pytest.raises(StorageError) as excinfo:
        gateway.run_in_transaction(broken)
    assert str(excinfo.value) == "Storage unavailable"
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_read_session_faults_surface_as_storage_error(gateway):
    with pytest.raises(StorageError):
        with gateway.session() as db:
            db.execute(text("SELECT * FROM no_such_table"))


def test_exhausted_pool_makes_callers_wait(db_url, make_book, make_member):
    book_id = make_book(copies=1)
    member_id = make_member()
    gw = StorageGateway(db_url, pool_size=1, pool_timeout=10)
    gw.init()
    held = threading.Event()
    release = threading.Event()
    results = []

    def hold_connection():
        with gw.transaction() as db:
            db.execute(text("SELECT 1"))
            held.set()
            release.wait(10)

    def borrow():
        results.append(LoanService(gw).borrow(book_id, member_id))

    try:
        holder = threading.Thread(target=hold_connection)
        holder.start()
        assert held.wait(10)
        borrower = threading.Thread(target=borrow)
        borrower.start()
        borrower.join(0.3)
        assert borrower.is_alive()
        assert results == []

        release.set()
        holder.join(10)
        borrower.join(10)
        assert len(results) == 1
        assert gw.engine.pool.checkedout() == 0
    finally:
        release.set()
        gw.dispose()


def test_pool_wait_times_out_as_storage_error(db_url, make_book, make_member):
    book_id = make_book(copies=1)
    member_id = make_member()
    gw = StorageGateway(db_url, pool_size=1, pool_timeout=0.2)
    gw.init()
    try:
        with gw.transaction() as db:
            db.execute(text("SELECT 1"))
            with pytest.raises(StorageError):
                LoanService(gw).borrow(book_id, member_id)
        with gw.session() as db:
            assert db.get(models.Book, book_id).available_copies == 1
    finally:
        gw.dispose()
