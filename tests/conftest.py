import pytest
from fastapi.testclient import TestClient

from library_backend.core.config import Settings
from library_backend.core.database import StorageGateway
from library_backend.main import create_app
from library_backend.services.catalog import CatalogService
from library_backend.services.loans import LoanService
from library_backend.services.queries import LoanQueryService


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'library.db'}"


@pytest.fixture
def gateway(db_url):
    gw = StorageGateway(db_url, pool_size=10, pool_timeout=10)
    gw.init()
    yield gw
    gw.dispose()


@pytest.fixture
def catalog(gateway):
    return CatalogService(gateway)


@pytest.fixture
def loans(gateway):
    return LoanService(gateway)


@pytest.fixture
def loan_queries(gateway):
    return LoanQueryService(gateway)


@pytest.fixture
def client(db_url):
    app = create_app(Settings(database_url=db_url, log_level="WARNING"))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_book(catalog):
    def _make(isbn="978-0000000001", copies=1, title="Test Book"):
        return catalog.create_book(
            {"isbn": isbn, "title": title, "author": "Author", "total_copies": copies}
        )
    return _make


@pytest.fixture
def make_member(catalog):
    def _make(code="M-1", name="Test Member"):
        return catalog.create_member({"member_code": code, "full_name": name})
    return _make
