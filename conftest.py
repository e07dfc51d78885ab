import pytest

from config import settings
from database import CatalogStore
from library import Library


@pytest.fixture
def db_file(tmp_path, request):
    # A separate database file for each test
    return str(tmp_path / f"test_{request.node.name}.db")

@pytest.fixture
def store(db_file):
    store = CatalogStore(db_file=db_file, retries=1, backoff=0)
    store.open()
    yield store
    store.close()

@pytest.fixture
def lib(db_file, monkeypatch):
    # The CLI opens settings.database_file, so point it at the same file
    monkeypatch.setattr(settings, "database_file", db_file)
    monkeypatch.setattr(settings, "seed_demo_books", False)
    lib = Library(db_file=db_file, strict_lending=True)
    yield lib
    lib.close()
