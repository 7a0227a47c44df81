import os

# Keep the application's own engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from consumables.config import settings  # noqa: E402
from consumables.database import get_db, init_db, make_engine  # noqa: E402
from consumables.main import app  # noqa: E402
from consumables.models.category import Category  # noqa: E402
from consumables.models.user import User  # noqa: E402
from consumables.services import product_service  # noqa: E402


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "STOCK_RETRY_BACKOFF_MS", 1)


@pytest.fixture()
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def file_session_factory(tmp_path):
    """Sessions on a file-backed database, so threads get real separate connections."""
    engine = make_engine(f"sqlite:///{tmp_path / 'stock.db'}")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def category(db) -> Category:
    category = Category(name="Office Supplies")
    db.add(category)
    db.commit()
    return category


@pytest.fixture()
def actor(db) -> User:
    user = User(username="ana", display_name="Ana Lestari")
    db.add(user)
    db.commit()
    return user


def product_payload(category_id: str, **overrides) -> dict:
    payload = {
        "product_code": "PAP-A4",
        "name": "A4 Paper",
        "category": category_id,
        "measurement_unit": "ream",
        "reorder_point": 5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def product(db, category):
    return product_service.create_product(db, product_payload(category.id))


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
