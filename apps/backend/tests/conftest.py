from __future__ import annotations

import os
import tempfile
from typing import Any, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from budgetboard import models
from budgetboard.core.database import Base, get_db
from budgetboard.main import app
from budgetboard.services.subscription_service import GatewayError, PaymentGateway, get_payment_gateway


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # 사용자 환경을 건드리지 않도록 임시 파일 SQLite 사용
    fd, path = tempfile.mkstemp(prefix="budgetboard_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    try:
        os.remove(path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_engine(test_db_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    # 간단 시드: demo user(1) + 카테고리 2개 + trial 구독, 다른 사용자(2)
    user = models.User(id=1, email="demo@example.com", display_name="Demo", is_active=True)
    other = models.User(id=2, email="other@example.com", display_name="Other", is_active=True)
    session.add_all([user, other])
    session.flush()
    session.add_all(
        [
            models.Category(user_id=1, name="Salary", color="#66BB6A"),
            models.Category(user_id=1, name="Groceries", color="#FFA726"),
            models.Category(user_id=2, name="Elsewhere", color="#78909C"),
            models.Subscription(user_id=1),
        ]
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        # 테이블 데이터 정리
        with engine.begin() as conn:
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=ON")


@pytest.fixture(autouse=True)
def override_dependency(db_session):
    # FastAPI DI override
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail = False

    def create_checkout_session(self, **kwargs) -> str:
        self.calls.append(("checkout", kwargs))
        if self.fail:
            raise GatewayError("provider down")
        return f"https://pay.example.test/checkout/{kwargs['price_id']}"

    def create_portal_session(self, **kwargs) -> str:
        self.calls.append(("portal", kwargs))
        if self.fail:
            raise GatewayError("provider down")
        return "https://pay.example.test/portal"


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture()
def categories(client) -> dict[str, dict]:
    body = client.get("/api/categories/all").json()
    return {c["name"]: c for c in body["data"]}
