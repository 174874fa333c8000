# tests/conftest.py
# 先设环境变量，再导入 app（engine 在导入时按 DATABASE_URL 创建）
import os, tempfile
_TMP = tempfile.mkdtemp(prefix="ellarises_pytest_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["LOG_TO_FILE"] = "false"   # 测试别落盘
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from ellarises.main import app
from ellarises.core.models import Base
from ellarises.core.models_user import User, Role
from ellarises.core.security import hash_password
from ellarises.infra.db import engine, init_db, SessionLocal
from ellarises.infra.logger import configure_logging

# 提前配置一次：之后 lifespan 里的 configure_logging 不再清空 root handlers（caplog 依赖它）
configure_logging()


@pytest.fixture(autouse=True)
def _fresh_db():
    # 每个用例一套干净的表
    init_db()
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make(username: str, password: str, level: Role = Role.member, legacy: bool = False) -> User:
        u = User(username=username, password=password if legacy else hash_password(password), level=level)
        db.add(u); db.commit(); db.refresh(u)
        return u
    return _make


def login(client: TestClient, username: str, password: str):
    return client.post("/login", data={"username": username, "password": password}, follow_redirects=False)
