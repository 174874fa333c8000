"""模块职能：

读取 DATABASE_URL，创建 SQLAlchemy 引擎

暴露 SessionLocal、get_db()（FastAPI 依赖）

init_db()：启动时统一建表（含 users / web_sessions 与各业务表）"""

import os
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from ellarises.core.models import Base

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ellarises.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def init_db():
    # 导入以注册到 Base
    from ellarises.core import models_user  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI 依赖函数：每请求 yield 一个 Session，用后自动关闭。"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
