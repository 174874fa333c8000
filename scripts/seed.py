"""根据 .env 或默认值创建两名登录账户：manager 与 member（口令 bcrypt 哈希）。

可作为脚本执行，也可被测试直接导入调用（提供 run() 函数）。"""
import os
import sys

# 确保脚本在控制台有输出；不影响主服务的日志设置
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("PYTHONUNBUFFERED", "1")

from sqlalchemy.orm import Session  # noqa: E402
from ellarises.infra.db import SessionLocal  # noqa: E402
from ellarises.infra.logger import emit  # noqa: E402
from ellarises.core.models_user import User, Role  # noqa: E402
from ellarises.core.security import hash_password  # noqa: E402


def _get_env(k: str, default: str) -> str:
    v = os.getenv(k)
    return v if v is not None and v != "" else default


def upsert_user(db: Session, username: str, password: str, level: Role):
    u = db.query(User).filter(User.username == username).first()
    if u:
        action = "updated"
        u.level = level
        if password:
            u.password = hash_password(password)
    else:
        action = "created"
        u = User(username=username, password=hash_password(password), level=level)
        db.add(u)

    emit("seed_user_upsert", username=username, level=level.value, action=action)
    print(f"[seed] {action} user: {username} ({level.label})", flush=True)


def run():
    emit("seed_begin", database_url=os.getenv("DATABASE_URL"))
    print("[seed] seeding users ...", flush=True)

    with SessionLocal() as db:
        upsert_user(db, _get_env("MANAGER_USERNAME", "manager"), _get_env("MANAGER_PASSWORD", "manager"),
                    Role.manager)
        upsert_user(db, _get_env("MEMBER_USERNAME", "member"), _get_env("MEMBER_PASSWORD", "member"),
                    Role.member)
        db.commit()

    emit("seed_done", status="ok")
    print("[seed] done.", flush=True)


if __name__ == "__main__":
    try:
        run()
        sys.exit(0)
    except Exception as e:
        emit("seed_error", error=str(e))
        print(f"[seed] ERROR: {e}", file=sys.stderr, flush=True)
        sys.exit(1)
