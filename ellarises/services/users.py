"""
模块职能：
- 登录账户（users 表）的 CRUD 与注册。
- 唯一约束冲突（username）统一转换为 DuplicateUsername，其他存储错误原样抛出。

日志：
- user_create / user_update / user_delete
"""
from __future__ import annotations
from typing import Optional, List
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from ellarises.core.errors import DuplicateUsername, RecordNotFound
from ellarises.core.models_user import User, Role
from ellarises.core.security import hash_password
from ellarises.services.pagination import resolve_sort
from ellarises.infra.logger import emit

SORT_COLUMNS = {"username": User.username, "level": User.level}


def _is_unique_violation(e: IntegrityError) -> bool:
    orig = e.orig
    # PostgreSQL: SQLSTATE 23505；SQLite: "UNIQUE constraint failed"
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    return "unique" in str(orig).lower()


def _commit_or_duplicate(db: Session, username: str):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            raise DuplicateUsername(username) from e
        raise


def create_user(db: Session, username: str, password: str, level: Role = Role.member) -> User:
    user = User(username=username, password=hash_password(password), level=level)
    db.add(user)
    _commit_or_duplicate(db, username)
    db.refresh(user)
    emit("user_create", user_id=user.id, username=username, level=level.value)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise RecordNotFound("user", user_id)
    return user


def list_users(db: Session, search: str = "", sort_by: Optional[str] = None,
               sort_order: Optional[str] = None) -> List[User]:
    q = db.query(User)
    term = (search or "").strip()
    if term:
        conds = [User.username.ilike(f"%{term}%")]
        # 按角色展示名（Manager / Member）或角色代码（M / U）搜索
        role = Role.from_label(term)
        if role is None and term.upper() in {r.value for r in Role}:
            role = Role(term.upper())
        if role is not None:
            conds.append(User.level == role)
        q = q.filter(or_(*conds))
    _, _, order_by = resolve_sort(sort_by, sort_order, SORT_COLUMNS, "username", "asc")
    return q.order_by(order_by).all()


def update_user(db: Session, user_id: int, username: str, level: Role,
                password: Optional[str] = None) -> User:
    user = get_user(db, user_id)
    user.username = username
    user.level = level
    if password:
        user.password = hash_password(password)
    db.add(user)
    _commit_or_duplicate(db, username)
    emit("user_update", user_id=user_id, level=level.value, password_changed=bool(password))
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    db.delete(user); db.commit()
    emit("user_delete", user_id=user_id)
