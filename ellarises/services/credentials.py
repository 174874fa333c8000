"""
模块职能：
- 口令校验：verify(db, username, password) → Verified | Rejected(NOT_FOUND / MISMATCH)。
- 历史明文口令的透明迁移：明文比对成功后立即重新哈希落库，再返回成功；
  迁移失败只记日志，不影响本次登录。

运行逻辑：
1) 按 username 精确匹配查 users；不存在 → NOT_FOUND
2) parse_credential() 把存储值解析为 HashedCredential / LegacyCredential
3) Hashed：bcrypt 校验；Legacy：恒定时间比对，成功则升级为哈希
4) 任何返回值与日志都不包含明文口令或哈希

日志：
- auth_password_upgraded / auth_password_upgrade_failed
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ellarises.core.models_user import User, Role
from ellarises.core.security import (
    LegacyCredential, parse_credential, hash_password,
)
from ellarises.infra.logger import emit, emit_error


class RejectReason(str, Enum):
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class Verified:
    account_id: int
    username: str
    level: Role
    ok: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    ok: bool = False


Verification = Union[Verified, Rejected]


def _upgrade_legacy_password(db: Session, user: User, plain: str) -> bool:
    user_id = user.id
    try:
        user.password = hash_password(plain)
        db.add(user); db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("auth_password_upgrade_failed", user_id=user_id, error=type(e).__name__)
        return False
    emit("auth_password_upgraded", user_id=user_id)
    return True


def verify(db: Session, username: str, password: str) -> Verification:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        return Rejected(RejectReason.NOT_FOUND)

    account_id, level = user.id, user.level
    credential = parse_credential(user.password)
    if not credential.matches(password):
        return Rejected(RejectReason.MISMATCH)

    if isinstance(credential, LegacyCredential):
        _upgrade_legacy_password(db, user, password)

    return Verified(account_id=account_id, username=username, level=level)
