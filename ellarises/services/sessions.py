"""
模块职能：
- 服务端会话存储：cookie 只携带不透明 id，用户快照与 flash 消息加密后落库（web_sessions）。
- create_session / get_session / destroy_session：创建、查找（未知或过期返回 None）、幂等销毁。
- push_flash / pop_flashes：一次性提示消息，随会话存放。
- 空闲超时：last_accessed_at 距今超过 SESSION_IDLE_MINUTES 视为过期，读取时顺手删除。

日志：
- sess_created / sess_expired / sess_destroyed / sess_unreadable
"""
from __future__ import annotations
import secrets as _secrets
from datetime import timedelta
from typing import Optional, Dict, List
from cryptography.fernet import InvalidToken
from sqlalchemy.orm import Session
from ellarises.core.context import SessionUser
from ellarises.core.models import WebSession, utcnow
from ellarises.core.security import get_session_idle_minutes
from ellarises.services.secrets import encrypt_dict, decrypt_str
from ellarises.infra.logger import emit

def _new_session_id() -> str:
    return _secrets.token_urlsafe(32)

def _is_expired(row: WebSession) -> bool:
    idle = timedelta(minutes=get_session_idle_minutes())
    return row.last_accessed_at is None or utcnow() - row.last_accessed_at > idle

def _load(db: Session, session_id: Optional[str]) -> Optional[tuple]:
    """返回 (row, data)；未知 / 过期 / 无法解密 → None（过期与损坏的行会被删除）。"""
    if not session_id:
        return None
    row = db.get(WebSession, session_id)
    if row is None:
        return None
    user_id = row.user_id
    if _is_expired(row):
        db.delete(row); db.commit()
        emit("sess_expired", user_id=user_id)
        return None
    try:
        data = decrypt_str(row.data_encrypted)
    except InvalidToken:
        # SECRET_KEY 轮换后旧会话无法解密，按“无会话”处理
        db.delete(row); db.commit()
        emit("sess_unreadable", user_id=user_id)
        return None
    return row, data

def _save(db: Session, row: WebSession, data: Dict):
    row.data_encrypted = encrypt_dict(data)
    row.last_accessed_at = utcnow()
    db.add(row); db.commit()

def create_session(db: Session, user: SessionUser) -> str:
    sid = _new_session_id()
    now = utcnow()
    row = WebSession(id=sid, user_id=user.id,
                     data_encrypted=encrypt_dict({"user": user.serialize(), "flashes": []}),
                     created_at=now, last_accessed_at=now)
    db.add(row); db.commit()
    emit("sess_created", user_id=user.id)
    return sid

def get_session(db: Session, session_id: Optional[str]) -> Optional[SessionUser]:
    loaded = _load(db, session_id)
    if loaded is None:
        return None
    row, data = loaded
    row.last_accessed_at = utcnow()
    db.add(row); db.commit()
    return SessionUser.from_payload(data["user"])

def destroy_session(db: Session, session_id: Optional[str]) -> None:
    if not session_id:
        return
    row = db.get(WebSession, session_id)
    if row is None:
        return
    user_id = row.user_id
    db.delete(row); db.commit()
    emit("sess_destroyed", user_id=user_id)

def push_flash(db: Session, session_id: Optional[str], category: str, message: str) -> bool:
    """追加一条 flash；无有效会话时丢弃并返回 False。"""
    loaded = _load(db, session_id)
    if loaded is None:
        return False
    row, data = loaded
    data.setdefault("flashes", []).append({"category": category, "message": message})
    _save(db, row, data)
    return True

def pop_flashes(db: Session, session_id: Optional[str]) -> List[Dict]:
    loaded = _load(db, session_id)
    if loaded is None:
        return []
    row, data = loaded
    flashes = data.get("flashes") or []
    if flashes:
        data["flashes"] = []
        _save(db, row, data)
    return flashes

def purge_expired(db: Session) -> int:
    cutoff = utcnow() - timedelta(minutes=get_session_idle_minutes())
    n = (db.query(WebSession)
         .filter(WebSession.last_accessed_at < cutoff)
         .delete(synchronize_session=False))
    db.commit()
    if n:
        emit("sess_purged", count=n)
    return n
