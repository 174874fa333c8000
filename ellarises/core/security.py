# ellarises/core/security.py
""""封装口令哈希/校验（passlib[bcrypt]）、存量口令格式解析与会话相关配置。

parse_credential() 是读取 users.password 的唯一边界：
哈希（$2 前缀，bcrypt）→ HashedCredential；其余 → LegacyCredential（历史明文，
仅用于下次登录时透明升级）。"""

import hmac
import os
from dataclasses import dataclass
from typing import Union

from passlib.context import CryptContext

HASH_MARKER = "$2"
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def get_secret_key() -> str:
    return os.getenv("SECRET_KEY") or "dev-session-secret-change-me"


def is_production() -> bool:
    return os.getenv("APP_ENV", "development").strip().lower() == "production"


def get_session_cookie_name() -> str:
    return os.getenv("SESSION_COOKIE_NAME") or "ellarises_session"


def get_session_idle_minutes() -> int:
    try:
        return int(os.getenv("SESSION_IDLE_MINUTES", "120"))
    except ValueError:
        return 120


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


@dataclass(frozen=True)
class HashedCredential:
    value: str

    def matches(self, plain: str) -> bool:
        try:
            return pwd_context.verify(plain, self.value)
        except ValueError:
            # 前缀像 bcrypt 但哈希本身损坏
            return False


@dataclass(frozen=True)
class LegacyCredential:
    value: str

    def matches(self, plain: str) -> bool:
        if not self.value:
            return False
        return hmac.compare_digest(self.value.encode("utf-8"), plain.encode("utf-8"))


StoredCredential = Union[HashedCredential, LegacyCredential]


def parse_credential(raw: str) -> StoredCredential:
    if raw and raw.startswith(HASH_MARKER):
        return HashedCredential(raw)
    return LegacyCredential(raw or "")
