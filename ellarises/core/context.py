# ellarises/core/context.py
"""
请求上下文（显式注入，不走全局状态）：
- SessionUser：登录时拷贝的用户快照（id / username / level），之后账户变更不会回写，
  直到下次登录。
- RequestContext：当前请求的会话 id 与会话用户（未登录时 user=None，这是正常状态）。
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ellarises.core.models_user import Role


class SessionUser(BaseModel):
    id: int
    username: str
    level: Role

    def serialize(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(cls, data: dict) -> "SessionUser":
        return cls(id=int(data["id"]), username=str(data["username"]), level=Role(data["level"]))


class RequestContext(BaseModel):
    session_id: Optional[str] = None
    user: Optional[SessionUser] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None
