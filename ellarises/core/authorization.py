# ellarises/core/authorization.py
""""模块职能：

路由级授权判定（纯函数，只看会话用户与路由声明的要求，不访问数据库）

主要类型/函数：

Decision：ALLOW / LOGIN / FORBIDDEN

authorize(user, allowed)：先判登录、再判角色；allowed=None 表示“任意已登录用户”

判定表：

无会话用户 → LOGIN（即便是角色受限路由，也从不返回 FORBIDDEN）

有用户且角色不在 allowed → FORBIDDEN

其余 → ALLOW"""

from enum import Enum
from typing import FrozenSet, Optional

from ellarises.core.context import SessionUser
from ellarises.core.models_user import Role


class Decision(str, Enum):
    ALLOW = "ALLOW"
    LOGIN = "LOGIN"
    FORBIDDEN = "FORBIDDEN"


def authorize(user: Optional[SessionUser], allowed: Optional[FrozenSet[Role]] = None) -> Decision:
    if user is None:
        return Decision.LOGIN
    if allowed is None:
        return Decision.ALLOW
    return Decision.ALLOW if user.level in allowed else Decision.FORBIDDEN
