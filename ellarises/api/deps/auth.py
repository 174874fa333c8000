# ellarises/api/deps/auth.py
"""
请求级依赖：
- get_context：从会话 cookie 解析 RequestContext（未登录 → user=None，不报错）
- require_authenticated：无会话用户 → LoginRequired（303 跳 /login）
- require_role(*roles)：先判登录，再判角色；角色不符 → Forbidden（403 页面）
- set_session_cookie / clear_session_cookie：统一 cookie 属性（HttpOnly、SameSite=Lax、生产环境 Secure）

日志：authz_login_required / authz_forbidden
"""

from fastapi import Depends, Request
from starlette.responses import Response
from sqlalchemy.orm import Session

from ellarises.core.authorization import Decision, authorize
from ellarises.core.context import RequestContext, SessionUser
from ellarises.core.errors import Forbidden, LoginRequired
from ellarises.core.models_user import Role
from ellarises.core.security import get_session_cookie_name, is_production
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit
from ellarises.services import sessions as sess_svc


def get_context(request: Request, db: Session = Depends(get_db)) -> RequestContext:
    sid = request.cookies.get(get_session_cookie_name())
    user = sess_svc.get_session(db, sid)
    return RequestContext(session_id=sid if user else None, user=user)


def _enforce(request: Request, ctx: RequestContext, allowed=None) -> SessionUser:
    decision = authorize(ctx.user, allowed)
    if decision is Decision.ALLOW:
        return ctx.user
    if decision is Decision.LOGIN:
        emit("authz_login_required", path=request.url.path)
        raise LoginRequired()
    # Decision.FORBIDDEN
    emit("authz_forbidden", path=request.url.path,
         user_id=ctx.user.id, level=ctx.user.level.value)
    raise Forbidden(ctx.user)


def require_authenticated(request: Request, ctx: RequestContext = Depends(get_context)) -> SessionUser:
    return _enforce(request, ctx)


def require_role(*roles: Role):
    """
    用法：user: SessionUser = Depends(require_role(Role.manager))
    """
    allowed = frozenset(roles)

    def _dep(request: Request, ctx: RequestContext = Depends(get_context)) -> SessionUser:
        return _enforce(request, ctx, allowed)

    return _dep


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        get_session_cookie_name(), session_id,
        httponly=True, samesite="lax", secure=is_production(), path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        get_session_cookie_name(),
        httponly=True, samesite="lax", secure=is_production(), path="/",
    )