# ellarises/api/auth.py
"""
登录 / 登出 / 注册与公共页面

日志事件（通过 ellarises.infra.logger.emit 发出）：
- auth_login_attempt：收到登录请求（不记录明文密码）
- auth_login_failed：登录失败（reason：not_found / mismatch，仅日志区分，页面提示相同）
- auth_login_success：登录成功（包含 user_id、level）
- auth_login_error：登录过程中的存储错误（页面只给出通用提示）
- auth_logout
- auth_register_duplicate / auth_register_error
"""
from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import (
    get_context, require_authenticated, set_session_cookie, clear_session_cookie,
)
from ellarises.api.rendering import render, redirect
from ellarises.core.context import RequestContext, SessionUser
from ellarises.core.errors import DuplicateUsername
from ellarises.core.models_user import Role
from ellarises.core.security import get_session_cookie_name
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit, emit_error
from ellarises.services import credentials as cred_svc
from ellarises.services import sessions as sess_svc
from ellarises.services import users as user_svc

router = APIRouter(tags=["auth"])

INVALID_CREDENTIALS = "Invalid username or password."
LOGIN_ERROR = "Login error. Please try again."


@router.get("/")
@router.get("/landing")
def landing(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "landing.html", ctx, db)


@router.get("/login")
def login_form(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "auth/login.html", ctx, db)


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    # 1) 请求打点（不记录明文密码）
    emit(
        "auth_login_attempt",
        username=username,
        ip=str(request.client.host) if request.client else None,
    )
    if not username or not password:
        emit("auth_login_failed", username=username, reason="missing_fields")
        return render(request, "auth/login.html", ctx, db, error_message=INVALID_CREDENTIALS)

    try:
        result = cred_svc.verify(db, username, password)
        if not result.ok:
            # 2) 失败：日志里区分原因，页面上不区分
            emit("auth_login_failed", username=username, reason=result.reason.value)
            return render(request, "auth/login.html", ctx, db, error_message=INVALID_CREDENTIALS)

        # 3) 换发会话：旧会话作废，快照只在此刻拷贝
        sess_svc.destroy_session(db, ctx.session_id)
        snapshot = SessionUser(id=result.account_id, username=result.username, level=result.level)
        sid = sess_svc.create_session(db, snapshot)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("auth_login_error", username=username, error=type(e).__name__)
        return render(request, "auth/login.html", RequestContext(), db,
                      status_code=500, error_message=LOGIN_ERROR)

    emit("auth_login_success", user_id=snapshot.id, username=snapshot.username, level=snapshot.level.value)
    response = redirect("/landing")
    set_session_cookie(response, sid)
    return response


@router.get("/logout")
@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    # 直接用原始 cookie：即使会话已过期也安全（destroy 幂等）
    sid = request.cookies.get(get_session_cookie_name())
    sess_svc.destroy_session(db, sid)
    emit("auth_logout")
    response = redirect("/landing")
    clear_session_cookie(response)
    return response


@router.get("/register")
def register_alias():
    return redirect("/create-account")


@router.get("/create-account")
def create_account_form(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "auth/create_account.html", ctx, db)


@router.post("/create-account")
def create_account(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    if not username or not password:
        return render(request, "auth/create_account.html", ctx, db, status_code=400,
                      error_message="Username and password are required.")
    try:
        user_svc.create_user(db, username, password, Role.member)
    except DuplicateUsername:
        emit("auth_register_duplicate", username=username)
        return render(request, "auth/create_account.html", ctx, db, status_code=400,
                      error_message="Username is already taken.")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("auth_register_error", username=username, error=type(e).__name__)
        return render(request, "auth/create_account.html", ctx, db, status_code=500,
                      error_message="Unable to save user. Please try again.")
    return redirect("/login")


@router.get("/dashboard")
def dashboard(
    request: Request,
    user: SessionUser = Depends(require_authenticated),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return render(request, "index.html", ctx, db, username=user.username, level=user.level)
