# ellarises/api/users.py
"""
登录账户管理（仅 manager）

路由：
- GET  /users                  列表（search 支持用户名与角色名；sort_by=username|level；sort_order）
- GET  /users/new              新增表单
- POST /users/new              新增（口令需二次确认；用户名重复 → 明确提示）
- GET  /users/{id}/edit        编辑表单
- POST /users/{id}/edit        更新用户名 / 角色，可选重设口令
- POST /users/{id}/delete      删除

注意：列表与表单从不回显 password 列。
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import DuplicateUsername, RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit, emit_error
from ellarises.services import users as user_svc

router = APIRouter(tags=["users"], dependencies=[Depends(require_role(Role.manager))])

DUPLICATE = "Username is already taken."


def _parse_level(raw: Optional[str]) -> Role:
    try:
        return Role(raw)
    except ValueError:
        return Role.member


@router.get("/users")
def list_users(
    request: Request,
    search: str = "",
    sort_by: str = "username",
    sort_order: str = "asc",
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    users = user_svc.list_users(db, search, sort_by, sort_order)
    emit("users_list", actor=ctx.user.id, count=len(users))
    return render(request, "users/list.html", ctx, db, users=users, search=search.strip(),
                  sort_by=sort_by, sort_order=sort_order)


@router.get("/users/new")
def new_user(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "users/form.html", ctx, db, account=None, roles=list(Role))


@router.post("/users/new")
def create_user(
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    username, password = form.get("username", ""), form.get("password", "")
    if not username or not password:
        flash(db, ctx, "error", "Username and password are required.")
        return redirect("/users/new")
    if password != form.get("confirm_password", ""):
        flash(db, ctx, "error", "Passwords do not match.")
        return redirect("/users/new")
    try:
        user_svc.create_user(db, username, password, _parse_level(form.get("level")))
    except DuplicateUsername:
        flash(db, ctx, "error", DUPLICATE)
        return redirect("/users/new")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("user_create_error", error=type(e).__name__)
        flash(db, ctx, "error", "Unable to save user. Please try again.")
        return redirect("/users/new")
    flash(db, ctx, "success", "User created.")
    return redirect("/users")


@router.get("/users/{user_id}/edit")
def edit_user(
    user_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    account = user_svc.get_user(db, user_id)
    return render(request, "users/form.html", ctx, db, account=account, roles=list(Role))


@router.post("/users/{user_id}/edit")
def update_user(
    user_id: int,
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    back = f"/users/{user_id}/edit"
    username, password = form.get("username", ""), form.get("password", "")
    if not username:
        account = user_svc.get_user(db, user_id)
        return render(request, "users/form.html", ctx, db, status_code=400, account=account,
                      roles=list(Role), error_message="Username is required.")
    if password and password != form.get("confirm_password", ""):
        flash(db, ctx, "error", "Passwords do not match.")
        return redirect(back)
    try:
        user_svc.update_user(db, user_id, username, _parse_level(form.get("level")), password or None)
    except RecordNotFound:
        flash(db, ctx, "error", "User not found.")
        return redirect("/users")
    except DuplicateUsername:
        flash(db, ctx, "error", DUPLICATE)
        return redirect(back)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("user_update_error", user_id=user_id, error=type(e).__name__)
        flash(db, ctx, "error", "Unable to update user. Please try again.")
        return redirect(back)
    flash(db, ctx, "success", "User updated.")
    return redirect("/users")


@router.post("/users/{user_id}/delete")
def delete_user(
    user_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        user_svc.delete_user(db, user_id)
    except RecordNotFound:
        flash(db, ctx, "error", "User not found.")
        return redirect("/users")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("user_delete_error", user_id=user_id, error=type(e).__name__)
        flash(db, ctx, "error", "Unable to delete user.")
        return redirect("/users")
    flash(db, ctx, "success", "User deleted.")
    return redirect("/users")
