# ellarises/api/donations.py
"""
捐赠页面（仅 manager）

路由：
- GET  /donations                 列表（search / sort_by=donor|date|amount / sort_order / page）
- GET  /donations/new             新增表单
- POST /donations/new             新增（捐赠人登记为新参与者）
- GET  /donations/{id}/edit       编辑表单
- POST /donations/{id}/edit       更新日期与金额
- POST /donations/{id}/delete     删除
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields, parse_amount, parse_date
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit_error
from ellarises.services import donations as don_svc
from ellarises.services.pagination import normalize_page

router = APIRouter(tags=["donations"], dependencies=[Depends(require_role(Role.manager))])

INVALID_INPUT = "Please enter a valid date and a non-negative amount."
INVALID_NEW = "Donor first and last name are required, with a valid date and a non-negative amount."


@router.get("/donations")
def list_donations(
    request: Request,
    search: str = "",
    sort_by: str = "date",
    sort_order: str = "desc",
    page: str = "1",
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    result = don_svc.list_donations(db, search, sort_by, sort_order, normalize_page(page))
    return render(request, "donations/list.html", ctx, db,
                  rows=result.items, page=result.page, total=result.total,
                  total_pages=result.total_pages, search=search.strip(),
                  sort_by=sort_by, sort_order=sort_order)


@router.get("/donations/new")
def new_donation(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "donations/form.html", ctx, db, donation=None, form={})


@router.post("/donations/new")
def create_donation(
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    first, last = form.get("first_name", ""), form.get("last_name", "")
    try:
        if not first or not last:
            raise ValueError("donor name required")
        donation_date = parse_date(form.get("donation_date"))
        amount = parse_amount(form.get("amount"))
    except ValueError:
        return render(request, "donations/form.html", ctx, db, status_code=400, donation=None,
                      form=form, error_message=INVALID_NEW)
    try:
        don_svc.create_donation(db, first, last, donation_date, amount)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("donation_create_error", error=type(e).__name__)
        flash(db, ctx, "error", "Error adding donation.")
        return redirect("/donations/new")
    flash(db, ctx, "success", "Donation added.")
    return redirect("/donations")


@router.get("/donations/{donation_id}/edit")
def edit_donation(
    donation_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    donation = don_svc.get_donation(db, donation_id)
    return render(request, "donations/form.html", ctx, db, donation=donation, form={})


@router.post("/donations/{donation_id}/edit")
def update_donation(
    donation_id: int,
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    donation = don_svc.get_donation(db, donation_id)
    try:
        donation_date = parse_date(form.get("donation_date"))
        amount = parse_amount(form.get("amount"))
    except ValueError:
        return render(request, "donations/form.html", ctx, db, status_code=400,
                      donation=donation, form=form, error_message=INVALID_INPUT)
    try:
        don_svc.update_donation(db, donation_id, donation_date, amount)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("donation_update_error", donation_id=donation_id, error=type(e).__name__)
        flash(db, ctx, "error", "Error updating donation.")
        return redirect(f"/donations/{donation_id}/edit")
    flash(db, ctx, "success", "Donation updated.")
    return redirect("/donations")


@router.post("/donations/{donation_id}/delete")
def delete_donation(
    donation_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        don_svc.delete_donation(db, donation_id)
    except RecordNotFound:
        flash(db, ctx, "error", "Donation not found.")
        return redirect("/donations")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("donation_delete_error", donation_id=donation_id, error=type(e).__name__)
        flash(db, ctx, "error", "Error deleting donation.")
        return redirect("/donations")
    flash(db, ctx, "success", "Donation deleted.")
    return redirect("/donations")
