# ellarises/api/participants.py
"""
参与者页面（仅 manager）

路由：
- GET  /participants                 列表（search / page）
- GET  /participants/new             新增表单
- POST /participants/new             新增（名、姓、邮箱必填）
- GET  /participants/{id}            详情（含里程碑，按日期倒序）
- GET  /participants/{id}/edit       编辑表单
- POST /participants/{id}/edit       更新
- POST /participants/{id}/delete     删除
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields, blank_to_none, parse_date
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit_error
from ellarises.services import participants as part_svc
from ellarises.services.pagination import normalize_page

router = APIRouter(tags=["participants"], dependencies=[Depends(require_role(Role.manager))])


def _participant_data(form: Dict[str, str]) -> Dict:
    data = {k: blank_to_none(form.get(k, "")) for k in part_svc.FIELDS}
    data["dob"] = parse_date(form.get("dob"))
    return data


@router.get("/participants")
def list_participants(
    request: Request,
    search: str = "",
    page: str = "1",
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    result = part_svc.list_participants(db, search, normalize_page(page))
    return render(request, "participants/list.html", ctx, db,
                  participants=result.items, page=result.page, total=result.total,
                  total_pages=result.total_pages, search=search.strip())


@router.get("/participants/new")
def new_participant(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "participants/form.html", ctx, db, participant=None, form={})


@router.post("/participants/new")
def create_participant(
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        data = _participant_data(form)
    except ValueError:
        return render(request, "participants/form.html", ctx, db, status_code=400, participant=None,
                      form=form, error_message="Date of birth must be a valid date.")
    if part_svc.missing_required(data):
        return render(request, "participants/form.html", ctx, db, status_code=400, participant=None,
                      form=form, error_message="First Name, Last Name, and Email are required.")
    try:
        part_svc.create_participant(db, data)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("participant_create_error", error=type(e).__name__)
        flash(db, ctx, "error", "Unable to add participant. Please try again.")
        return redirect("/participants/new")
    flash(db, ctx, "success", "Participant added.")
    return redirect("/participants")


@router.get("/participants/{participant_id}")
def show_participant(
    participant_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    participant = part_svc.get_participant(db, participant_id)
    milestones = part_svc.participant_milestones(db, participant_id)
    return render(request, "participants/detail.html", ctx, db,
                  participant=participant, milestones=milestones)


@router.get("/participants/{participant_id}/edit")
def edit_participant(
    participant_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    participant = part_svc.get_participant(db, participant_id)
    return render(request, "participants/form.html", ctx, db, participant=participant, form={})


@router.post("/participants/{participant_id}/edit")
def update_participant(
    participant_id: int,
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    participant = part_svc.get_participant(db, participant_id)
    try:
        data = _participant_data(form)
    except ValueError:
        return render(request, "participants/form.html", ctx, db, status_code=400,
                      participant=participant, form=form,
                      error_message="Date of birth must be a valid date.")
    if part_svc.missing_required(data):
        return render(request, "participants/form.html", ctx, db, status_code=400,
                      participant=participant, form=form,
                      error_message="First Name, Last Name, and Email are required.")
    try:
        part_svc.update_participant(db, participant_id, data)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("participant_update_error", participant_id=participant_id, error=type(e).__name__)
        flash(db, ctx, "error", "Error updating participant.")
        return redirect(f"/participants/{participant_id}/edit")
    flash(db, ctx, "success", "Participant updated.")
    return redirect("/participants")


@router.post("/participants/{participant_id}/delete")
def delete_participant(
    participant_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        part_svc.delete_participant(db, participant_id)
    except RecordNotFound:
        flash(db, ctx, "error", "Participant not found.")
        return redirect("/participants")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("participant_delete_error", participant_id=participant_id, error=type(e).__name__)
        flash(db, ctx, "error", "Unable to delete participant.")
        return redirect("/participants")
    flash(db, ctx, "success", "Participant deleted.")
    return redirect("/participants")
