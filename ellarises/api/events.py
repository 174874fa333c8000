# ellarises/api/events.py
"""
活动页面

路由：
- GET  /events                   公共列表（活动 + 场次，按开始时间升序）
- GET  /events/new               新增表单（manager）
- POST /events/new               新增活动与首个场次（manager，单事务）
- GET  /events/{id}/edit         编辑表单（manager）
- POST /events/{id}/edit         更新活动与场次（manager）
- POST /events/{id}/delete       删除场次与活动（manager）
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields, blank_to_none, parse_datetime, parse_int
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit_error
from ellarises.services import events as event_svc

router = APIRouter(tags=["events"])
manager_only = [Depends(require_role(Role.manager))]


def _event_data(form: Dict[str, str]) -> Dict:
    if not form.get("name"):
        raise ValueError("Event name is required.")
    try:
        return {
            "name": form["name"],
            "type": blank_to_none(form.get("type", "")),
            "description": form.get("description", ""),
            "recurrence": blank_to_none(form.get("recurrence", "")),
            "capacity": parse_int(form.get("capacity")),
            "starts_at": parse_datetime(form.get("starts_at")),
            "ends_at": parse_datetime(form.get("ends_at")),
            "location": blank_to_none(form.get("location", "")),
            "deadline": parse_datetime(form.get("deadline")),
        }
    except ValueError as e:
        raise ValueError("Capacity and dates must be valid values.") from e


@router.get("/events")
def list_events(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    rows = event_svc.list_event_occurrences(db)
    return render(request, "events/list.html", ctx, db, rows=rows)


@router.get("/events/new", dependencies=manager_only)
def new_event(request: Request, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return render(request, "events/form.html", ctx, db, event=None, occurrence=None, form={})


@router.post("/events/new", dependencies=manager_only)
def create_event(
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        data = _event_data(form)
    except ValueError as e:
        return render(request, "events/form.html", ctx, db, status_code=400,
                      event=None, occurrence=None, form=form, error_message=str(e))
    try:
        event_svc.create_event(db, data)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("event_create_error", error=type(e).__name__)
        flash(db, ctx, "error", "Failed to add event.")
        return redirect("/events/new")
    flash(db, ctx, "success", "Event added.")
    return redirect("/events")


@router.get("/events/{event_id}/edit", dependencies=manager_only)
def edit_event(
    event_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    event, occurrence = event_svc.get_event_with_occurrence(db, event_id)
    return render(request, "events/form.html", ctx, db, event=event, occurrence=occurrence, form={})


@router.post("/events/{event_id}/edit", dependencies=manager_only)
def update_event(
    event_id: int,
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    event, occurrence = event_svc.get_event_with_occurrence(db, event_id)
    try:
        data = _event_data(form)
    except ValueError as e:
        return render(request, "events/form.html", ctx, db, status_code=400,
                      event=event, occurrence=occurrence, form=form, error_message=str(e))
    try:
        event_svc.update_event(db, event_id, data)
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("event_update_error", event_id=event_id, error=type(e).__name__)
        flash(db, ctx, "error", "Failed to update event.")
        return redirect(f"/events/{event_id}/edit")
    flash(db, ctx, "success", "Event updated.")
    return redirect("/events")


@router.post("/events/{event_id}/delete", dependencies=manager_only)
def delete_event(
    event_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        event_svc.delete_event(db, event_id)
    except RecordNotFound:
        flash(db, ctx, "error", "Event not found.")
        return redirect("/events")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("event_delete_error", event_id=event_id, error=type(e).__name__)
        flash(db, ctx, "error", "Failed to delete event.")
        return redirect("/events")
    flash(db, ctx, "success", "Event deleted.")
    return redirect("/events")
