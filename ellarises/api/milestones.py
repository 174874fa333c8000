# ellarises/api/milestones.py
"""
里程碑页面（仅 manager）

路由：
- GET  /milestones                              按标题分组统计（search）
- GET  /milestones/{title}                      某标题的明细
- POST /participants/{id}/milestones            为参与者新增里程碑
- POST /milestones/{milestone_id}/delete        删除里程碑，回到参与者详情
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields, parse_date
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit_error
from ellarises.services import milestones as ms_svc

router = APIRouter(tags=["milestones"], dependencies=[Depends(require_role(Role.manager))])


@router.get("/milestones")
def list_milestones(
    request: Request,
    search: str = "",
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    groups = ms_svc.grouped_milestones(db, search)
    return render(request, "milestones/list.html", ctx, db, groups=groups, search=search.strip())


@router.get("/milestones/{title}")
def milestone_detail(
    title: str,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    rows = ms_svc.milestone_detail(db, title)
    return render(request, "milestones/detail.html", ctx, db, milestone_title=title, rows=rows,
                  participant_count=ms_svc.distinct_participants(rows))


@router.post("/participants/{participant_id}/milestones")
def add_milestone(
    participant_id: int,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    back = f"/participants/{participant_id}"
    title = form.get("title", "")
    if not title:
        flash(db, ctx, "error", "Milestone title is required.")
        return redirect(back)
    # 日期可留空；填了就必须合法
    try:
        milestone_date = parse_date(form.get("milestone_date"))
    except ValueError:
        flash(db, ctx, "error", "Milestone date must be a valid date.")
        return redirect(back)
    try:
        ms_svc.create_milestone(db, participant_id, title, milestone_date)
    except RecordNotFound:
        flash(db, ctx, "error", "Participant not found.")
        return redirect("/participants")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("milestone_create_error", participant_id=participant_id, error=type(e).__name__)
        flash(db, ctx, "error", "Unable to add milestone.")
        return redirect(back)
    flash(db, ctx, "success", "Milestone added.")
    return redirect(back)


@router.post("/milestones/{milestone_id}/delete")
def delete_milestone(
    milestone_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        participant_id = ms_svc.delete_milestone(db, milestone_id)
    except RecordNotFound:
        flash(db, ctx, "error", "Milestone not found.")
        return redirect("/milestones")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("milestone_delete_error", milestone_id=milestone_id, error=type(e).__name__)
        flash(db, ctx, "error", "Unable to delete milestone.")
        return redirect("/milestones")
    flash(db, ctx, "success", "Milestone deleted.")
    return redirect(f"/participants/{participant_id}")
