# ellarises/api/surveys.py
"""
问卷页面

路由：
- GET  /surveys                 列表 + 筛选（manager）
- GET  /surveys/new             新增表单（公开：访客也可填写反馈）
- POST /surveys/new             新增（overall_score 与 NPS 分桶由服务层计算）
- GET  /surveys/{id}/edit       编辑表单（manager）
- POST /surveys/{id}/edit       更新并重新计算（manager）
- POST /surveys/{id}/delete     删除（manager）
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ellarises.api.deps.auth import get_context, require_role
from ellarises.api.forms import form_fields
from ellarises.api.rendering import render, redirect, flash
from ellarises.core.context import RequestContext
from ellarises.core.errors import RecordNotFound
from ellarises.core.models_user import Role
from ellarises.infra.db import get_db
from ellarises.infra.logger import emit_error
from ellarises.services import events as event_svc
from ellarises.services import surveys as survey_svc

router = APIRouter(tags=["surveys"])
manager_only = [Depends(require_role(Role.manager))]

INVALID_SURVEY = "Please choose a participant and an event, and give every score from 1 to 5."


def _parse_submission(form: Dict[str, str]):
    participant_id = int(form.get("participant_id") or "")
    occurrence_id = int(form.get("occurrence_id") or "")
    scores = survey_svc.parse_scores(form)
    return participant_id, occurrence_id, scores, form.get("comments", "")


@router.get("/surveys", dependencies=manager_only)
def list_surveys(
    request: Request,
    date: str = "",
    event: str = "",
    score: str = "",
    nps: str = "",
    search: str = "",
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = survey_svc.SurveyFilters(date=date, event=event, score=score, nps=nps, search=search.strip())
    rows = survey_svc.list_surveys(db, filters)
    return render(request, "surveys/list.html", ctx, db, rows=rows,
                  events_list=event_svc.list_events(db), filters=filters.as_dict(),
                  nps_buckets=survey_svc.NPS_BUCKETS)


@router.get("/surveys/new")
def new_survey(
    request: Request,
    submitted: Optional[str] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return render(request, "surveys/form.html", ctx, db, survey=None, form={},
                  submitted=bool(submitted), **survey_svc.form_options(db))


@router.post("/surveys/new")
def create_survey(
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        participant_id, occurrence_id, scores, comments = _parse_submission(form)
    except ValueError:
        return render(request, "surveys/form.html", ctx, db, status_code=400, survey=None, form=form,
                      error_message=INVALID_SURVEY, **survey_svc.form_options(db))
    try:
        survey_svc.create_survey(db, participant_id, occurrence_id, scores, comments)
    except RecordNotFound:
        return render(request, "surveys/form.html", ctx, db, status_code=400, survey=None, form=form,
                      error_message=INVALID_SURVEY, **survey_svc.form_options(db))
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("survey_create_error", error=type(e).__name__)
        return render(request, "surveys/form.html", ctx, db, status_code=500, survey=None, form=form,
                      error_message="Failed to create survey. Please try again.",
                      **survey_svc.form_options(db))

    if ctx.user is None:
        return redirect("/surveys/new?submitted=1")
    if ctx.user.level is Role.manager:
        flash(db, ctx, "success", "Survey created.")
    else:
        flash(db, ctx, "success", "Thank you for your feedback!")
    return redirect("/surveys/new")


@router.get("/surveys/{survey_id}/edit", dependencies=manager_only)
def edit_survey(
    survey_id: int,
    request: Request,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    survey = survey_svc.get_survey(db, survey_id)
    return render(request, "surveys/form.html", ctx, db, survey=survey, form={},
                  **survey_svc.form_options(db))


@router.post("/surveys/{survey_id}/edit", dependencies=manager_only)
def update_survey(
    survey_id: int,
    request: Request,
    form: Dict[str, str] = Depends(form_fields),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    survey = survey_svc.get_survey(db, survey_id)
    try:
        participant_id, occurrence_id, scores, comments = _parse_submission(form)
    except ValueError:
        return render(request, "surveys/form.html", ctx, db, status_code=400, survey=survey, form=form,
                      error_message=INVALID_SURVEY, **survey_svc.form_options(db))
    try:
        survey_svc.update_survey(db, survey_id, participant_id, occurrence_id, scores, comments)
    except RecordNotFound:
        return render(request, "surveys/form.html", ctx, db, status_code=400, survey=survey, form=form,
                      error_message=INVALID_SURVEY, **survey_svc.form_options(db))
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("survey_update_error", survey_id=survey_id, error=type(e).__name__)
        flash(db, ctx, "error", "Failed to update survey.")
        return redirect(f"/surveys/{survey_id}/edit")
    flash(db, ctx, "success", "Survey updated.")
    return redirect("/surveys")


@router.post("/surveys/{survey_id}/delete", dependencies=manager_only)
def delete_survey(
    survey_id: int,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        survey_svc.delete_survey(db, survey_id)
    except RecordNotFound:
        flash(db, ctx, "error", "Survey not found.")
        return redirect("/surveys")
    except SQLAlchemyError as e:
        db.rollback()
        emit_error("survey_delete_error", survey_id=survey_id, error=type(e).__name__)
        flash(db, ctx, "error", "Failed to delete survey.")
        return redirect("/surveys")
    flash(db, ctx, "success", "Survey deleted.")
    return redirect("/surveys")
