"""
模块职能：
- 参与者 CRUD；列表支持按姓名 / 邮箱 / 电话模糊搜索（不区分大小写），按姓排序，分页 50。

日志：
- participant_create / participant_update / participant_delete
"""
from __future__ import annotations
from typing import Dict, List
from sqlalchemy import or_
from sqlalchemy.orm import Session
from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Participant, Milestone
from ellarises.services.pagination import Page, paginate
from ellarises.infra.logger import emit

FIELDS = (
    "first_name", "last_name", "email", "phone", "dob", "role", "city", "state", "zip",
    "school_or_employer", "field_of_interest",
)
REQUIRED = ("first_name", "last_name", "email")


def missing_required(data: Dict) -> List[str]:
    return [k for k in REQUIRED if not data.get(k)]


def list_participants(db: Session, search: str = "", page: int = 1) -> Page:
    q = db.query(Participant)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(
            Participant.first_name.ilike(like),
            Participant.last_name.ilike(like),
            Participant.email.ilike(like),
            Participant.phone.ilike(like),
        ))
    q = q.order_by(Participant.last_name.asc(), Participant.first_name.asc())
    return paginate(q, page)


def get_participant(db: Session, participant_id: int) -> Participant:
    p = db.get(Participant, participant_id)
    if p is None:
        raise RecordNotFound("participant", participant_id)
    return p


def participant_milestones(db: Session, participant_id: int) -> List[Milestone]:
    return (db.query(Milestone)
            .filter(Milestone.participant_id == participant_id)
            .order_by(Milestone.milestone_date.desc())
            .all())


def create_participant(db: Session, data: Dict) -> Participant:
    p = Participant(**{k: data.get(k) for k in FIELDS})
    db.add(p); db.commit(); db.refresh(p)
    emit("participant_create", participant_id=p.id)
    return p


def update_participant(db: Session, participant_id: int, data: Dict) -> Participant:
    p = get_participant(db, participant_id)
    for k in FIELDS:
        setattr(p, k, data.get(k))
    db.add(p); db.commit()
    emit("participant_update", participant_id=participant_id)
    return p


def delete_participant(db: Session, participant_id: int) -> None:
    p = get_participant(db, participant_id)
    db.delete(p); db.commit()
    emit("participant_delete", participant_id=participant_id)
