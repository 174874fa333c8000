"""
模块职能：
- 里程碑按标题分组统计（条数 + 去重参与者数），可按标题模糊搜索。
- 单个标题的明细（关联参与者，按日期倒序）。
- 为参与者新增 / 删除里程碑。

日志：
- milestone_create / milestone_delete
"""
from __future__ import annotations
from datetime import date
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Milestone, Participant
from ellarises.infra.logger import emit


def grouped_milestones(db: Session, search: str = "") -> List[tuple]:
    """返回 [(title, milestone_count, participant_count)]。"""
    q = (db.query(
            Milestone.title,
            func.count(Milestone.id).label("milestone_count"),
            func.count(func.distinct(Milestone.participant_id)).label("participant_count"),
         )
         .group_by(Milestone.title))
    term = (search or "").strip()
    if term:
        q = q.filter(func.lower(Milestone.title).like(f"%{term.lower()}%"))
    return q.order_by(Milestone.title.asc()).all()


def milestone_detail(db: Session, title: str) -> List[tuple]:
    return (db.query(Milestone, Participant)
            .outerjoin(Participant, Milestone.participant_id == Participant.id)
            .filter(Milestone.title == title)
            .order_by(Milestone.milestone_date.desc())
            .all())


def distinct_participants(rows: List[tuple]) -> int:
    return len({m.participant_id for m, _ in rows})


def create_milestone(db: Session, participant_id: int, title: str,
                     milestone_date: Optional[date]) -> Milestone:
    if db.get(Participant, participant_id) is None:
        raise RecordNotFound("participant", participant_id)
    m = Milestone(participant_id=participant_id, title=title, milestone_date=milestone_date)
    db.add(m); db.commit(); db.refresh(m)
    emit("milestone_create", milestone_id=m.id, participant_id=participant_id)
    return m


def delete_milestone(db: Session, milestone_id: int) -> int:
    """删除并返回所属 participant_id（供跳转回详情页）。"""
    m = db.get(Milestone, milestone_id)
    if m is None:
        raise RecordNotFound("milestone", milestone_id)
    participant_id = m.participant_id
    db.delete(m); db.commit()
    emit("milestone_delete", milestone_id=milestone_id)
    return participant_id
