"""
模块职能：
- 问卷打分：四项 1–5 分的算术平均为 overall_score；推荐度 5 → Promoter，4 → Passive，其余 Detractor。
- 列表筛选：场次日期、活动、最低综合分、NPS 分桶，以及对活动名 / 参与者姓名 / 评论 / 分桶的关键字搜索。
- 新增与编辑时统一重新计算 overall_score 与分桶。

日志：
- survey_create / survey_update / survey_delete
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Survey, Participant, Event, EventOccurrence
from ellarises.infra.logger import emit

SCORE_FIELDS = ("satisfaction_score", "usefulness_score", "instructor_score", "recommendation_score")
NPS_BUCKETS = ("Promoter", "Passive", "Detractor")


@dataclass
class SurveyFilters:
    date: str = ""
    event: str = ""
    score: str = ""
    nps: str = ""
    search: str = ""

    def as_dict(self) -> Dict[str, str]:
        return {"date": self.date, "event": self.event, "score": self.score,
                "nps": self.nps, "search": self.search}


def parse_scores(raw: Dict[str, str]) -> Dict[str, int]:
    """四项打分必须是 1–5 的整数，否则 ValueError。"""
    scores = {}
    for k in SCORE_FIELDS:
        v = int(str(raw.get(k, "")).strip())
        if not 1 <= v <= 5:
            raise ValueError(f"{k} out of range")
        scores[k] = v
    return scores


def overall_score(scores: Dict[str, int]) -> float:
    values = [scores[k] for k in SCORE_FIELDS]
    return sum(values) / len(values)


def nps_bucket(recommendation: int) -> str:
    if recommendation == 5:
        return "Promoter"
    if recommendation == 4:
        return "Passive"
    return "Detractor"


def list_surveys(db: Session, filters: SurveyFilters) -> List[tuple]:
    q = (db.query(Survey, Participant, Event, EventOccurrence)
         .join(Participant, Survey.participant_id == Participant.id)
         .join(EventOccurrence, Survey.occurrence_id == EventOccurrence.id)
         .join(Event, EventOccurrence.event_id == Event.id))

    if filters.date:
        try:
            day = date.fromisoformat(filters.date).isoformat()
        except ValueError:
            day = None
        if day:
            q = q.filter(func.date(EventOccurrence.starts_at) == day)
    if filters.event.isdigit():
        q = q.filter(Event.id == int(filters.event))
    if filters.score:
        try:
            q = q.filter(Survey.overall_score >= float(filters.score))
        except ValueError:
            pass
    if filters.nps:
        q = q.filter(Survey.nps_bucket == filters.nps)
    term = (filters.search or "").strip()
    if term:
        like = f"%{term.lower()}%"
        q = q.filter(or_(
            func.lower(Event.name).like(like),
            func.lower(Participant.first_name).like(like),
            func.lower(Participant.last_name).like(like),
            func.lower(Survey.comments).like(like),
            func.lower(Survey.nps_bucket).like(like),
        ))
    return q.order_by(Survey.id.desc()).all()


def form_options(db: Session) -> Dict[str, list]:
    """新增 / 编辑表单的下拉选项：参与者与活动场次。"""
    participants = db.query(Participant).order_by(Participant.last_name.asc()).all()
    occurrences = (db.query(EventOccurrence, Event)
                   .join(Event, EventOccurrence.event_id == Event.id)
                   .order_by(EventOccurrence.starts_at.desc())
                   .all())
    return {"participants": participants, "occurrences": occurrences}


def get_survey(db: Session, survey_id: int) -> Survey:
    s = db.get(Survey, survey_id)
    if s is None:
        raise RecordNotFound("survey", survey_id)
    return s


def _check_refs(db: Session, participant_id: int, occurrence_id: int) -> None:
    # SQLite 默认不校验外键，这里显式检查
    if db.get(Participant, participant_id) is None:
        raise RecordNotFound("participant", participant_id)
    if db.get(EventOccurrence, occurrence_id) is None:
        raise RecordNotFound("occurrence", occurrence_id)


def _apply(s: Survey, participant_id: int, occurrence_id: int, scores: Dict[str, int], comments: Optional[str]):
    s.participant_id = participant_id
    s.occurrence_id = occurrence_id
    for k, v in scores.items():
        setattr(s, k, v)
    s.overall_score = overall_score(scores)
    s.nps_bucket = nps_bucket(scores["recommendation_score"])
    s.comments = comments or ""


def create_survey(db: Session, participant_id: int, occurrence_id: int,
                  scores: Dict[str, int], comments: Optional[str] = "") -> Survey:
    _check_refs(db, participant_id, occurrence_id)
    s = Survey()
    _apply(s, participant_id, occurrence_id, scores, comments)
    db.add(s); db.commit(); db.refresh(s)
    emit("survey_create", survey_id=s.id, nps_bucket=s.nps_bucket)
    return s


def update_survey(db: Session, survey_id: int, participant_id: int, occurrence_id: int,
                  scores: Dict[str, int], comments: Optional[str] = "") -> Survey:
    s = get_survey(db, survey_id)
    _check_refs(db, participant_id, occurrence_id)
    _apply(s, participant_id, occurrence_id, scores, comments)
    db.add(s); db.commit()
    emit("survey_update", survey_id=survey_id, nps_bucket=s.nps_bucket)
    return s


def delete_survey(db: Session, survey_id: int) -> None:
    s = get_survey(db, survey_id)
    db.delete(s); db.commit()
    emit("survey_delete", survey_id=survey_id)
