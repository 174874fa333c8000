"""
模块职能：
- 活动（events）与场次（event_occurrences）的读写。
- 新增：同一事务里建 event 与首个场次；编辑：同事务更新两者；删除：先删场次再删活动。

日志：
- event_create / event_update / event_delete
"""
from __future__ import annotations
from typing import Dict, List, Tuple
from sqlalchemy.orm import Session
from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Event, EventOccurrence
from ellarises.infra.logger import emit


def list_event_occurrences(db: Session) -> List[Tuple[Event, EventOccurrence]]:
    return (db.query(Event, EventOccurrence)
            .join(EventOccurrence, EventOccurrence.event_id == Event.id)
            .order_by(EventOccurrence.starts_at.asc())
            .all())


def list_events(db: Session) -> List[Event]:
    return db.query(Event).order_by(Event.name.asc()).all()


def get_event_with_occurrence(db: Session, event_id: int) -> Tuple[Event, EventOccurrence]:
    row = (db.query(Event, EventOccurrence)
           .join(EventOccurrence, EventOccurrence.event_id == Event.id)
           .filter(Event.id == event_id)
           .order_by(EventOccurrence.starts_at.asc())
           .first())
    if row is None:
        raise RecordNotFound("event", event_id)
    return row


def _apply(event: Event, occ: EventOccurrence, data: Dict):
    event.name = data["name"]
    event.type = data.get("type")
    event.description = data.get("description") or ""
    event.recurrence_pattern = data.get("recurrence") or "None"
    event.default_capacity = data.get("capacity")
    occ.starts_at = data.get("starts_at")
    occ.ends_at = data.get("ends_at")
    occ.location = data.get("location")
    occ.capacity = data.get("capacity")
    occ.registration_deadline = data.get("deadline")


def create_event(db: Session, data: Dict) -> Event:
    event, occ = Event(), EventOccurrence()
    _apply(event, occ, data)
    occ.event = event
    # 一次 commit 内同时落库 event 与场次
    db.add_all([event, occ]); db.commit()
    emit("event_create", event_id=event.id)
    return event


def update_event(db: Session, event_id: int, data: Dict) -> Event:
    event, occ = get_event_with_occurrence(db, event_id)
    # 所有场次同步更新（与首个场次保持一致）
    _apply(event, occ, data)
    for other in event.occurrences:
        if other is not occ:
            other.starts_at, other.ends_at = occ.starts_at, occ.ends_at
            other.location, other.capacity = occ.location, occ.capacity
            other.registration_deadline = occ.registration_deadline
    db.commit()
    emit("event_update", event_id=event_id)
    return event


def delete_event(db: Session, event_id: int) -> None:
    event = db.get(Event, event_id)
    if event is None:
        raise RecordNotFound("event", event_id)
    (db.query(EventOccurrence)
       .filter(EventOccurrence.event_id == event_id)
       .delete(synchronize_session=False))
    db.delete(event)
    db.commit()
    emit("event_delete", event_id=event_id)
