"""
模块职能：
- 捐赠列表：按捐赠人姓 / 名 / 全名或金额模糊搜索；按 donor / date / amount 排序（默认 date desc）；分页 50。
- 新增捐赠：先把捐赠人登记为新参与者，再写捐赠记录（同一事务）。

日志：
- donation_create / donation_update / donation_delete
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session
from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Donation, Participant
from ellarises.services.pagination import Page, paginate, resolve_sort
from ellarises.infra.logger import emit

SORT_COLUMNS = {
    "donor": Participant.last_name,
    "date": Donation.donation_date,
    "amount": Donation.amount,
}


def list_donations(db: Session, search: str = "", sort_by: Optional[str] = None,
                   sort_order: Optional[str] = None, page: int = 1) -> Page:
    q = (db.query(Donation, Participant)
         .outerjoin(Participant, Donation.participant_id == Participant.id))
    term = (search or "").strip()
    if term:
        like = f"%{term.lower()}%"
        full_name = func.lower(Participant.first_name + " " + Participant.last_name)
        q = q.filter(or_(
            func.lower(Participant.first_name).like(like),
            func.lower(Participant.last_name).like(like),
            full_name.like(like),
            cast(Donation.amount, String).like(f"%{term}%"),
        ))
    _, _, order_by = resolve_sort(sort_by, sort_order, SORT_COLUMNS, "date", "desc")
    return paginate(q.order_by(order_by, Donation.id.desc()), page)


def get_donation(db: Session, donation_id: int) -> Donation:
    d = db.get(Donation, donation_id)
    if d is None:
        raise RecordNotFound("donation", donation_id)
    return d


def create_donation(db: Session, first_name: str, last_name: str,
                    donation_date: Optional[date], amount: Decimal) -> Donation:
    donor = Participant(first_name=first_name, last_name=last_name)
    d = Donation(participant=donor, donation_date=donation_date, amount=amount)
    db.add_all([donor, d]); db.commit(); db.refresh(d)
    emit("donation_create", donation_id=d.id, participant_id=d.participant_id)
    return d


def update_donation(db: Session, donation_id: int, donation_date: Optional[date], amount: Decimal) -> Donation:
    d = get_donation(db, donation_id)
    d.donation_date = donation_date
    d.amount = amount
    db.add(d); db.commit()
    emit("donation_update", donation_id=donation_id)
    return d


def delete_donation(db: Session, donation_id: int) -> None:
    d = get_donation(db, donation_id)
    db.delete(d); db.commit()
    emit("donation_delete", donation_id=donation_id)
