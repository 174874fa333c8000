"""
模块职能：

定义业务表与会话表（users 表见 models_user.py）：

participants：参与者档案

events / event_occurrences：活动定义与具体场次（一对多）

donations：捐赠记录（捐赠人即 participant）

surveys：活动场次的满意度问卷（含 overall_score 与 NPS 分桶）

milestones：参与者里程碑

web_sessions：服务端会话（cookie 中只放不透明 id，负载加密后落库）"""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Numeric, Float, ForeignKey,
)


def utcnow() -> datetime:
    # 统一用 naive UTC，SQLite 不保存时区
    return datetime.now(timezone.utc).replace(tzinfo=None)

Base = declarative_base()


class Participant(Base):
    __tablename__ = "participants"
    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    dob = Column(Date, nullable=True)
    role = Column(String(50), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip = Column(String(20), nullable=True)
    school_or_employer = Column(String(255), nullable=True)
    field_of_interest = Column(String(255), nullable=True)

    milestones = relationship("Milestone", back_populates="participant", cascade="all, delete-orphan")
    donations = relationship("Donation", back_populates="participant", cascade="all, delete-orphan")
    surveys = relationship("Survey", back_populates="participant", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Event(Base):
    __tablename__ = "events"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    type = Column(String(100), nullable=True)
    description = Column(Text, default="")
    recurrence_pattern = Column(String(100), default="None")
    default_capacity = Column(Integer, nullable=True)

    occurrences = relationship("EventOccurrence", back_populates="event")


class EventOccurrence(Base):
    __tablename__ = "event_occurrences"
    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.id"), index=True, nullable=False)
    starts_at = Column(DateTime, nullable=True, index=True)
    ends_at = Column(DateTime, nullable=True)
    location = Column(String(255), nullable=True)
    capacity = Column(Integer, nullable=True)
    registration_deadline = Column(DateTime, nullable=True)

    event = relationship("Event", back_populates="occurrences")
    surveys = relationship("Survey", back_populates="occurrence")


class Donation(Base):
    __tablename__ = "donations"
    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), index=True, nullable=True)
    donation_date = Column(Date, nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)

    participant = relationship("Participant", back_populates="donations")


class Survey(Base):
    __tablename__ = "surveys"
    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), index=True, nullable=False)
    occurrence_id = Column(Integer, ForeignKey("event_occurrences.id"), index=True, nullable=False)
    satisfaction_score = Column(Integer, nullable=False)
    usefulness_score = Column(Integer, nullable=False)
    instructor_score = Column(Integer, nullable=False)
    recommendation_score = Column(Integer, nullable=False)
    overall_score = Column(Float, nullable=False)
    nps_bucket = Column(String(20), nullable=False)
    comments = Column(Text, default="")

    participant = relationship("Participant", back_populates="surveys")
    occurrence = relationship("EventOccurrence", back_populates="surveys")


class Milestone(Base):
    __tablename__ = "milestones"
    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), index=True, nullable=False)
    title = Column(String(255), nullable=False, index=True)
    milestone_date = Column(Date, nullable=True)

    participant = relationship("Participant", back_populates="milestones")


class WebSession(Base):
    __tablename__ = "web_sessions"
    id = Column(String(64), primary_key=True)                      # cookie 中的不透明 token
    user_id = Column(Integer, index=True, nullable=False)
    data_encrypted = Column(Text, nullable=False)                  # 加密后的 {"user":..., "flashes":[...]}
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_accessed_at = Column(DateTime, nullable=False, default=utcnow)
