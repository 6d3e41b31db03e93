"""
Study groups and their chat logs.

A group row holds the group document; each chat message is its own row so
that a reaction toggle rewrites one message instead of the whole log.
Both carry a `version` column used for compare-and-swap updates.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, ForeignKey, UniqueConstraint

from studygroup.db.base import Base


class StudyGroup(Base):
    __tablename__ = "study_groups"

    id = Column(String(36), primary_key=True)
    group_name = Column(String(255), nullable=False)
    admin = Column(String(64), nullable=False)
    members = Column(JSON, default=list, nullable=False)  # join order
    focus_courses = Column(JSON, default=list, nullable=False)
    suggested_times = Column(JSON, default=list, nullable=False)
    reason = Column(Text, default="", nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)


class GroupMessage(Base):
    __tablename__ = "group_messages"
    __table_args__ = (
        UniqueConstraint("group_id", "message_id", name="uq_group_message_id"),
    )

    # Autoincrement key doubles as arrival order
    seq = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(String(36), ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    message_id = Column(String(128), nullable=False)

    sender = Column(String(64), nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(String(32), default="", nullable=False)  # display string only
    parent_id = Column(String(128), nullable=True)
    reactions = Column(JSON, default=dict, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
