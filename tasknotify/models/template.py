"""Notification template model for SQLModel."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class NotificationTemplate(SQLModel, table=True):
    """Subject/message/HTML templates for one (type, channel, language)."""

    __tablename__ = "notification_templates"
    __table_args__ = (
        UniqueConstraint("type", "channel", "language", name="uq_notification_templates_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(max_length=50)
    channel: str = Field(max_length=20)
    language: str = Field(default="en", max_length=10)
    subject_template: str = Field(sa_column=Column(Text, nullable=False))
    message_template: str = Field(sa_column=Column(Text, nullable=False))
    html_template: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    variables: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))  # declared placeholders
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
