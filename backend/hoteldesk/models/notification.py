from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey
from hoteldesk.models.user import Base, utcnow


class Notification(Base):
    __tablename__ = 'notifications'
    TYPE_NEW_REQUEST = 'new_request'
    TYPE_STATUS_UPDATE = 'status_update'
    TYPE_COMPLETED = 'completed'
    TYPE_ASSIGNED = 'assigned'
    TYPE_USER_CREATED = 'user_created'
    ALL_TYPES = (TYPE_NEW_REQUEST, TYPE_STATUS_UPDATE, TYPE_COMPLETED, TYPE_ASSIGNED, TYPE_USER_CREATED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    related_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
