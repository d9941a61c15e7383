from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, JSON, ForeignKey
from hoteldesk.models.user import Base, utcnow


class Repair(Base):
    __tablename__ = 'repairs'
    # Status constants
    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    ALL_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED)
    CATEGORIES = ('electrical', 'plumbing', 'air_conditioning', 'furniture', 'other')
    URGENCY_LOW = 'low'
    URGENCY_MEDIUM = 'medium'
    URGENCY_HIGH = 'high'
    URGENCIES = (URGENCY_LOW, URGENCY_MEDIUM, URGENCY_HIGH)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    room: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    urgency: Mapped[str] = mapped_column(String(16), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    assignee_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

# Status flow: pending -> in_progress -> completed (terminal); in_progress -> pending on cancellation.
# in_progress always carries an assignee, pending never does.
