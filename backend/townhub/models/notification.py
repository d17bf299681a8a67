"""Outbound notification sent by a business or a town.

status: 'draft' -> 'sending' -> 'sent' | 'failed'. audience_count = devices resolved;
delivery_count = devices the transport accepted. payload is stored in the 'data' column.
"""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from townhub.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String(32), nullable=False, index=True)
    target_type = Column(String(32), nullable=False)
    image_url = Column(String(1024), nullable=True)
    payload = Column("data", JSON, nullable=False, default=dict)
    status = Column(String(16), nullable=False, server_default="draft", default="draft", index=True)
    sender_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="SET NULL"), nullable=True, index=True)
    town_id = Column(Integer, ForeignKey("towns.id", ondelete="SET NULL"), nullable=True, index=True)
    audience_count = Column(Integer, nullable=False, server_default="0", default=0)
    delivery_count = Column(Integer, nullable=False, server_default="0", default=0)
    click_count = Column(Integer, nullable=False, server_default="0", default=0)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
