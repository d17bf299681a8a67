"""Profile of an authenticated user.

user_id: external auth subject (JWT sub). id is what subscriptions, devices and deliveries reference.
notification_preferences: JSON, see services.preferences for shape and defaults (NULL = defaults).
"""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from townhub.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True)
    first_name = Column(String(128), nullable=True)
    role = Column(String(32), nullable=False, server_default="RESIDENT", default="RESIDENT")
    town_id = Column(Integer, ForeignKey("towns.id", ondelete="SET NULL"), nullable=True, index=True)
    notification_preferences = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
