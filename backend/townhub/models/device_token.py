"""Device push token (Expo / APNs). token is globally unique; re-registration moves it to the caller."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func, true

from townhub.db.base import Base


class DeviceToken(Base):
    __tablename__ = "device_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(256), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(16), nullable=False, server_default="ios")
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    last_used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
