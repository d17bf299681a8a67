"""Town: tenant of the directory. Carries its own monthly notification/event limits."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from townhub.db.base import Base


class Town(Base):
    __tablename__ = "towns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    slug = Column(String(128), nullable=False, unique=True, index=True)
    # NULL = fall back to the town tier default (see core.constants.TOWN_TIER)
    monthly_notification_limit = Column(Integer, nullable=True)
    monthly_event_limit = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
