"""Place in a town (restaurant, museum, guesthouse, ...). Users can subscribe to a place."""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from townhub.db.base import Base


class Place(Base):
    __tablename__ = "places"

    id = Column(Integer, primary_key=True, autoincrement=True)
    town_id = Column(Integer, ForeignKey("towns.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    image_url = Column(String(1024), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
