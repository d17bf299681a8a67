"""Business listed in the directory; owned by a BUSINESS_OWNER profile.

tier: subscription tier slug ('free', 'starter', 'growth', 'premium'); drives default quota limits.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from townhub.db.base import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    owner_id = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, unique=True)
    place_id = Column(Integer, ForeignKey("places.id", ondelete="SET NULL"), nullable=True)
    town_id = Column(Integer, ForeignKey("towns.id", ondelete="SET NULL"), nullable=True, index=True)
    tier = Column(String(32), nullable=False, server_default="free", default="free")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    place = relationship("Place", lazy="joined")
