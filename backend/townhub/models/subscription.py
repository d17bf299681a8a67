"""Notification subscriptions: a user opting in to a business or a place.

One row per (user_id, target); unsubscribe is a soft delete (is_active=False) and
re-subscribing reactivates the same row. Deleting the target nulls the FK (orphaned row).
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, true

from townhub.db.base import Base


class BusinessSubscription(Base):
    __tablename__ = "business_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "business_id", name="uq_business_subscriptions_user_business"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    business = relationship("Business")


class PlaceSubscription(Base):
    __tablename__ = "place_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "place_id", name="uq_place_subscriptions_user_place"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    place_id = Column(Integer, ForeignKey("places.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    place = relationship("Place")
