"""Monthly usage counter per (owner, resource kind).

owner_kind: 'business' | 'town'; resource_kind: 'notification' | 'event'.
limit: NULL = unlimited. reset_at: next monthly boundary; the reset job zeroes used and steps it forward.
"""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from townhub.db.base import Base


class QuotaCounter(Base):
    __tablename__ = "quota_counters"
    __table_args__ = (
        UniqueConstraint("owner_kind", "owner_id", "resource_kind", name="uq_quota_counters_owner_resource"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_kind = Column(String(16), nullable=False)
    owner_id = Column(Integer, nullable=False, index=True)
    resource_kind = Column(String(16), nullable=False)
    used = Column(Integer, nullable=False, server_default="0", default=0)
    limit = Column(Integer, nullable=True)
    reset_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
