"""
Quota ledger: monthly notification/event caps per business and per town.

One quota_counters row per (owner_kind, owner_id, resource_kind), created lazily on first
consume with the limit derived from the business tier or the town package.

- check_quota: pure read (no row is created; a missing row reports used=0 and the default limit).
- consume_quota: single conditional UPDATE (increment only while used < limit), so two
  concurrent consumes can never both take the last unit.
- reset_monthly_quotas: batch job; each due counter is reset in its own transaction and
  reset_at is stepped month by month from its previous value until it is in the future.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from townhub.core.constants import (
    BUSINESS_TIERS,
    DEFAULT_BUSINESS_TIER,
    OWNER_BUSINESS,
    OWNER_TOWN,
    RESOURCE_EVENT,
    RESOURCE_KINDS,
    RESOURCE_NOTIFICATION,
    ROLE_BUSINESS_OWNER,
    ROLE_SUPER_ADMIN,
    ROLE_TOWN_ADMIN,
    TOWN_TIER,
)
from townhub.core.errors import Forbidden, InvalidInput, NotFound, QuotaExceeded
from townhub.models.business import Business
from townhub.models.profile import Profile
from townhub.models.quota_counter import QuotaCounter
from townhub.models.town import Town
from townhub.utils.time import add_month, as_utc, start_of_next_month, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaOwner:
    """A business or a town. None is used instead of an owner for the unlimited context."""

    owner_id: int
    owner_kind: str
    name: str | None = None


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    used: int
    limit: int | None
    remaining: int | None

    @classmethod
    def from_counts(cls, used: int, limit: int | None) -> "QuotaStatus":
        if limit is None:
            return cls(allowed=True, used=used, limit=None, remaining=None)
        return cls(allowed=used < limit, used=used, limit=limit, remaining=max(0, limit - used))

    @classmethod
    def unlimited(cls) -> "QuotaStatus":
        return cls.from_counts(0, None)

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "used": self.used, "limit": self.limit, "remaining": self.remaining}


@dataclass
class ResetResult:
    reset_count: int
    failed_count: int
    reset_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "resetCount": self.reset_count,
            "failedCount": self.failed_count,
            "resetAt": self.reset_at.isoformat(),
        }


def _validate_resource(resource_kind: str) -> None:
    if resource_kind not in RESOURCE_KINDS:
        raise InvalidInput(f"Unknown quota resource: {resource_kind}")


# --- Limits ---


def _business_tier_limit(tier: str | None, resource_kind: str) -> int | None:
    limits = BUSINESS_TIERS.get(tier or DEFAULT_BUSINESS_TIER) or BUSINESS_TIERS[DEFAULT_BUSINESS_TIER]
    return limits[resource_kind]


def _town_limit(town: Town, resource_kind: str) -> int | None:
    override = town.monthly_notification_limit if resource_kind == RESOURCE_NOTIFICATION else town.monthly_event_limit
    return override if override is not None else TOWN_TIER[resource_kind]


def default_limit(db: Session, owner: QuotaOwner, resource_kind: str) -> int | None:
    """Limit a new counter starts with. Raises NotFound when the owner row is gone."""
    if owner.owner_kind == OWNER_BUSINESS:
        business = db.get(Business, owner.owner_id)
        if business is None:
            raise NotFound("Business not found")
        return _business_tier_limit(business.tier, resource_kind)
    if owner.owner_kind == OWNER_TOWN:
        town = db.get(Town, owner.owner_id)
        if town is None:
            raise NotFound("Town not found")
        return _town_limit(town, resource_kind)
    raise InvalidInput(f"Unknown quota owner kind: {owner.owner_kind}")


# --- Counters ---


def _counter_filter(owner: QuotaOwner, resource_kind: str):
    return (
        QuotaCounter.owner_kind == owner.owner_kind,
        QuotaCounter.owner_id == owner.owner_id,
        QuotaCounter.resource_kind == resource_kind,
    )


def get_counter(db: Session, owner: QuotaOwner, resource_kind: str) -> QuotaCounter | None:
    return db.query(QuotaCounter).filter(*_counter_filter(owner, resource_kind)).first()


def _insert_counter_if_missing(db: Session, values: dict[str, Any]) -> None:
    """INSERT ... ON CONFLICT DO NOTHING on the owner/resource key (two first-consumes may race)."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        try:
            db.add(QuotaCounter(**values))
            db.commit()
        except IntegrityError:
            db.rollback()
        return
    stmt = insert(QuotaCounter).values(**values).on_conflict_do_nothing(
        index_elements=["owner_kind", "owner_id", "resource_kind"]
    )
    db.execute(stmt)
    db.commit()


def ensure_counter(db: Session, owner: QuotaOwner, resource_kind: str) -> None:
    if get_counter(db, owner, resource_kind) is not None:
        return
    now = utcnow()
    _insert_counter_if_missing(
        db,
        {
            "owner_kind": owner.owner_kind,
            "owner_id": owner.owner_id,
            "resource_kind": resource_kind,
            "used": 0,
            "limit": default_limit(db, owner, resource_kind),
            "reset_at": start_of_next_month(now),
        },
    )
    logger.info("Created %s quota counter for %s %s", resource_kind, owner.owner_kind, owner.owner_id)


def _current_limit(db: Session, counter: QuotaCounter) -> int | None:
    """Limit for the owner's current tier; keeps the stored limit if the owner row is gone."""
    owner = QuotaOwner(owner_id=counter.owner_id, owner_kind=counter.owner_kind)
    try:
        return default_limit(db, owner, counter.resource_kind)
    except NotFound:
        return counter.limit


def check_quota(db: Session, owner: QuotaOwner | None, resource_kind: str) -> QuotaStatus:
    """Is one more unit allowed right now? Read-only."""
    _validate_resource(resource_kind)
    if owner is None:
        return QuotaStatus.unlimited()
    row = get_counter(db, owner, resource_kind)
    if row is None:
        return QuotaStatus.from_counts(0, default_limit(db, owner, resource_kind))
    return QuotaStatus.from_counts(row.used, _current_limit(db, row))


def consume_quota(db: Session, owner: QuotaOwner | None, resource_kind: str) -> QuotaStatus:
    """
    Take one unit of quota. Raises QuotaExceeded (nothing consumed) when used == limit.
    Commits on success; returns the status after the increment.
    """
    _validate_resource(resource_kind)
    if owner is None:
        return QuotaStatus.unlimited()
    ensure_counter(db, owner, resource_kind)
    limit = _current_limit(db, get_counter(db, owner, resource_kind))
    stmt = update(QuotaCounter).where(*_counter_filter(owner, resource_kind))
    if limit is not None:
        stmt = stmt.where(QuotaCounter.used < limit)
    result = db.execute(
        stmt.values(used=QuotaCounter.used + 1, limit=limit, updated_at=utcnow()).execution_options(
            synchronize_session=False
        )
    )
    if result.rowcount != 1:
        db.rollback()
        status = check_quota(db, owner, resource_kind)
        logger.info(
            "Quota exceeded: %s %s %s used=%s limit=%s",
            owner.owner_kind,
            owner.owner_id,
            resource_kind,
            status.used,
            status.limit,
        )
        raise QuotaExceeded(f"Monthly {resource_kind} quota exceeded", quota=status.to_dict())
    db.commit()
    row = get_counter(db, owner, resource_kind)
    return QuotaStatus.from_counts(row.used, row.limit)


# --- Monthly reset ---


def next_reset_after(previous: datetime, now: datetime) -> datetime:
    """Step from the previous boundary one calendar month at a time until it is after now."""
    nxt = add_month(previous)
    while nxt <= now:
        nxt = add_month(nxt)
    return nxt


def reset_monthly_quotas(db: Session, now: datetime | None = None) -> ResetResult:
    """
    Zero every counter whose reset_at <= now. Counters are reset independently: a failure
    on one is logged and counted, the rest still run. Running twice in a row resets nothing
    the second time. The limit is refreshed from the owner's current tier.
    """
    now = as_utc(now) if now else utcnow()
    due_ids = [
        row_id
        for (row_id,) in db.query(QuotaCounter.id).filter(QuotaCounter.reset_at <= now).order_by(QuotaCounter.id).all()
    ]
    reset_count = 0
    failed_count = 0
    for counter_id in due_ids:
        try:
            counter = db.get(QuotaCounter, counter_id)
            if counter is None:
                continue
            previous = counter.reset_at
            result = db.execute(
                update(QuotaCounter)
                .where(QuotaCounter.id == counter_id, QuotaCounter.reset_at == previous)
                .values(
                    used=0,
                    reset_at=next_reset_after(as_utc(previous), now),
                    limit=_current_limit(db, counter),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
            if result.rowcount == 1:
                reset_count += 1
        except Exception as e:
            db.rollback()
            failed_count += 1
            logger.warning("Quota reset failed for counter %s: %s", counter_id, e, exc_info=True)
        finally:
            db.expire_all()
    if due_ids:
        logger.info("Quota reset: %s reset, %s failed (of %s due)", reset_count, failed_count, len(due_ids))
    return ResetResult(reset_count=reset_count, failed_count=failed_count, reset_at=now)


# --- Owner context ---


def resolve_owner_context(db: Session, profile: Profile) -> QuotaOwner | None:
    """
    Which owner's quota does this caller spend? Business owners spend their business's,
    town and super admins their town's. A super admin without a town is unlimited (None).
    """
    if profile.role == ROLE_BUSINESS_OWNER:
        business = db.query(Business).filter(Business.owner_id == profile.id).first()
        if business is None:
            raise NotFound("No business found for this account")
        return QuotaOwner(owner_id=business.id, owner_kind=OWNER_BUSINESS, name=business.name)
    if profile.role in (ROLE_TOWN_ADMIN, ROLE_SUPER_ADMIN):
        if profile.town_id is None:
            if profile.role == ROLE_SUPER_ADMIN:
                return None
            raise Forbidden("Town admin has no town assigned")
        town = db.get(Town, profile.town_id)
        if town is None:
            raise NotFound("Town not found")
        return QuotaOwner(owner_id=town.id, owner_kind=OWNER_TOWN, name=town.name)
    raise Forbidden()


def quota_report(db: Session, owner: QuotaOwner | None) -> dict[str, Any]:
    """Notification and event quota for the owner (GET /notifications/quota)."""
    if owner is None:
        return {
            "entityType": "super_admin",
            "notifications": QuotaStatus.unlimited().to_dict(),
            "events": QuotaStatus.unlimited().to_dict(),
        }
    return {
        "entityType": owner.owner_kind,
        "entityId": owner.owner_id,
        "entityName": owner.name,
        "notifications": check_quota(db, owner, RESOURCE_NOTIFICATION).to_dict(),
        "events": check_quota(db, owner, RESOURCE_EVENT).to_dict(),
    }
