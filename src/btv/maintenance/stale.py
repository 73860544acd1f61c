"""Stale beat detection: old, unvisited and disconnected beats."""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from ..models import EnrichedBeat, utcnow

MIN_AGE_DAYS = 30
RECENT_VIEW_DAYS = 14
VERY_OLD_DAYS = 60


@dataclass
class StaleReason:
    code: str
    message: str
    suggestion: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def age_days(eb: EnrichedBeat, now: datetime | None = None) -> int:
    now = now or utcnow()
    return int((now - eb.created_at).total_seconds() // 86400)


def is_stale(
    eb: EnrichedBeat,
    now: datetime | None = None,
    min_age_days: int = MIN_AGE_DAYS,
    recent_view_days: int = RECENT_VIEW_DAYS,
) -> bool:
    """True for beats at least min_age_days old that were not viewed
    recently and are neither linked to a bead nor part of a chain."""
    now = now or utcnow()
    if now - eb.created_at < timedelta(days=min_age_days):
        return False
    if eb.view_count > 0 and eb.last_viewed_at is not None:
        if now - eb.last_viewed_at < timedelta(days=recent_view_days):
            return False
    if eb.linked_beads or eb.chain_ids:
        return False
    return True


def find_stale_beats(
    beats: list[EnrichedBeat],
    now: datetime | None = None,
    min_age_days: int = MIN_AGE_DAYS,
    recent_view_days: int = RECENT_VIEW_DAYS,
) -> list[EnrichedBeat]:
    now = now or utcnow()
    return [b for b in beats if is_stale(b, now, min_age_days, recent_view_days)]


def stale_reasons(eb: EnrichedBeat, now: datetime | None = None) -> list[StaleReason]:
    """Why a beat looks stale, most important first, with a suggested action."""
    now = now or utcnow()
    reasons = []
    age = age_days(eb, now)

    if age > VERY_OLD_DAYS:
        reasons.append(StaleReason("very_old", f"Beat is {age} days old",
                                   "Review for relevance, archive if outdated"))
    elif age > MIN_AGE_DAYS:
        reasons.append(StaleReason("old", f"Beat is {age} days old",
                                   "Consider converting to bead or archiving"))

    if eb.view_count == 0:
        reasons.append(StaleReason("never_viewed", "Never viewed in btv",
                                   "Review content, may contain forgotten insight"))
    elif eb.last_viewed_at is not None:
        since_view = int((now - eb.last_viewed_at).total_seconds() // 86400)
        if since_view > RECENT_VIEW_DAYS:
            reasons.append(StaleReason("not_recently_viewed", f"Not viewed in {since_view} days",
                                       "Revisit to assess current relevance"))

    if not eb.linked_beads:
        reasons.append(StaleReason("no_linked_beads", "Not linked to any beads",
                                   "Convert to bead if actionable"))
    if not eb.chain_ids:
        reasons.append(StaleReason("not_in_chain", "Not part of any thought chain",
                                   "Add to chain if related to other beats"))

    return reasons
