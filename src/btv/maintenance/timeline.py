"""Timeline buckets, activity gaps and taxonomy distribution."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from ..models import Channel, EnrichedBeat


class ZoomLevel(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


@dataclass
class TimelineBucket:
    date: datetime
    beat_ids: list[str] = field(default_factory=list)
    by_channel: dict[Channel, int] = field(default_factory=dict)

    @property
    def beat_count(self) -> int:
        return len(self.beat_ids)


@dataclass
class Timeline:
    zoom: ZoomLevel
    start: datetime | None = None
    end: datetime | None = None
    buckets: list[TimelineBucket] = field(default_factory=list)

    def max_beat_count(self) -> int:
        return max((b.beat_count for b in self.buckets), default=0)


def truncate_to_zoom(t: datetime, zoom: ZoomLevel) -> datetime:
    """Start of the day, ISO week (Monday), month or quarter containing t."""
    day = t.replace(hour=0, minute=0, second=0, microsecond=0)
    if zoom is ZoomLevel.DAY:
        return day
    if zoom is ZoomLevel.WEEK:
        return day - timedelta(days=day.weekday())
    if zoom is ZoomLevel.MONTH:
        return day.replace(day=1)
    quarter_month = (t.month - 1) // 3 * 3 + 1
    return day.replace(month=quarter_month, day=1)


def build_timeline(beats: list[EnrichedBeat], zoom: ZoomLevel = ZoomLevel.MONTH) -> Timeline:
    """Group beats into buckets at the given zoom, oldest bucket first."""
    if not beats:
        return Timeline(zoom=zoom)

    ordered = sorted(beats, key=lambda b: b.created_at)
    buckets: dict[datetime, TimelineBucket] = {}
    for eb in ordered:
        key = truncate_to_zoom(eb.created_at, zoom)
        bucket = buckets.setdefault(key, TimelineBucket(date=key))
        bucket.beat_ids.append(eb.id)
        channel = eb.taxonomy.channel
        bucket.by_channel[channel] = bucket.by_channel.get(channel, 0) + 1

    return Timeline(
        zoom=zoom,
        start=ordered[0].created_at,
        end=ordered[-1].created_at,
        buckets=sorted(buckets.values(), key=lambda b: b.date),
    )


def find_gaps(timeline: Timeline, threshold_days: int = 7) -> list[tuple[datetime, datetime]]:
    """Pairs of consecutive buckets further apart than threshold_days."""
    threshold = timedelta(days=threshold_days)
    gaps = []
    for prev, curr in zip(timeline.buckets, timeline.buckets[1:]):
        if curr.date - prev.date > threshold:
            gaps.append((prev.date, curr.date))
    return gaps


def taxonomy_stats(beats: list[EnrichedBeat]) -> dict:
    """Counts of beats per channel and per source."""
    channels: dict[str, int] = {}
    sources: dict[str, int] = {}
    for eb in beats:
        ch, src = str(eb.taxonomy.channel), str(eb.taxonomy.source)
        channels[ch] = channels.get(ch, 0) + 1
        sources[src] = sources.get(src, 0) + 1
    return {"channels": channels, "sources": sources, "total": len(beats)}
