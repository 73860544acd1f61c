"""Tests for stale detection and timelines."""

from datetime import datetime, timedelta, timezone

from btv.maintenance.stale import find_stale_beats, is_stale, stale_reasons
from btv.maintenance.timeline import (
    ZoomLevel,
    build_timeline,
    find_gaps,
    taxonomy_stats,
    truncate_to_zoom,
)
from btv.models import Beat, Channel, EnrichedBeat, Impetus, Source, Taxonomy

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _eb(beat_id="b1", created=None, days_old=0, views=0, viewed_days_ago=None,
        linked_beads=None, chain_ids=None, channel=Channel.DISCOVERY, source=Source.INTERNAL):
    created = created or NOW - timedelta(days=days_old)
    beat = Beat(id=beat_id, created_at=created, updated_at=created, impetus=Impetus(),
                content="note", linked_beads=linked_beads or [])
    return EnrichedBeat(
        beat=beat,
        taxonomy=Taxonomy(channel=channel, source=source, confidence=0.7),
        chain_ids=chain_ids or [],
        view_count=views,
        last_viewed_at=NOW - timedelta(days=viewed_days_ago) if viewed_days_ago is not None else None,
    )


def test_stale_rules():
    assert is_stale(_eb(days_old=45), NOW)
    assert not is_stale(_eb(days_old=10), NOW)
    assert not is_stale(_eb(days_old=45, views=1, viewed_days_ago=3), NOW)
    assert is_stale(_eb(days_old=45, views=1, viewed_days_ago=20), NOW)
    assert not is_stale(_eb(days_old=45, linked_beads=["bd-1"]), NOW)
    assert not is_stale(_eb(days_old=45, chain_ids=["chain-1"]), NOW)


def test_custom_thresholds():
    assert is_stale(_eb(days_old=10), NOW, min_age_days=7)
    beats = [_eb("a", days_old=45), _eb("b", days_old=5)]
    assert [eb.id for eb in find_stale_beats(beats, NOW)] == ["a"]


def test_stale_reasons():
    codes = [r.code for r in stale_reasons(_eb(days_old=70), NOW)]
    assert codes == ["very_old", "never_viewed", "no_linked_beads", "not_in_chain"]

    reasons = stale_reasons(_eb(days_old=40, views=2, viewed_days_ago=30, chain_ids=["c"]), NOW)
    assert [r.code for r in reasons] == ["old", "not_recently_viewed", "no_linked_beads"]
    assert reasons[1].message == "Not viewed in 30 days"
    assert reasons[0].to_dict()["suggestion"]


def test_truncate_to_zoom():
    t = datetime(2025, 8, 14, 15, 30, tzinfo=timezone.utc)  # Thursday
    assert truncate_to_zoom(t, ZoomLevel.DAY) == datetime(2025, 8, 14, tzinfo=timezone.utc)
    assert truncate_to_zoom(t, ZoomLevel.WEEK) == datetime(2025, 8, 11, tzinfo=timezone.utc)
    assert truncate_to_zoom(t, ZoomLevel.MONTH) == datetime(2025, 8, 1, tzinfo=timezone.utc)
    assert truncate_to_zoom(t, ZoomLevel.QUARTER) == datetime(2025, 7, 1, tzinfo=timezone.utc)


def test_build_timeline():
    beats = [
        _eb("a", created=datetime(2025, 3, 20, tzinfo=timezone.utc), channel=Channel.RESEARCH),
        _eb("b", created=datetime(2025, 1, 5, tzinfo=timezone.utc)),
        _eb("c", created=datetime(2025, 1, 28, tzinfo=timezone.utc), channel=Channel.RESEARCH),
    ]
    tl = build_timeline(beats, ZoomLevel.MONTH)
    assert [b.date.month for b in tl.buckets] == [1, 3]
    assert tl.buckets[0].beat_ids == ["b", "c"]
    assert tl.buckets[0].by_channel == {Channel.DISCOVERY: 1, Channel.RESEARCH: 1}
    assert tl.start == datetime(2025, 1, 5, tzinfo=timezone.utc)
    assert tl.end == datetime(2025, 3, 20, tzinfo=timezone.utc)
    assert tl.max_beat_count() == 2

    assert build_timeline([]).buckets == []


def test_find_gaps():
    beats = [
        _eb("a", created=datetime(2025, 1, 1, tzinfo=timezone.utc)),
        _eb("b", created=datetime(2025, 1, 3, tzinfo=timezone.utc)),
        _eb("c", created=datetime(2025, 1, 20, tzinfo=timezone.utc)),
    ]
    gaps = find_gaps(build_timeline(beats, ZoomLevel.DAY), threshold_days=7)
    assert gaps == [(datetime(2025, 1, 3, tzinfo=timezone.utc), datetime(2025, 1, 20, tzinfo=timezone.utc))]


def test_taxonomy_stats():
    stats = taxonomy_stats([
        _eb("a", channel=Channel.RESEARCH, source=Source.GITHUB),
        _eb("b", channel=Channel.RESEARCH),
        _eb("c"),
    ])
    assert stats == {
        "channels": {"Research": 2, "Discovery": 1},
        "sources": {"GitHub": 1, "Internal": 2},
        "total": 3,
    }
