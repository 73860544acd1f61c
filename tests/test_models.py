"""Tests for data models and their JSON forms."""

from datetime import datetime, timezone

from btv.models import (
    Cache,
    Chain,
    Channel,
    Cluster,
    EntityType,
    Source,
    ViewStat,
    parse_time,
    ripeness_emoji,
    ripeness_tier,
)


def test_parse_time_truncates_nanoseconds():
    t = parse_time("2025-01-15T10:30:00.123456789Z")
    assert t == datetime(2025, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)


def test_parse_time_offset_and_naive():
    assert parse_time("2025-01-15T10:30:00+02:00").utcoffset().total_seconds() == 7200
    assert parse_time("2025-01-15T10:30:00").tzinfo is timezone.utc


def test_parse_time_empty():
    assert parse_time("").year == 1
    assert parse_time(None).year == 1


def test_enum_display_names():
    assert str(Channel.DEVELOPMENT) == "Development"
    assert str(Source.GITHUB) == "GitHub"
    assert str(Source.CONVERSATION) == "Conversation"
    assert str(EntityType.ORGANIZATION) == "Organization"


def test_cache_reads_integer_enums():
    data = {
        "version": "0.2.0",
        "generated_at": "2025-01-15T10:30:00Z",
        "source_hash": "0123456789abcdef",
        "taxonomies": {"b1": {"channel": 4, "source": 4, "confidence": 1.0}},
        "entities": [{"name": "Ollama", "type": 1, "beat_ids": ["b1"]}],
        "entity_index": {"Ollama": ["b1"]},
        "ripeness": {"b1": 0.5},
        "clusters": None,
        "chains": None,
        "view_stats": {"b1": {"view_count": 2, "last_viewed_at": "2025-01-16T00:00:00Z"}},
        "embeddings_available": False,
    }
    cache = Cache.from_dict(data)
    assert cache.taxonomies["b1"].channel is Channel.DEVELOPMENT
    assert cache.taxonomies["b1"].source is Source.GITHUB
    assert cache.entities[0].type is EntityType.TOOL
    assert cache.clusters == [] and cache.chains == []
    assert cache.view_stats["b1"].view_count == 2

    out = cache.to_dict()
    assert out["taxonomies"]["b1"] == {"channel": 4, "source": 4, "confidence": 1.0}
    assert out["entities"][0]["type"] == 1


def test_chain_uses_ripeness_key():
    chain = Chain(id="chain-1", name="Retry work", beat_ids=["b1"], ripeness_score=0.4)
    assert chain.to_dict()["ripeness"] == 0.4
    assert Chain.from_dict(chain.to_dict()).ripeness_score == 0.4


def test_cluster_omits_empty_optional_fields():
    out = Cluster(id="cluster-1", name="x", beat_ids=["a", "b"]).to_dict()
    assert "centroid" not in out
    assert "ripeness_score" not in out


def test_view_stat_without_views():
    assert ViewStat().to_dict() == {"view_count": 0}


def test_ripeness_tiers():
    assert ripeness_tier(0.0) == "Fresh"
    assert ripeness_tier(0.3) == "Maturing"
    assert ripeness_tier(0.6) == "Ripe"
    assert ripeness_tier(0.8) == "Overripe"


def test_parse_time_short_fractions():
    assert parse_time("2025-01-15T10:30:00.12Z") == datetime(2025, 1, 15, 10, 30, 0, 120000, tzinfo=timezone.utc)
    assert parse_time("2025-01-15T10:30:00.5+02:00").microsecond == 500000
    assert parse_time("2025-01-15T10:30:00.00001").microsecond == 10


def test_ripeness_emoji():
    assert ripeness_emoji(0.1) == "⚪"
    assert ripeness_emoji(0.3) == "🟡"
    assert ripeness_emoji(0.6) == "🟢"
    assert ripeness_emoji(0.95) == "🔴"
