"""Data models used throughout btv."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

CACHE_VERSION = "0.2.0"
CACHE_FILE_NAME = "btv-cache.json"

GENERIC_LABEL = "manual entry"

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_FRACTION = re.compile(r"(\.\d{6})\d+")
_SHORT_FRACTION = re.compile(r"\.(\d{1,5})(?=[+-]|$)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_time(value: str | None) -> datetime:
    """Parse an RFC 3339 timestamp; nanosecond precision is truncated."""
    if not value:
        return _ZERO_TIME
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(r"\1", text)
    # fromisoformat before 3.11 only takes 3 or 6 fraction digits
    text = _SHORT_FRACTION.sub(lambda m: "." + m[1].ljust(6, "0"), text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_time(value: datetime) -> str:
    return value.isoformat()


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _text_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return list(value)


class Channel(IntEnum):
    """Primary classification of a beat."""
    UNKNOWN = 0
    COACHING = 1      # insights from coaching/mentoring
    RESEARCH = 2      # deliberate investigation
    DISCOVERY = 3     # serendipitous finding
    DEVELOPMENT = 4   # building/coding insight
    REFLECTION = 5    # personal synthesis
    REFERENCE = 6     # saved for later use
    MILESTONE = 7     # achievement/completion

    def __str__(self) -> str:
        return self.name.title()


class Source(IntEnum):
    """Origin type of a beat."""
    UNKNOWN = 0
    CONVERSATION = 1
    WEB = 2
    TWITTER = 3
    GITHUB = 4
    BOOK = 5
    SESSION = 6
    INTERNAL = 7

    def __str__(self) -> str:
        if self is Source.GITHUB:
            return "GitHub"
        return self.name.title()


class EntityType(IntEnum):
    PERSON = 0
    TOOL = 1
    CONCEPT = 2
    PROJECT = 3
    ORGANIZATION = 4

    def __str__(self) -> str:
        return self.name.title()


@dataclass
class Impetus:
    """Why and how a beat was captured."""
    label: str = ""
    raw: str = ""
    meta: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Impetus":
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("impetus must be a JSON object")
        meta = data.get("meta") or {}
        if not isinstance(meta, dict):
            raise ValueError("impetus meta must be a JSON object")
        return cls(
            label=_text(data, "label"),
            raw=_text(data, "raw"),
            meta={str(k): str(v) for k, v in meta.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"label": self.label}
        if self.raw:
            out["raw"] = self.raw
        if self.meta:
            out["meta"] = dict(self.meta)
        return out


@dataclass
class Beat:
    """A timestamped note with provenance metadata, as read from beats.jsonl."""
    id: str
    created_at: datetime
    updated_at: datetime
    impetus: Impetus
    content: str
    entities: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)
    linked_beads: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Beat":
        if not isinstance(data, dict):
            raise ValueError("beat must be a JSON object")
        return cls(
            id=_text(data, "id"),
            created_at=parse_time(_text(data, "created_at")),
            updated_at=parse_time(_text(data, "updated_at")),
            impetus=Impetus.from_dict(data.get("impetus")),
            content=_text(data, "content"),
            entities=_text_list(data, "entities"),
            references=_text_list(data, "references"),
            linked_beads=_text_list(data, "linked_beads"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "created_at": format_time(self.created_at),
            "updated_at": format_time(self.updated_at),
            "impetus": self.impetus.to_dict(),
            "content": self.content,
        }
        if self.entities:
            out["entities"] = list(self.entities)
        if self.references:
            out["references"] = list(self.references)
        if self.linked_beads:
            out["linked_beads"] = list(self.linked_beads)
        return out

    @property
    def impetus_label(self) -> str:
        return self.impetus.label or "unknown"

    def content_preview(self, max_len: int = 80) -> str:
        if len(self.content) > max_len:
            return self.content[:max_len - 3] + "..."
        return self.content


@dataclass
class Taxonomy:
    channel: Channel = Channel.UNKNOWN
    source: Source = Source.UNKNOWN
    confidence: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Taxonomy":
        return cls(
            channel=Channel(int(data.get("channel", 0))),
            source=Source(int(data.get("source", 0))),
            confidence=float(data.get("confidence", 0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"channel": int(self.channel), "source": int(self.source), "confidence": self.confidence}


@dataclass
class Entity:
    """A named thing mentioned in beat content, with the beats that mention it."""
    name: str
    type: EntityType
    beat_ids: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.name.lower()}-{self.type}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        return cls(
            name=data["name"],
            type=EntityType(int(data.get("type", 0))),
            beat_ids=list(data.get("beat_ids") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": int(self.type), "beat_ids": list(self.beat_ids)}


@dataclass
class ViewStat:
    view_count: int = 0
    last_viewed_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ViewStat":
        last = data.get("last_viewed_at")
        return cls(
            view_count=int(data.get("view_count", 0)),
            last_viewed_at=parse_time(last) if last else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"view_count": self.view_count}
        if self.last_viewed_at is not None:
            out["last_viewed_at"] = format_time(self.last_viewed_at)
        return out


@dataclass
class Cluster:
    """A theme grouping of beats."""
    id: str
    name: str
    beat_ids: list[str]
    centroid: list[float] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    ripeness_score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cluster":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            beat_ids=list(data.get("beat_ids") or []),
            centroid=[float(x) for x in data.get("centroid") or []],
            keywords=list(data.get("keywords") or []),
            created_at=parse_time(data.get("created_at")),
            ripeness_score=float(data.get("ripeness_score", 0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "beat_ids": list(self.beat_ids),
            "keywords": list(self.keywords),
            "created_at": format_time(self.created_at),
        }
        if self.centroid:
            out["centroid"] = list(self.centroid)
        if self.ripeness_score:
            out["ripeness_score"] = self.ripeness_score
        return out


@dataclass
class Chain:
    """A user-curated ordered sequence of related beats."""
    id: str
    name: str
    beat_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    ripeness_score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chain":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            beat_ids=list(data.get("beat_ids") or []),
            created_at=parse_time(data.get("created_at")),
            ripeness_score=float(data.get("ripeness", 0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "beat_ids": list(self.beat_ids),
            "created_at": format_time(self.created_at),
            "ripeness": self.ripeness_score,
        }


@dataclass
class Cache:
    """Derived data stored alongside beats.jsonl."""
    version: str = CACHE_VERSION
    generated_at: datetime = field(default_factory=utcnow)
    source_hash: str = ""
    taxonomies: dict[str, Taxonomy] = field(default_factory=dict)
    entities: list[Entity] = field(default_factory=list)
    entity_index: dict[str, list[str]] = field(default_factory=dict)
    ripeness: dict[str, float] = field(default_factory=dict)
    clusters: list[Cluster] = field(default_factory=list)
    chains: list[Chain] = field(default_factory=list)
    view_stats: dict[str, ViewStat] = field(default_factory=dict)
    embeddings_available: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cache":
        if not isinstance(data, dict):
            raise ValueError("cache must be a JSON object")
        return cls(
            version=data.get("version", ""),
            generated_at=parse_time(data.get("generated_at")),
            source_hash=data.get("source_hash", ""),
            taxonomies={k: Taxonomy.from_dict(v) for k, v in (data.get("taxonomies") or {}).items()},
            entities=[Entity.from_dict(e) for e in data.get("entities") or []],
            entity_index={k: list(v) for k, v in (data.get("entity_index") or {}).items()},
            ripeness={k: float(v) for k, v in (data.get("ripeness") or {}).items()},
            clusters=[Cluster.from_dict(c) for c in data.get("clusters") or []],
            chains=[Chain.from_dict(c) for c in data.get("chains") or []],
            view_stats={k: ViewStat.from_dict(v) for k, v in (data.get("view_stats") or {}).items()},
            embeddings_available=bool(data.get("embeddings_available", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "generated_at": format_time(self.generated_at),
            "source_hash": self.source_hash,
            "taxonomies": {k: v.to_dict() for k, v in self.taxonomies.items()},
            "entities": [e.to_dict() for e in self.entities],
            "entity_index": {k: list(v) for k, v in self.entity_index.items()},
            "ripeness": dict(self.ripeness),
            "clusters": [c.to_dict() for c in self.clusters],
            "chains": [c.to_dict() for c in self.chains],
            "view_stats": {k: v.to_dict() for k, v in self.view_stats.items()},
            "embeddings_available": self.embeddings_available,
        }


@dataclass
class EnrichedBeat:
    """A beat joined with its cached derived data."""
    beat: Beat
    taxonomy: Taxonomy = field(default_factory=Taxonomy)
    extracted_entities: list[Entity] = field(default_factory=list)
    ripeness_score: float = 0.0
    cluster_id: str = ""
    chain_ids: list[str] = field(default_factory=list)
    view_count: int = 0
    last_viewed_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.beat.id

    @property
    def content(self) -> str:
        return self.beat.content

    @property
    def created_at(self) -> datetime:
        return self.beat.created_at

    @property
    def linked_beads(self) -> list[str]:
        return self.beat.linked_beads

    def content_preview(self, max_len: int = 80) -> str:
        return self.beat.content_preview(max_len)


@dataclass
class RipenessBreakdown:
    total: float
    age: float
    revisit: float
    connection: float
    action: float
    completeness: float

    def factors(self) -> dict[str, float]:
        return {
            "age": self.age,
            "revisit": self.revisit,
            "connection": self.connection,
            "action": self.action,
            "completeness": self.completeness,
        }


def ripeness_tier(score: float) -> str:
    """Display tier for a ripeness score."""
    if score >= 0.8:
        return "Overripe"
    if score >= 0.6:
        return "Ripe"
    if score >= 0.3:
        return "Maturing"
    return "Fresh"


def ripeness_emoji(score: float) -> str:
    if score >= 0.8:
        return "🔴"
    if score >= 0.6:
        return "🟢"
    if score >= 0.3:
        return "🟡"
    return "⚪"
