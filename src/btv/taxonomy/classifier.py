"""Keyword-based Channel/Source classification of beats."""

from ..models import GENERIC_LABEL, Beat, Channel, Source, Taxonomy
from .patterns import CHANNEL_PATTERNS, META_CHANNEL_MAP, SOURCE_PATTERNS


class TaxonomyClassifier:
    """Assigns a (Channel, Source, Confidence) triple to a beat.

    Pattern tables are injected so tests and users can substitute their
    own; the defaults come from ``patterns.py``. Classification is a pure
    function of the lowercased impetus label, content and meta.
    """

    def __init__(
        self,
        channel_patterns: dict[Channel, list[str]] | None = None,
        source_patterns: dict[Source, list[str]] | None = None,
        meta_channel_map: dict[str, Source] | None = None,
    ):
        self.channel_patterns = channel_patterns if channel_patterns is not None else CHANNEL_PATTERNS
        self.source_patterns = source_patterns if source_patterns is not None else SOURCE_PATTERNS
        self.meta_channel_map = meta_channel_map if meta_channel_map is not None else META_CHANNEL_MAP

    def classify(self, beat: Beat) -> Taxonomy:
        label = beat.impetus.label.lower()
        content = beat.content.lower()

        channel = self.detect_channel(label, content)
        source = self.detect_source(label, beat.impetus.meta)
        return Taxonomy(
            channel=channel,
            source=source,
            confidence=self.confidence(label, channel, source),
        )

    def classify_all(self, beats: list[Beat]) -> dict[str, Taxonomy]:
        return {b.id: self.classify(b) for b in beats}

    def detect_channel(self, label: str, content: str) -> Channel:
        best, best_score = Channel.UNKNOWN, 0
        for channel, patterns in self.channel_patterns.items():
            score = 0
            for pattern in patterns:
                if pattern in label:
                    score += 3
                if pattern in content:
                    score += 1
            # strictly greater: the first declared channel wins ties
            if score > best_score:
                best, best_score = channel, score

        if best_score == 0:
            return Channel.DISCOVERY
        return best

    def detect_source(self, label: str, meta: dict[str, str]) -> Source:
        if "channel" in meta:
            source = self.meta_channel_map.get(meta["channel"].lower())
            if source is not None:
                return source

        best, best_score = Source.UNKNOWN, 0
        for source, patterns in self.source_patterns.items():
            score = sum(2 for pattern in patterns if pattern in label)
            if score > best_score:
                best, best_score = source, score

        if best_score == 0:
            return Source.INTERNAL
        return best

    @staticmethod
    def confidence(label: str, channel: Channel, source: Source) -> float:
        confidence = 0.3
        if label and label != GENERIC_LABEL:
            confidence += 0.3
        if channel != Channel.UNKNOWN:
            confidence += 0.2
        if source != Source.UNKNOWN:
            confidence += 0.2
        return min(confidence, 1.0)


_default = TaxonomyClassifier()


def classify(beat: Beat) -> Taxonomy:
    """Classify with the built-in pattern tables."""
    return _default.classify(beat)
