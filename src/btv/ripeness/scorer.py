"""Composite ripeness scoring.

Ripeness estimates how ready a beat is for action. Five weighted factors
each contribute at most their weight; the total is their sum capped at 1.0.

    age           min(days / 30, 1)                        x 0.20
    revisit       min(views / 5, 1)                        x 0.25
    connection    min((linked beads + related beats) / 3, 1) x 0.25
    action        action-language score                    x 0.20
    completeness  completeness score                       x 0.10
"""

from datetime import datetime

from ..models import GENERIC_LABEL, Beat, RipenessBreakdown, ViewStat, utcnow
from .factors import CompletenessFactors, calculate_completeness, detect_action_language

AGE_WEIGHT = 0.20
REVISIT_WEIGHT = 0.25
CONNECTION_WEIGHT = 0.25
ACTION_WEIGHT = 0.20
COMPLETENESS_WEIGHT = 0.10

AGE_SATURATION_DAYS = 30
REVISIT_SATURATION = 5
CONNECTION_SATURATION = 3
MAX_RELATED_BEATS = 5


class RipenessScorer:
    """Scores beats against the full corpus.

    ``now`` pins the clock; by default the current time is read on every
    call.
    """

    def __init__(self, now: datetime | None = None):
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utcnow()

    def score(self, beat: Beat, all_beats: list[Beat], view_stat: ViewStat | None = None) -> RipenessBreakdown:
        view_stat = view_stat or ViewStat()
        age = self.age_factor(beat.created_at)
        revisit = self.revisit_factor(view_stat.view_count)
        connection = self.connection_factor(beat, all_beats)
        action = detect_action_language(beat.content) * ACTION_WEIGHT
        completeness = self.completeness_factor(beat)

        total = min(age + revisit + connection + action + completeness, 1.0)
        return RipenessBreakdown(
            total=total,
            age=age,
            revisit=revisit,
            connection=connection,
            action=action,
            completeness=completeness,
        )

    def calculate(self, beat: Beat, all_beats: list[Beat], view_stat: ViewStat | None = None) -> float:
        return self.score(beat, all_beats, view_stat).total

    def calculate_all(self, beats: list[Beat], view_stats: dict[str, ViewStat]) -> dict[str, float]:
        """Score every beat.

        The connection factor compares each beat's entities with every
        other beat's, so this is quadratic in corpus size. Fine for a
        personal log of a few thousand beats.
        """
        return {b.id: self.calculate(b, beats, view_stats.get(b.id)) for b in beats}

    def age_factor(self, created_at: datetime) -> float:
        age_days = (self.now - created_at).total_seconds() / 86400
        return min(max(age_days, 0.0) / AGE_SATURATION_DAYS, 1.0) * AGE_WEIGHT

    @staticmethod
    def revisit_factor(view_count: int) -> float:
        return min(view_count / REVISIT_SATURATION, 1.0) * REVISIT_WEIGHT

    @staticmethod
    def connection_factor(beat: Beat, all_beats: list[Beat]) -> float:
        connections = len(beat.linked_beads) + count_related_beats(beat, all_beats)
        return min(connections / CONNECTION_SATURATION, 1.0) * CONNECTION_WEIGHT

    @staticmethod
    def completeness_factor(beat: Beat) -> float:
        label = beat.impetus.label
        factors = CompletenessFactors(
            has_entities=bool(beat.entities),
            has_good_impetus=bool(label) and label.lower() != GENERIC_LABEL,
            has_references=bool(beat.references),
            has_linked_beads=bool(beat.linked_beads),
            content_length=len(beat.content),
        )
        return calculate_completeness(factors) * COMPLETENESS_WEIGHT


def count_related_beats(beat: Beat, all_beats: list[Beat]) -> int:
    """Count other beats sharing at least one entity name with this one.

    Names compare case-insensitively; the count is capped at five.
    """
    names = {e.casefold() for e in beat.entities}
    if not names:
        return 0
    count = 0
    for other in all_beats:
        if other.id == beat.id:
            continue
        if any(e.casefold() in names for e in other.entities):
            count += 1
            if count >= MAX_RELATED_BEATS:
                break
    return count
