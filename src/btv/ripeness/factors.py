"""Content-level ripeness factors."""

from dataclasses import dataclass

# Phrasing that signals readiness for action
ACTION_PATTERNS = [
    "should", "need to", "must", "will", "plan to",
    "implement", "build", "create", "fix", "add",
    "todo", "action", "next step", "follow up",
    "want to", "going to", "have to", "try to",
]


def detect_action_language(content: str, patterns: list[str] | None = None) -> float:
    """Score 0.0-1.0: distinct action patterns found, saturating at three."""
    lower = content.lower()
    matches = sum(1 for p in (patterns or ACTION_PATTERNS) if p in lower)
    return min(matches / 3.0, 1.0)


@dataclass
class CompletenessFactors:
    has_entities: bool = False
    has_good_impetus: bool = False
    has_references: bool = False
    has_linked_beads: bool = False
    content_length: int = 0


def calculate_completeness(f: CompletenessFactors) -> float:
    """Score 0.0-1.0 for how fully a beat is filled in."""
    score = 0.0
    if f.has_entities:
        score += 0.2
    if f.has_good_impetus:
        score += 0.3
    if f.has_references:
        score += 0.2
    if f.has_linked_beads:
        score += 0.2
    if f.content_length > 100:
        score += 0.1
    return min(score, 1.0)
