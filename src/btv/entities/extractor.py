"""Dictionary and heuristic entity extraction."""

import re

from ..models import Beat, Entity, EntityType
from .dictionary import COMMON_WORDS, ENTITY_DICTIONARIES

CAPITALIZED_NAME = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b")


class EntityExtractor:
    """Finds people, tools, concepts, projects and organizations in beats."""

    def __init__(
        self,
        dictionaries: dict[EntityType, list[str]] | None = None,
        stopwords: frozenset[str] | set[str] | None = None,
    ):
        self.dictionaries = dictionaries if dictionaries is not None else ENTITY_DICTIONARIES
        self.stopwords = stopwords if stopwords is not None else COMMON_WORDS

    def extract(self, beat: Beat) -> list[Entity]:
        """Extract entity mentions from a single beat.

        Each (lowercased name, type) appears at most once per beat.
        Capitalized words are typed Person unless a dictionary already
        matched the same name.
        """
        content = beat.content
        content_lower = content.lower()

        entities: list[Entity] = []
        seen: set[str] = set()
        dictionary_names: set[str] = set()

        for etype in EntityType:
            for name in self.dictionaries.get(etype, []):
                if name.lower() not in content_lower:
                    continue
                dictionary_names.add(name.lower())
                entity = Entity(name=name, type=etype, beat_ids=[beat.id])
                if entity.key not in seen:
                    seen.add(entity.key)
                    entities.append(entity)

        for match in CAPITALIZED_NAME.findall(content):
            if match in self.stopwords or match.lower() in dictionary_names:
                continue
            entity = Entity(name=match, type=EntityType.PERSON, beat_ids=[beat.id])
            if entity.key not in seen:
                seen.add(entity.key)
                entities.append(entity)

        return entities

    def extract_all(self, beats: list[Beat]) -> tuple[list[Entity], dict[str, list[str]]]:
        """Extract across the corpus.

        Returns entities merged by (lowercased name, type) in first-seen
        order, and a name -> beat IDs index keyed by the name as written
        in each mention. Run on the full beat set; re-running on a subset
        and merging would double-count beat IDs.
        """
        merged: dict[str, Entity] = {}
        index: dict[str, list[str]] = {}

        for beat in beats:
            for e in self.extract(beat):
                existing = merged.get(e.key)
                if existing is not None:
                    existing.beat_ids.append(beat.id)
                else:
                    merged[e.key] = e
                index.setdefault(e.name, []).append(beat.id)

        return list(merged.values()), index
