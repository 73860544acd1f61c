"""In-memory lookups over cached entities."""

from ..models import Entity, EntityType


class EntityIndex:
    """Fast entity lookups by name, type and beat.

    Built from the cache's entity list and name index; never persisted.
    """

    def __init__(self, entities: list[Entity], entity_index: dict[str, list[str]] | None = None):
        self._entities = entities
        self._entity_index = entity_index or {}
        self._by_name: dict[str, Entity] = {}
        self._by_type: dict[EntityType, list[Entity]] = {}
        self._by_beat: dict[str, list[Entity]] = {}

        for e in entities:
            self._by_name[e.name.lower()] = e
            self._by_type.setdefault(e.type, []).append(e)
            for beat_id in e.beat_ids:
                bucket = self._by_beat.setdefault(beat_id, [])
                if e not in bucket:
                    bucket.append(e)

    def get_by_name(self, name: str) -> Entity | None:
        return self._by_name.get(name.lower())

    def get_by_type(self, etype: EntityType) -> list[Entity]:
        return self._by_type.get(etype, [])

    def get_for_beat(self, beat_id: str) -> list[Entity]:
        return self._by_beat.get(beat_id, [])

    def get_beat_ids_for_entity(self, name: str) -> list[str]:
        return self._entity_index.get(name, [])

    def all_entities(self) -> list[Entity]:
        return self._entities

    def top_entities_by_type(self, limit: int) -> dict[EntityType, list[Entity]]:
        """Most mentioned entities of each type, at most ``limit`` per type."""
        result = {}
        for etype in EntityType:
            ranked = sorted(self._by_type.get(etype, []), key=lambda e: len(e.beat_ids), reverse=True)
            if ranked:
                result[etype] = ranked[:limit]
        return result
