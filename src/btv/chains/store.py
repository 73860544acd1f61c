"""Chains: user-curated ordered sequences of beats."""

import time

from ..errors import ChainError
from ..models import Chain, utcnow


def calculate_chain_ripeness(chain: Chain, ripeness: dict[str, float]) -> float:
    """Average ripeness of the chain's beats that still have a score."""
    scores = [ripeness[b] for b in chain.beat_ids if b in ripeness]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def update_all_chain_ripeness(chains: list[Chain], ripeness: dict[str, float]) -> None:
    for chain in chains:
        chain.ripeness_score = calculate_chain_ripeness(chain, ripeness)


class ChainStore:
    """Owns the chain list; the beat -> chain index is derived from it."""

    def __init__(self, chains: list[Chain] | None = None):
        self._chains: list[Chain] = []
        self._beat_index: dict[str, list[str]] = {}
        self.load(chains or [])

    def load(self, chains: list[Chain]) -> None:
        self._chains = list(chains)
        self._rebuild_index()

    def _rebuild_index(self) -> None:
        self._beat_index = {}
        for chain in self._chains:
            for beat_id in chain.beat_ids:
                self._beat_index.setdefault(beat_id, []).append(chain.id)

    def create(self, name: str, beat_ids: list[str] | None = None) -> Chain:
        if not name:
            raise ChainError("chain name required")
        chain = Chain(
            id=f"chain-{time.time_ns()}",
            name=name,
            beat_ids=list(beat_ids or []),
            created_at=utcnow(),
        )
        self._chains.append(chain)
        for beat_id in chain.beat_ids:
            self._beat_index.setdefault(beat_id, []).append(chain.id)
        return chain

    def get(self, chain_id: str) -> Chain | None:
        for chain in self._chains:
            if chain.id == chain_id:
                return chain
        return None

    def get_by_name(self, name: str) -> Chain | None:
        for chain in self._chains:
            if chain.name == name:
                return chain
        return None

    def _require(self, chain_id: str) -> Chain:
        chain = self.get(chain_id)
        if chain is None:
            raise ChainError(f"chain not found: {chain_id}")
        return chain

    def all_chains(self) -> list[Chain]:
        return self._chains

    def add_beat(self, chain_id: str, beat_id: str) -> None:
        chain = self._require(chain_id)
        if beat_id in chain.beat_ids:
            return
        chain.beat_ids.append(beat_id)
        self._beat_index.setdefault(beat_id, []).append(chain_id)

    def remove_beat(self, chain_id: str, beat_id: str) -> None:
        chain = self._require(chain_id)
        if beat_id not in chain.beat_ids:
            raise ChainError("beat not in chain")
        chain.beat_ids = [b for b in chain.beat_ids if b != beat_id]
        self._beat_index[beat_id] = [c for c in self._beat_index.get(beat_id, []) if c != chain_id]

    def rename(self, chain_id: str, new_name: str) -> None:
        if not new_name:
            raise ChainError("chain name required")
        self._require(chain_id).name = new_name

    def delete(self, chain_id: str) -> None:
        chain = self._require(chain_id)
        self._chains = [c for c in self._chains if c.id != chain_id]
        for beat_id in chain.beat_ids:
            self._beat_index[beat_id] = [c for c in self._beat_index.get(beat_id, []) if c != chain_id]

    def chains_for_beat(self, beat_id: str) -> list[Chain]:
        return [c for c in (self.get(cid) for cid in self._beat_index.get(beat_id, [])) if c is not None]

    def beat_position(self, chain_id: str, beat_id: str) -> tuple[int, int]:
        """(index of beat in chain, chain length); index is -1 if absent."""
        chain = self.get(chain_id)
        if chain is None:
            return -1, 0
        try:
            return chain.beat_ids.index(beat_id), len(chain.beat_ids)
        except ValueError:
            return -1, len(chain.beat_ids)

    def adjacent_beats(self, chain_id: str, beat_id: str) -> tuple[str, str]:
        """(previous, next) beat IDs around beat_id; empty strings at the ends."""
        index, total = self.beat_position(chain_id, beat_id)
        if index < 0:
            return "", ""
        chain = self._require(chain_id)
        prev = chain.beat_ids[index - 1] if index > 0 else ""
        nxt = chain.beat_ids[index + 1] if index < total - 1 else ""
        return prev, nxt

    def export(self) -> list[Chain]:
        return list(self._chains)
