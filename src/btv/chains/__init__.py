"""Chain storage and ripeness aggregation."""

from .store import ChainStore, calculate_chain_ripeness, update_all_chain_ripeness

__all__ = ["ChainStore", "calculate_chain_ripeness", "update_all_chain_ripeness"]
