"""Cache rebuild ("migration") and the beat + cache enrichment join."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from ..chains.store import update_all_chain_ripeness
from ..entities.extractor import EntityExtractor
from ..entities.index import EntityIndex
from ..errors import BeatNotFoundError, CacheDecodeError
from ..ingest.loader import find_beat_by_id, load_beats
from ..models import Beat, Cache, Chain, Cluster, EnrichedBeat, ViewStat, utcnow
from ..ripeness.scorer import RipenessScorer
from ..taxonomy.classifier import TaxonomyClassifier
from .store import compute_source_hash, is_cache_valid, load_cache, save_cache

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str, int, int], None]


def _noop(step: str, current: int, total: int) -> None:
    pass


def migrate(
    beats_dir: str | Path,
    progress: ProgressFn | None = None,
    preserve_view_stats: bool = False,
    previous: Cache | None = None,
    classifier: TaxonomyClassifier | None = None,
    extractor: EntityExtractor | None = None,
    scorer: RipenessScorer | None = None,
) -> Cache:
    """Rebuild the cache from beats.jsonl and save it.

    Taxonomies, entities and ripeness are recomputed from scratch. View
    stats start at zero unless ``preserve_view_stats`` is set. Chains from
    ``previous`` are kept and clusters are kept minus beats that no longer
    exist; clustering itself is never run here.

    ``progress`` is called as (step, current, total); total 0 means the
    step has no measurable size.
    """
    progress = progress or _noop
    classifier = classifier or TaxonomyClassifier()
    extractor = extractor or EntityExtractor()
    scorer = scorer or RipenessScorer()

    progress("Loading beats", 0, 0)
    beats = load_beats(beats_dir)
    total = len(beats)

    cache = Cache()
    cache.source_hash = compute_source_hash(beats_dir)
    cache.generated_at = utcnow()

    progress("Classifying taxonomies", 0, total)
    for i, beat in enumerate(beats, 1):
        cache.taxonomies[beat.id] = classifier.classify(beat)
        progress("Classifying taxonomies", i, total)

    progress("Extracting entities", 0, total)
    cache.entities, cache.entity_index = extractor.extract_all(beats)
    progress("Extracting entities", total, total)

    progress("Calculating ripeness", 0, total)
    old_stats = previous.view_stats if (previous and preserve_view_stats) else {}
    cache.view_stats = {b.id: old_stats.get(b.id, ViewStat()) for b in beats}
    cache.ripeness = scorer.calculate_all(beats, cache.view_stats)
    progress("Calculating ripeness", total, total)

    cache.clusters = []
    cache.chains = []
    cache.embeddings_available = False
    if previous is not None:
        _carry_over(previous, cache)

    progress("Saving cache", 0, 1)
    save_cache(beats_dir, cache)
    progress("Saving cache", 1, 1)

    logger.info(f"Rebuilt cache for {beats_dir}: {total} beat(s), {len(cache.entities)} entit(ies)")
    return cache


def _carry_over(previous: Cache, cache: Cache) -> None:
    """Keep user chains and generated clusters across a rebuild."""
    present = set(cache.ripeness)

    cache.chains = list(previous.chains)
    update_all_chain_ripeness(cache.chains, cache.ripeness)

    for cluster in previous.clusters:
        members = [b for b in cluster.beat_ids if b in present]
        if len(members) < 2:
            continue
        cluster.beat_ids = members
        cluster.ripeness_score = sum(cache.ripeness[b] for b in members) / len(members)
        cache.clusters.append(cluster)
    cache.clusters.sort(key=lambda c: c.ripeness_score, reverse=True)
    cache.embeddings_available = previous.embeddings_available


def ensure_cache(
    beats_dir: str | Path,
    progress: ProgressFn | None = None,
    preserve_view_stats: bool = False,
    rebuild_on_corrupt: bool = False,
    classifier: TaxonomyClassifier | None = None,
    extractor: EntityExtractor | None = None,
) -> Cache:
    """Load the cache if valid, otherwise rebuild it.

    An undecodable cache file raises CacheDecodeError unless
    ``rebuild_on_corrupt`` is set.
    """
    try:
        cache = load_cache(beats_dir)
    except CacheDecodeError:
        if not rebuild_on_corrupt:
            raise
        logger.warning(f"Cache in {beats_dir} is corrupt, rebuilding")
        cache = None

    if is_cache_valid(cache, beats_dir):
        return cache

    return migrate(
        beats_dir,
        progress,
        preserve_view_stats=preserve_view_stats,
        previous=cache,
        classifier=classifier,
        extractor=extractor,
    )


def refresh_cache(
    beats_dir: str | Path,
    progress: ProgressFn | None = None,
    preserve_view_stats: bool = False,
    classifier: TaxonomyClassifier | None = None,
    extractor: EntityExtractor | None = None,
) -> Cache:
    """Rebuild the cache regardless of validity."""
    try:
        previous = load_cache(beats_dir)
    except CacheDecodeError as e:
        logger.warning(f"Ignoring unreadable cache during refresh: {e}")
        previous = None
    return migrate(
        beats_dir,
        progress,
        preserve_view_stats=preserve_view_stats,
        previous=previous,
        classifier=classifier,
        extractor=extractor,
    )


def enrich_beats(beats: list[Beat], cache: Cache) -> list[EnrichedBeat]:
    """Join beats with cached taxonomy, ripeness, clusters, chains, views and entities."""
    cluster_index: dict[str, str] = {}
    for cluster in cache.clusters:
        for beat_id in cluster.beat_ids:
            cluster_index[beat_id] = cluster.id

    chain_index: dict[str, list[str]] = {}
    for chain in cache.chains:
        for beat_id in chain.beat_ids:
            chain_index.setdefault(beat_id, []).append(chain.id)

    entity_idx = EntityIndex(cache.entities, cache.entity_index)

    enriched = []
    for beat in beats:
        eb = EnrichedBeat(
            beat=beat,
            ripeness_score=cache.ripeness.get(beat.id, 0.0),
            cluster_id=cluster_index.get(beat.id, ""),
            chain_ids=chain_index.get(beat.id, []),
            extracted_entities=list(entity_idx.get_for_beat(beat.id)),
        )
        if beat.id in cache.taxonomies:
            eb.taxonomy = cache.taxonomies[beat.id]
        stat = cache.view_stats.get(beat.id)
        if stat is not None:
            eb.view_count = stat.view_count
            eb.last_viewed_at = stat.last_viewed_at
        enriched.append(eb)
    return enriched


def load_enriched_beats(
    beats_dir: str | Path,
    progress: ProgressFn | None = None,
    preserve_view_stats: bool = False,
    rebuild_on_corrupt: bool = False,
    classifier: TaxonomyClassifier | None = None,
    extractor: EntityExtractor | None = None,
) -> tuple[list[EnrichedBeat], Cache]:
    """Load beats, make sure the cache is current and join the two."""
    beats = load_beats(beats_dir)
    cache = ensure_cache(
        beats_dir,
        progress,
        preserve_view_stats=preserve_view_stats,
        rebuild_on_corrupt=rebuild_on_corrupt,
        classifier=classifier,
        extractor=extractor,
    )
    return enrich_beats(beats, cache), cache


def record_view(
    beats_dir: str | Path,
    beat_id: str,
    now: datetime | None = None,
    classifier: TaxonomyClassifier | None = None,
    extractor: EntityExtractor | None = None,
) -> ViewStat:
    """Count a view of beat_id, rescore it and save the cache."""
    beats = load_beats(beats_dir)
    beat = find_beat_by_id(beats, beat_id)
    if beat is None:
        raise BeatNotFoundError(f"beat not found: {beat_id}")

    cache = ensure_cache(beats_dir, classifier=classifier, extractor=extractor)
    stat = cache.view_stats.get(beat_id) or ViewStat()
    stat = ViewStat(view_count=stat.view_count + 1, last_viewed_at=now or utcnow())
    cache.view_stats[beat_id] = stat

    cache.ripeness[beat_id] = RipenessScorer().calculate(beat, beats, stat)
    update_all_chain_ripeness(cache.chains, cache.ripeness)
    save_cache(beats_dir, cache)
    return stat


def store_clusters(beats_dir: str | Path, cache: Cache, clusters: list[Cluster]) -> None:
    """Replace the cached clusters with a fresh clustering run and save."""
    cache.clusters = list(clusters)
    cache.embeddings_available = True
    save_cache(beats_dir, cache)


def store_chains(beats_dir: str | Path, cache: Cache, chains: list[Chain]) -> None:
    """Persist chains with refreshed ripeness."""
    cache.chains = list(chains)
    update_all_chain_ripeness(cache.chains, cache.ripeness)
    save_cache(beats_dir, cache)
