"""CLI entry point for btv: a robot-friendly JSON surface over enriched beats."""

import json
import logging
import sys
import threading
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console
from rich.progress import Progress

from .config import load_config, load_dictionaries

err_console = Console(stderr=True)


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--beats-dir", "-d", default=None, help="Path to a .beats directory")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
@click.pass_context
def cli(ctx, config_path, beats_dir, verbose):
    """btv - enrich, score and cluster your beats."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["beats_dir"] = beats_dir


def _output(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _fail(message: str, /, **extra) -> None:
    _output({"error": message, **extra})
    raise click.exceptions.Exit(1)


def _resolve_beats_dir(ctx) -> Path:
    from .errors import BeatsDirNotFoundError
    from .ingest.loader import discover_projects, find_beats_dir

    if ctx.obj.get("beats_dir"):
        return Path(ctx.obj["beats_dir"])

    root = ctx.obj["config"]["beats_root"]
    try:
        return find_beats_dir(root)
    except BeatsDirNotFoundError:
        projects = discover_projects(root)
        if not projects:
            _fail("no projects found")
        return projects[0].path


def _analyzers(ctx) -> dict:
    """Classifier and extractor built from the optional dictionaries file."""
    from .entities.dictionary import dictionaries_from_config
    from .entities.extractor import EntityExtractor
    from .taxonomy.classifier import TaxonomyClassifier
    from .taxonomy.patterns import patterns_from_config

    dictionaries = load_dictionaries(ctx.obj["config"].get("dictionaries_path"))
    if not dictionaries:
        return {}
    return {
        "classifier": TaxonomyClassifier(**patterns_from_config(dictionaries)),
        "extractor": EntityExtractor(dictionaries_from_config(dictionaries)),
    }


@contextmanager
def _progress():
    """Yield a (step, current, total) callback that renders on stderr."""
    with Progress(console=err_console, transient=True) as progress:
        tasks = {}

        def report(step: str, current: int, total: int) -> None:
            if step not in tasks:
                tasks[step] = progress.add_task(step, total=total or None)
            progress.update(tasks[step], completed=current, total=total or None)

        yield report


def _enriched(ctx):
    from .cache.migration import load_enriched_beats
    from .errors import BTVError

    beats_dir = _resolve_beats_dir(ctx)
    cfg = ctx.obj["config"]
    try:
        with _progress() as report:
            enriched, cache = load_enriched_beats(
                beats_dir,
                report,
                preserve_view_stats=cfg["cache"].get("preserve_view_stats", False),
                **_analyzers(ctx),
            )
    except (BTVError, OSError) as e:
        _fail(str(e))
    return beats_dir, enriched, cache


def _find(enriched, beat_id):
    for eb in enriched:
        if eb.id == beat_id:
            return eb
    _fail(f"beat not found: {beat_id}")


def _raw_beats(ctx, root=None):
    """Beats and their project names, from --beats-dir if given, else every project under root."""
    from .ingest.loader import load_all_beats, load_beats

    if root is None and ctx.obj.get("beats_dir"):
        beats_dir = Path(ctx.obj["beats_dir"])
        project = beats_dir.resolve().parent.name
        try:
            beats = load_beats(beats_dir)
        except OSError as e:
            _fail(str(e))
        return beats, {b.id: project for b in beats}
    return load_all_beats(root or ctx.obj["config"]["beats_root"])


def _list_item(beat, project: str = "") -> dict:
    return {
        "id": beat.id,
        "content_preview": beat.content_preview(80),
        "impetus_label": beat.impetus_label,
        "project": project,
        "created_at": beat.created_at.isoformat(),
    }


@cli.command("list")
@click.option("--project", default=None, help="Only beats from this project")
@click.option("--root", default=None, help="Root directory to scan for .beats")
@click.pass_context
def list_beats(ctx, project, root):
    """List beats from every project under the root."""
    beats, beat_to_project = _raw_beats(ctx, root)
    if project is not None:
        beats = [b for b in beats if beat_to_project.get(b.id) == project]

    items = [_list_item(b, beat_to_project.get(b.id, "")) for b in beats]
    _output({"beats": items, "total": len(items), "project_filter": project})


@cli.command()
@click.argument("query", required=False)
@click.option("--max-results", "-n", default=50, help="Maximum results")
@click.pass_context
def search(ctx, query, max_results):
    """Search beats by content, label or ID (query from argument or stdin JSON)."""
    from .ingest.loader import search_beats

    if query is None:
        try:
            payload = json.loads(sys.stdin.read() or "{}")
        except json.JSONDecodeError as e:
            _fail(f"invalid JSON input: {e}")
        query = payload.get("query", "")
        max_results = payload.get("max_results") or max_results

    beats, beat_to_project = _raw_beats(ctx)
    results = search_beats(beats, query)[:max_results]
    items = [_list_item(b, beat_to_project.get(b.id, "")) for b in results]
    _output({"results": items, "query": query, "total_matches": len(items)})


@cli.command()
@click.argument("beat_id")
@click.pass_context
def show(ctx, beat_id):
    """Show a single beat."""
    from .ingest.loader import find_beat_by_id

    beats, _ = _raw_beats(ctx)
    beat = find_beat_by_id(beats, beat_id)
    if beat is None:
        _fail(f"beat not found: {beat_id}")
    _output(beat.to_dict())


@cli.command("taxonomy-stats")
@click.pass_context
def taxonomy_stats(ctx):
    """Channel and source distribution."""
    from .maintenance.timeline import taxonomy_stats as stats

    _, enriched, _ = _enriched(ctx)
    _output(stats(enriched))


@cli.command()
@click.argument("beat_id")
@click.pass_context
def ripeness(ctx, beat_id):
    """Ripeness score with its factor breakdown."""
    from .models import ripeness_tier
    from .ripeness.scorer import RipenessScorer

    _, enriched, cache = _enriched(ctx)
    target = _find(enriched, beat_id)
    beats = [eb.beat for eb in enriched]
    breakdown = RipenessScorer().score(target.beat, beats, cache.view_stats.get(beat_id))

    _output({
        "beat_id": beat_id,
        "score": breakdown.total,
        "tier": ripeness_tier(breakdown.total),
        "factors": breakdown.factors(),
    })


@cli.command()
@click.option("--limit", default=10, help="Maximum beats")
@click.option("--threshold", default=0.0, help="Minimum ripeness")
@click.pass_context
def ripe(ctx, limit, threshold):
    """List the ripest beats."""
    from .models import ripeness_emoji, ripeness_tier

    _, enriched, _ = _enriched(ctx)
    ranked = sorted(
        (eb for eb in enriched if eb.ripeness_score >= threshold),
        key=lambda eb: eb.ripeness_score,
        reverse=True,
    )[:limit]

    results = [
        {
            "id": eb.id,
            "ripeness": eb.ripeness_score,
            "tier": ripeness_tier(eb.ripeness_score),
            "emoji": ripeness_emoji(eb.ripeness_score),
            "preview": eb.content_preview(80),
        }
        for eb in ranked
    ]
    _output({"beats": results, "count": len(results)})


@cli.command()
@click.pass_context
def stale(ctx):
    """List stale beats with reasons and suggested actions."""
    from .maintenance.stale import age_days, find_stale_beats, stale_reasons
    from .models import utcnow

    cfg = ctx.obj["config"]["stale"]
    _, enriched, _ = _enriched(ctx)
    now = utcnow()

    results = []
    for eb in find_stale_beats(enriched, now, cfg["min_age_days"], cfg["recent_view_days"]):
        reasons = stale_reasons(eb, now)
        results.append({
            "id": eb.id,
            "age_days": age_days(eb, now),
            "view_count": eb.view_count,
            "preview": eb.content_preview(80),
            "reasons": [r.to_dict() for r in reasons],
            "suggested_action": reasons[0].suggestion if reasons else "Review and take action",
        })
    _output({"stale_beats": results, "count": len(results)})


@cli.command()
@click.pass_context
def entities(ctx):
    """List extracted entities grouped by type."""
    from .models import EntityType

    _, _, cache = _enriched(ctx)
    groups = {
        EntityType.PERSON: "people",
        EntityType.TOOL: "tools",
        EntityType.CONCEPT: "concepts",
        EntityType.PROJECT: "projects",
        EntityType.ORGANIZATION: "organizations",
    }
    out = {key: [] for key in groups.values()}
    for e in cache.entities:
        out[groups[e.type]].append({"name": e.name, "beat_count": len(e.beat_ids)})
    _output(out)


@cli.command("entity-beats")
@click.argument("name")
@click.pass_context
def entity_beats(ctx, name):
    """Beats mentioning an entity (exact name as indexed)."""
    _, enriched, cache = _enriched(ctx)
    ids = set(cache.entity_index.get(name, []))
    results = [{"id": eb.id, "preview": eb.content_preview(80)} for eb in enriched if eb.id in ids]
    _output({"beats": results, "entity": name, "count": len(results)})


@cli.command()
@click.option("--zoom", type=click.Choice(["day", "week", "month", "quarter"]), default="month")
@click.pass_context
def timeline(ctx, zoom):
    """Beat counts per time bucket."""
    from .maintenance.timeline import ZoomLevel, build_timeline

    _, enriched, _ = _enriched(ctx)
    data = build_timeline(enriched, ZoomLevel(zoom))
    buckets = [
        {
            "date": b.date.strftime("%Y-%m-%d"),
            "count": b.beat_count,
            "by_channel": {str(ch): n for ch, n in b.by_channel.items()},
        }
        for b in data.buckets
    ]
    _output({
        "buckets": buckets,
        "zoom_level": zoom,
        "start": data.start.strftime("%Y-%m-%d") if data.start else None,
        "end": data.end.strftime("%Y-%m-%d") if data.end else None,
    })


@cli.command()
@click.option("--threshold", default=7, help="Minimum gap in days")
@click.pass_context
def gaps(ctx, threshold):
    """Periods without any beats."""
    from .maintenance.timeline import ZoomLevel, build_timeline, find_gaps

    _, enriched, _ = _enriched(ctx)
    found = find_gaps(build_timeline(enriched, ZoomLevel.DAY), threshold)
    result = [
        {"start": s.strftime("%Y-%m-%d"), "end": e.strftime("%Y-%m-%d"), "days": (e - s).days}
        for s, e in found
    ]
    _output({"gaps": result, "threshold_days": threshold})


def _engine(ctx, beats_dir):
    from .clustering.engine import ClusterEngine
    from .embeddings.store import EmbeddingCache

    cfg = ctx.obj["config"]
    embedding_cache = None
    if cfg["cache"].get("persist_embeddings"):
        embedding_cache = EmbeddingCache.load(Path(beats_dir) / "btv-embeddings.json")
    return ClusterEngine.from_config(cfg, embedding_cache)


def _save_embeddings(ctx, beats_dir, engine) -> None:
    if ctx.obj["config"]["cache"].get("persist_embeddings"):
        engine.embedding_cache.save(Path(beats_dir) / "btv-embeddings.json")


def _cluster_summary(c) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "beat_count": len(c.beat_ids),
        "keywords": c.keywords,
        "ripeness": c.ripeness_score,
    }


@cli.command()
@click.option("--k", default=None, type=int, help="Number of clusters")
@click.pass_context
def cluster(ctx, k):
    """Generate theme clusters from embeddings and store them in the cache."""
    from .cache.migration import store_clusters
    from .errors import BTVError, EmbeddingUnavailableError

    cfg = ctx.obj["config"]["clustering"]
    beats_dir, enriched, cache = _enriched(ctx)
    engine = _engine(ctx, beats_dir)
    cancel = threading.Event()

    try:
        clusters = engine.generate_clusters(enriched, k or cfg["k"], timeout=cfg["timeout"], cancel=cancel)
    except EmbeddingUnavailableError as e:
        _fail("ollama not available", message=e.hint, detail=str(e))
    except KeyboardInterrupt:
        cancel.set()
        _fail("cancelled")
    except BTVError as e:
        _fail(str(e))
    finally:
        _save_embeddings(ctx, beats_dir, engine)

    try:
        store_clusters(beats_dir, cache, clusters)
    except BTVError as e:
        _fail(str(e))
    _output({"clusters": [_cluster_summary(c) for c in clusters], "count": len(clusters)})


@cli.command()
@click.pass_context
def clusters(ctx):
    """List the clusters stored in the cache."""
    _, _, cache = _enriched(ctx)
    result = [_cluster_summary(c) for c in cache.clusters]
    _output({
        "clusters": result,
        "count": len(result),
        "embeddings_available": cache.embeddings_available,
    })


@cli.command()
@click.argument("beat_id")
@click.option("--limit", default=None, type=int, help="Number of similar beats")
@click.pass_context
def similar(ctx, beat_id, limit):
    """Find beats semantically similar to BEAT_ID."""
    from .errors import BTVError, EmbeddingUnavailableError

    cfg = ctx.obj["config"]["similarity"]
    beats_dir, enriched, _ = _enriched(ctx)
    target = _find(enriched, beat_id)
    engine = _engine(ctx, beats_dir)

    try:
        scored = engine.find_similar_scored(target, enriched, limit or cfg["limit"], timeout=cfg["timeout"])
    except EmbeddingUnavailableError as e:
        _fail("ollama not available", message="Install Ollama for similarity search", detail=str(e))
    except BTVError as e:
        _fail(str(e))
    finally:
        _save_embeddings(ctx, beats_dir, engine)

    result = [{"id": s.beat.id, "preview": s.beat.content_preview(80), "score": s.score} for s in scored]
    _output({"similar": result, "source_beat": beat_id})


@cli.command()
@click.pass_context
def chains(ctx):
    """List chains."""
    _, _, cache = _enriched(ctx)
    result = [
        {"id": c.id, "name": c.name, "beat_count": len(c.beat_ids), "ripeness": c.ripeness_score}
        for c in cache.chains
    ]
    _output({"chains": result, "count": len(result)})


def _read_stdin_json() -> dict:
    try:
        data = json.loads(sys.stdin.read() or "{}")
    except json.JSONDecodeError as e:
        _fail(f"invalid JSON input: {e}")
    if not isinstance(data, dict):
        _fail("invalid JSON input: expected an object")
    return data


@cli.command("create-chain")
@click.option("--name", default=None, help="Chain name (otherwise read {name, beat_ids} from stdin)")
@click.argument("beat_ids", nargs=-1)
@click.pass_context
def create_chain(ctx, name, beat_ids):
    """Create a chain of beats and persist it."""
    from .cache.migration import store_chains
    from .chains.store import ChainStore
    from .errors import BTVError

    if name is None:
        data = _read_stdin_json()
        name = data.get("name", "")
        beat_ids = data.get("beat_ids") or []

    beats_dir, _, cache = _enriched(ctx)
    store = ChainStore(cache.chains)
    try:
        chain = store.create(name, list(beat_ids))
        store_chains(beats_dir, cache, store.export())
    except BTVError as e:
        _fail(str(e))
    _output({"chain": chain.to_dict(), "message": "Chain created"})


@cli.command("chain-add")
@click.argument("chain_id", required=False)
@click.argument("beat_id", required=False)
@click.pass_context
def chain_add(ctx, chain_id, beat_id):
    """Append a beat to a chain (arguments or {chain_id, beat_id} on stdin)."""
    from .cache.migration import store_chains
    from .chains.store import ChainStore
    from .errors import BTVError

    if chain_id is None or beat_id is None:
        data = _read_stdin_json()
        chain_id, beat_id = data.get("chain_id", ""), data.get("beat_id", "")

    beats_dir, _, cache = _enriched(ctx)
    store = ChainStore(cache.chains)
    try:
        store.add_beat(chain_id, beat_id)
        store_chains(beats_dir, cache, store.export())
    except BTVError as e:
        _fail(str(e))
    _output({"success": True, "chain_id": chain_id, "beat_id": beat_id})


@cli.command()
@click.argument("beat_id")
@click.pass_context
def view(ctx, beat_id):
    """Record that a beat was viewed."""
    from .cache.migration import record_view
    from .errors import BTVError

    beats_dir = _resolve_beats_dir(ctx)
    try:
        stat = record_view(beats_dir, beat_id, **_analyzers(ctx))
    except (BTVError, OSError) as e:
        _fail(str(e))
    _output({"beat_id": beat_id, **stat.to_dict()})


@cli.command("rebuild-cache")
@click.option("--preserve-view-stats", is_flag=True, help="Keep view counts across the rebuild")
@click.pass_context
def rebuild_cache(ctx, preserve_view_stats):
    """Rebuild the cache regardless of validity."""
    from .cache.migration import refresh_cache
    from .errors import BTVError

    beats_dir = _resolve_beats_dir(ctx)
    preserve_view_stats = preserve_view_stats or ctx.obj["config"]["cache"].get("preserve_view_stats", False)
    err_console.print(f"Rebuilding cache for: {beats_dir}")

    try:
        with _progress() as report:
            cache = refresh_cache(
                beats_dir, report, preserve_view_stats=preserve_view_stats, **_analyzers(ctx)
            )
    except (BTVError, OSError) as e:
        _fail(str(e))

    _output({
        "success": True,
        "version": cache.version,
        "generated_at": cache.generated_at.isoformat(),
        "source_hash": cache.source_hash,
        "beats_count": len(cache.taxonomies),
        "entities": len(cache.entities),
    })


@cli.command()
@click.option("--debounce", default=2.0, help="Seconds to wait after last change before rebuilding")
@click.pass_context
def watch(ctx, debounce):
    """Rebuild the cache whenever beats.jsonl changes."""
    from .watcher import CacheWatcher

    beats_dir = _resolve_beats_dir(ctx)
    preserve = ctx.obj["config"]["cache"].get("preserve_view_stats", False)
    CacheWatcher(beats_dir, debounce=debounce, preserve_view_stats=preserve, **_analyzers(ctx)).run()


if __name__ == "__main__":
    cli()
