"""Read beats from .beats/beats.jsonl logs."""

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from ..errors import BeatsDirNotFoundError
from ..models import Beat

logger = logging.getLogger(__name__)

BEATS_DIR = ".beats"
BEATS_FILE = "beats.jsonl"

_SKIP_DIRS = {"node_modules", ".git", "vendor"}


@dataclass
class Project:
    name: str
    path: Path
    beat_count: int


def compute_hash(data: bytes) -> str:
    """SHA256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def find_beats_dir(start: str | Path) -> Path:
    """Walk upwards from start until a .beats directory is found."""
    current = Path(start).resolve()
    while True:
        candidate = current / BEATS_DIR
        if candidate.is_dir():
            return candidate
        if current.parent == current:
            raise BeatsDirNotFoundError(f"no {BEATS_DIR} directory found")
        current = current.parent


def parse_line(line: str) -> Beat | None:
    """Parse one log line. Returns None for blank or malformed lines."""
    line = line.strip()
    if not line:
        return None
    try:
        return Beat.from_dict(json.loads(line))
    except (ValueError, TypeError, AttributeError):
        return None


def load_beats(beats_dir: str | Path) -> list[Beat]:
    """Load all beats from a .beats directory, newest first.

    A missing log is an empty collection. Malformed lines are skipped; any
    other I/O error propagates.
    """
    file_path = Path(beats_dir) / BEATS_FILE
    try:
        f = open(file_path, encoding="utf-8")
    except FileNotFoundError:
        return []

    beats = []
    skipped = 0
    with f:
        for line in f:
            if not line.strip():
                continue
            beat = parse_line(line)
            if beat is None:
                skipped += 1
                continue
            beats.append(beat)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed line(s) in {file_path}")

    beats.sort(key=lambda b: b.created_at, reverse=True)
    return beats


def discover_projects(root_path: str | Path) -> list[Project]:
    """Find every .beats directory under root_path."""
    root = Path(root_path).resolve()
    projects = []

    def walk(directory: Path) -> None:
        try:
            children = sorted(p for p in directory.iterdir() if p.is_dir())
        except OSError:
            return
        for child in children:
            if child.name in _SKIP_DIRS:
                continue
            if child.name == BEATS_DIR:
                name = directory.name if directory != root else root.name
                projects.append(Project(name=name, path=child, beat_count=len(load_beats(child))))
                continue
            walk(child)

    walk(root)
    projects.sort(key=lambda p: p.beat_count, reverse=True)
    return projects


def load_all_beats(root_path: str | Path) -> tuple[list[Beat], dict[str, str]]:
    """Load beats from every project under root_path.

    Returns (beats newest first, beat ID -> project name).
    """
    all_beats: list[Beat] = []
    beat_to_project: dict[str, str] = {}

    for project in discover_projects(root_path):
        try:
            beats = load_beats(project.path)
        except OSError as e:
            logger.warning(f"Could not read beats for {project.name}: {e}")
            continue
        for b in beats:
            beat_to_project[b.id] = project.name
        all_beats.extend(beats)

    all_beats.sort(key=lambda b: b.created_at, reverse=True)
    return all_beats, beat_to_project


def search_beats(beats: list[Beat], query: str) -> list[Beat]:
    """Case-insensitive substring search over content, label and ID."""
    if not query:
        return beats
    q = query.lower()
    return [
        b for b in beats
        if q in b.content.lower() or q in b.impetus.label.lower() or q in b.id.lower()
    ]


def find_beat_by_id(beats: list[Beat], beat_id: str) -> Beat | None:
    for b in beats:
        if b.id == beat_id:
            return b
    return None
