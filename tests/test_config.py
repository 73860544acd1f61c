"""Tests for configuration and dictionary loading."""

import tempfile
from pathlib import Path

from btv.config import DEFAULT_CONFIG, load_config, load_dictionaries
from btv.entities.dictionary import dictionaries_from_config
from btv.models import Channel, EntityType, Source
from btv.taxonomy.patterns import patterns_from_config


def test_file_overrides_are_merged(monkeypatch):
    monkeypatch.delenv("BEATS_ROOT", raising=False)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text("ollama:\n  model: mxbai-embed-large\nclustering:\n  k: 4\n")
        cfg = load_config(path)
        assert cfg["ollama"]["model"] == "mxbai-embed-large"
        assert cfg["ollama"]["url"] == "http://localhost:11434"
        assert cfg["clustering"]["k"] == 4
        assert cfg["clustering"]["max_iterations"] == 100
    assert DEFAULT_CONFIG["clustering"]["k"] == 8


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BEATS_ROOT", "/srv/notes")
    monkeypatch.setenv("OLLAMA_HOST", "gpu-box:11434")
    cfg = load_config("/nonexistent/config.yaml")
    assert cfg["beats_root"] == "/srv/notes"
    assert cfg["ollama"]["url"] == "http://gpu-box:11434"


def test_dictionaries_file(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.chdir(tmpdir)
        monkeypatch.setenv("HOME", tmpdir)
        assert load_dictionaries() == {}

        path = Path(tmpdir) / "dictionaries.yaml"
        path.write_text(
            "channels:\n  research: [paper, arxiv]\n"
            "meta_channels:\n  podcast: conversation\n"
            "tools: [Helix]\n"
        )
        data = load_dictionaries(path)

    kwargs = patterns_from_config(data)
    assert kwargs["channel_patterns"] == {Channel.RESEARCH: ["paper", "arxiv"]}
    assert kwargs["meta_channel_map"] == {"podcast": Source.CONVERSATION}
    assert "source_patterns" not in kwargs

    merged = dictionaries_from_config(data)
    assert merged[EntityType.TOOL] == ["Helix"]
    assert "Anthropic" in merged[EntityType.ORGANIZATION]
