"""Tests for configuration loading."""

import tempfile
from pathlib import Path

from cie.config import DEFAULT_CONFIG, DEFAULT_VOCABULARY, load_config, load_vocabulary


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv("CIE_NLP_BACKEND", raising=False)
    monkeypatch.delenv("CIE_LOG_LEVEL", raising=False)
    with tempfile.TemporaryDirectory() as tmp:
        monkeypatch.chdir(tmp)
        monkeypatch.setenv("HOME", tmp)
        cfg = load_config()
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_file_values_merge_with_defaults(monkeypatch):
    monkeypatch.delenv("CIE_NLP_BACKEND", raising=False)
    with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
        f.write("graph:\n  chunk_size: 5\nnlp:\n  backend: heuristic\n")
        f.flush()
        cfg = load_config(f.name)
    assert cfg["graph"]["chunk_size"] == 5
    assert cfg["graph"]["edge_threshold"] == 0.3
    assert cfg["nlp"]["backend"] == "heuristic"
    assert cfg["nlp"]["entity_confidence"] == 0.8
    assert DEFAULT_CONFIG["graph"]["chunk_size"] == 10


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CIE_NLP_BACKEND", "nltk")
    monkeypatch.setenv("CIE_LOG_LEVEL", "debug")
    with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
        f.write("nlp:\n  backend: heuristic\n")
        f.flush()
        cfg = load_config(f.name)
    assert cfg["nlp"]["backend"] == "nltk"
    assert cfg["log_level"] == "DEBUG"


def test_vocabulary_override():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "vocabulary.yaml"
        path.write_text("tag_hierarchy:\n  garden:\n    - seeds\n    - compost\n")
        vocab = load_vocabulary(path)
    assert vocab["tag_hierarchy"]["garden"] == ["seeds", "compost"]
    assert vocab["tag_hierarchy"]["work"] == DEFAULT_VOCABULARY["tag_hierarchy"]["work"]
    assert vocab["classifier"] == DEFAULT_VOCABULARY["classifier"]
