"""Configuration management for the content intelligence engine."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "log_level": "INFO",
    "nlp": {"backend": "auto", "download_missing": False, "entity_confidence": 0.8},
    "extraction": {
        "max_keywords": 10,
        "summary_max_chars": 200,
        "max_action_items": 3,
        "max_suggested_tasks": 5,
    },
    "tagging": {"max_tags": 15},
    "graph": {
        "chunk_size": 10,
        "edge_threshold": 0.3,
        "cluster_threshold": 0.7,
        "temporal_window_days": 7,
        "max_workers": 4,
        "optics": {"min_samples": 2, "xi": 0.05, "min_cluster_size": 2},
    },
    "search": {
        "exact_limit": 50,
        "semantic_threshold": 0.3,
        "contextual_threshold": 0.4,
        "recent_limit": 20,
        "suggestion_limit": 10,
        "graph_boost": 0.1,
    },
    "tasks": {"max_tasks": 10},
}

DEFAULT_VOCABULARY = {
    "tag_hierarchy": {
        "work": ["project", "meeting", "deadline", "client", "presentation", "report"],
        "personal": ["shopping", "health", "family", "friends", "hobbies", "travel"],
        "learning": ["course", "tutorial", "research", "book", "article", "notes"],
        "finance": ["budget", "expense", "invoice", "tax", "investment", "bill"],
        "health": ["appointment", "medication", "exercise", "diet", "wellness"],
        "travel": ["flight", "hotel", "itinerary", "destination", "booking", "vacation"],
    },
    "classifier": {
        "business": ["meeting", "project", "deadline", "budget", "revenue", "client", "proposal", "contract"],
        "personal": ["grocery", "shopping", "appointment", "reminder", "birthday", "vacation", "health"],
        "learning": ["course", "study", "learn", "tutorial", "research", "book", "article", "notes"],
        "task": ["todo", "task", "complete", "finish", "do", "remember", "action", "urgent"],
    },
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".cie" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if backend := os.environ.get("CIE_NLP_BACKEND"):
        cfg["nlp"]["backend"] = backend
    if level := os.environ.get("CIE_LOG_LEVEL"):
        cfg["log_level"] = level.upper()

    return cfg


def load_vocabulary(vocabulary_path: str | Path | None = None) -> dict[str, Any]:
    """Load the tag hierarchy and classifier vocabularies."""
    candidates = [
        Path.cwd() / "config" / "vocabulary.yaml",
        Path.home() / ".cie" / "vocabulary.yaml",
    ]
    if vocabulary_path:
        candidates.insert(0, Path(vocabulary_path))

    vocab = copy.deepcopy(DEFAULT_VOCABULARY)
    for p in candidates:
        if p.exists():
            with open(p) as f:
                _deep_merge(vocab, yaml.safe_load(f) or {})
            break
    return vocab


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
