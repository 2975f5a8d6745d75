"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Built-in defaults    _DEFAULTS below
#   2. config/config.yaml   Tuning knobs checked into the repo
#   3. .env / environment   Secrets, paths and app settings via Settings
#
# The YAML file holds the algorithm knobs (chunk size, fusion weight,
# search limits); Settings holds anything that differs per deployment.
#
# The _deep_merge helper does recursive dict merging:
#   base = {"search": {"default_limit": 10}}
#   overrides = {"search": {"semantic_weight": 3}}
#   result = {"search": {"default_limit": 10, "semantic_weight": 3}}
# ──────────────────────────────────────────────────────────────────────
"""

import copy
from pathlib import Path

import yaml

from rightsdesk.config.settings import Settings

_DEFAULTS: dict = {
    "chunking": {
        "max_tokens": 500,
    },
    "ingestion": {
        "min_content_length": 50,
        "title_max_length": 200,
    },
    "search": {
        "default_limit": 10,
        "max_limit": 100,
        "default_threshold": 0.3,
        "semantic_weight": 2,
        "keyword_snippet_chars": 500,
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
            an error; built-in defaults are used instead.
        settings: Settings to overlay.  A fresh ``Settings()`` is read from
            the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config = copy.deepcopy(_DEFAULTS)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    # Keys read by build_components; Settings wins over YAML for these.
    env_overrides = {
        "embedding": {
            "available_providers": settings.get_available_embedding_providers(),
            "timeout_seconds": settings.embedding_timeout_seconds,
            "concurrency": settings.embedding_concurrency,
        },
        "store": {
            "db_path": settings.corpus_db_path,
            "pending_ttl_minutes": settings.pending_document_ttl_minutes,
        },
        "fetch": {
            "timeout_seconds": settings.fetch_timeout_seconds,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
