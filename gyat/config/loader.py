"""Load gyat.yaml, expanding ${VAR} references from the environment."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import GyatConfig

CONFIG_FILENAME = "gyat.yaml"

_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _candidate_paths(cli_path: str | None, repo_root: Path | None) -> list[Path]:
    candidates = []
    if cli_path:
        candidates.append(Path(cli_path))
    if repo_root is not None:
        candidates.append(Path(repo_root) / CONFIG_FILENAME)
    candidates.append(Path(CONFIG_FILENAME))
    candidates.append(Path.home() / ".gyat" / "config.yaml")
    return candidates


def _read_yaml(path: Path) -> dict | None:
    """Parsed mapping from *path*, or None for an empty file."""
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: top level must be a mapping")
    return raw


def load_config(cli_path: str | None = None, repo_root: Path | None = None) -> GyatConfig:
    """Resolve config: --config > <repo>/gyat.yaml > ./gyat.yaml > ~/.gyat/config.yaml > defaults.

    The first existing, non-empty file wins; files are not merged.
    """
    for path in _candidate_paths(cli_path, repo_root):
        if not path.is_file():
            continue
        raw = _read_yaml(path)
        if raw is None:
            continue
        try:
            return GyatConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e
    return GyatConfig()


def _expand_env_vars(obj: object) -> object:
    """Replace ${VAR} and ${VAR:-default} in every string of a parsed YAML document."""
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), obj)
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    return obj


# Written by `gyat config init`
DEFAULT_CONFIG_TEMPLATE = """\
# gyat.yaml

# Metadata directory at the repository root
metadata_dir: ".gyat"

store:
  compression_level: 6   # zlib, 0 = store only, 9 = smallest
  chunk_size: 65536      # bytes per read when hashing and compressing files

log_level: "info"        # debug | info | warn | error
log_format: "text"       # text | json
"""
