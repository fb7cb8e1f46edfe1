from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from pokedrive.domain.models import DriveConfig

logger = logging.getLogger(__name__)

DATA_ROOT_ENV_VAR = "POKEDRIVE_DATA_DIR"

# Resolve project root (not the Python package root)
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"


def get_data_dir() -> Path:
    """
    Determine the data directory path.

    Priority:
    1. Environment variable POKEDRIVE_DATA_DIR
    2. '<project root>/data'
    """
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    if env_path:
        d = Path(env_path).expanduser()
    else:
        d = _DEFAULT_DATA_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def load_drive_config(data_dir: Path) -> DriveConfig:
    """
    Load drive.json, merging with defaults for any missing fields,
    and write it back so any new fields are persisted.
    """
    path = data_dir / "drive.json"
    if path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            config = DriveConfig(**raw)
        except (ValueError, TypeError, ValidationError) as e:
            # Fall back to defaults and overwrite the file.
            logger.warning(f"Invalid {path}, using defaults: {e}")
            config = DriveConfig()
    else:
        config = DriveConfig()

    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    return config
