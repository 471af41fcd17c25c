"""Bundled experiment and prompt catalogues."""

from __future__ import annotations

import pathlib
from typing import Any

import yaml

CATALOG_DIR = pathlib.Path(__file__).parent
COMMON_TESTS_PATH = CATALOG_DIR / "common_tests.yml"
SEED_PROMPTS_PATH = CATALOG_DIR / "seed_prompts.yml"


def load_common_tests() -> list[dict[str, Any]]:
    return _load_list(COMMON_TESTS_PATH)


def load_seed_prompts() -> list[dict[str, Any]]:
    return _load_list(SEED_PROMPTS_PATH)


def _load_list(path: pathlib.Path) -> list[dict[str, Any]]:
    data = yaml.safe_load(path.read_text()) or []
    if not isinstance(data, list):
        raise ValueError(f"{path.name} must contain a list")
    return [dict(item) for item in data]
