"""Path table loading.

The path table is a flat YAML mapping of target-path-code to destination
directory, plus the distinguished "Default source path" and "Gallery path"
entries.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

import yaml

from processors.errors import ConfigError

DEFAULT_SOURCE_KEY = "Default source path"
GALLERY_KEY = "Gallery path"


@dataclass(frozen=True)
class PathTable:
    default_source: Optional[str]
    targets: Dict[str, str] = field(default_factory=dict)
    gallery: Optional[str] = None

    def target_for(self, code: str) -> Optional[str]:
        return self.targets.get(code)


def load_paths(path: str) -> PathTable:
    if not os.path.isfile(path):
        raise ConfigError(f"Path table not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Path table {path} must be a mapping of code to path")

    default_source = data.get(DEFAULT_SOURCE_KEY)
    if default_source is not None:
        default_source = str(default_source).strip() or None

    targets = {}
    for code, value in data.items():
        if code in (DEFAULT_SOURCE_KEY, GALLERY_KEY) or value is None:
            continue
        # YAML reads unquoted yes/no/on/off as booleans.
        if isinstance(code, bool) or not isinstance(code, (str, int)):
            raise ConfigError(f"Target path code {code!r} in {path} is not text, put it in quotes")
        targets[str(code)] = str(value)
    gallery = data.get(GALLERY_KEY)
    if gallery is not None:
        gallery = str(gallery).strip() or None
    return PathTable(default_source=default_source, targets=targets, gallery=gallery)
