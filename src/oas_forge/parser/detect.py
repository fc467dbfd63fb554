"""Auto-detect how an input file contributes to the document."""

import json
from pathlib import Path

import yaml

SOURCE_SUFFIXES = {".rs"}
YAML_SUFFIXES = {".yaml", ".yml"}


def detect_format(file_path: Path) -> str:
    """Detect the format of an input file.

    Returns: 'source', 'yaml' or 'json'. Files without a telling suffix are
    sniffed: a mapping that parses as JSON is 'json', as YAML is 'yaml',
    anything else is treated as annotated source.
    """
    suffix = file_path.suffix.lower()
    if suffix in SOURCE_SUFFIXES:
        return "source"
    if suffix == ".json":
        return "json"
    if suffix in YAML_SUFFIXES:
        return "yaml"

    text = file_path.read_text(encoding="utf-8")
    try:
        if isinstance(json.loads(text), dict):
            return "json"
    except (json.JSONDecodeError, ValueError):
        pass
    try:
        if isinstance(yaml.safe_load(text), dict):
            return "yaml"
    except yaml.YAMLError:
        pass
    return "source"
