"""Deep merge of partial OpenAPI documents.

Mappings merge key by key; anything else (scalars, sequences, mismatched
types) is replaced by the later value. Sequences are never concatenated.
"""

import json
import logging
from typing import Any

import yaml

from oas_forge.errors import SourceParseError
from oas_forge.parser.base import Snippet

logger = logging.getLogger(__name__)


def deep_merge(base: Any, overlay: Any) -> Any:
    """Merge `overlay` onto `base` without mutating either."""
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            merged[key] = deep_merge(merged[key], value) if key in merged else value
        return merged
    return overlay


def stringify_keys(node: Any) -> Any:
    """Copy of a parsed document with every mapping key as a string.

    YAML reads `200:` as an integer key; OpenAPI keys are always strings, so
    `200` and `'200'` must merge into one entry.
    """
    if isinstance(node, dict):
        return {_key_text(k): stringify_keys(v) for k, v in node.items()}
    if isinstance(node, list):
        return [stringify_keys(item) for item in node]
    return node


def _key_text(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bool) or key is None:
        return json.dumps(key)
    return str(key)


def merge(documents: list[Any]) -> dict:
    """Fold documents left to right; later documents win on conflicts."""
    result: Any = {}
    for document in documents:
        result = deep_merge(result, document)
    return result


def parse_snippet(snippet: Snippet) -> Any:
    """Parse a snippet body as YAML (JSON bodies parse as YAML too)."""
    try:
        document = yaml.safe_load(snippet.content)
    except yaml.YAMLError as e:
        raise SourceParseError(snippet.file_path, str(e), snippet.line_number) from e
    return stringify_keys(document)


def merge_snippets(snippets: list[Snippet]) -> dict:
    """Parse and merge snippets in stable (file, line, declaration) order."""
    documents = []
    for snippet in sorted(snippets, key=Snippet.sort_key):
        document = parse_snippet(snippet)
        if document is None:
            continue
        if not isinstance(document, dict):
            logger.warning(
                "Ignoring non-mapping snippet at %s:%d", snippet.file_path, snippet.line_number
            )
            continue
        documents.append(document)
    logger.debug("Merging %d document(s)", len(documents))
    return merge(documents)
