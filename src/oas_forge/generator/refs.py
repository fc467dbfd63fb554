"""Resolution of `$Name` smart references and emission of concrete schemas."""

import logging
from typing import Any

import yaml

from oas_forge.errors import SourceParseError
from oas_forge.generator.merger import deep_merge, stringify_keys
from oas_forge.generator.monomorphizer import Monomorphizer
from oas_forge.generator.preprocessor import expand_macros

logger = logging.getLogger(__name__)

SCHEMA_PREFIX = "#/components/schemas/"


def resolve_ref(ref: str, monomorphizer: Monomorphizer) -> str:
    """`$User` -> `#/components/schemas/User`; `$Page<User>` is instantiated first."""
    if not ref.startswith("$"):
        return ref
    if "<" in ref:
        ref = monomorphizer.process(ref)
    return SCHEMA_PREFIX + ref[1:]


def resolve_references(node: Any, monomorphizer: Monomorphizer) -> Any:
    """Return a copy of `node` with every `$`-prefixed `$ref` resolved."""
    if isinstance(node, dict):
        resolved = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                resolved[key] = resolve_ref(value, monomorphizer)
            else:
                resolved[key] = resolve_references(value, monomorphizer)
        return resolved
    if isinstance(node, list):
        return [resolve_references(item, monomorphizer) for item in node]
    return node


def emit_concrete_schemas(document: dict, monomorphizer: Monomorphizer) -> dict:
    """Merge every cached concrete schema into `components.schemas`.

    Emitting a schema may instantiate further generics, so this repeats
    until the cache stops growing.
    """
    registry = monomorphizer.registry
    emitted: set[str] = set()
    while True:
        pending = [name for name in registry.concrete_schemas if name not in emitted]
        if not pending:
            return document
        for name in pending:
            emitted.add(name)
            body_text = expand_macros(registry.concrete_schemas[name], registry)
            try:
                body = stringify_keys(yaml.safe_load(body_text))
            except yaml.YAMLError as e:
                raise SourceParseError(f"<concrete schema {name}>", str(e)) from e
            if body is None:
                body = {}
            body = resolve_references(body, monomorphizer)
            logger.debug("Emitting concrete schema '%s'", name)
            document = deep_merge(document, {"components": {"schemas": {name: body}}})
