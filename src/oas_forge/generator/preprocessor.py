"""Macro expansion over directive text.

Pass A (`expand_comment_inserts`) runs on raw commented source before
extraction and keeps each line's comment marker and indentation. Pass B
(`expand_macros`) runs on extracted snippet bodies and also resolves
`@extend` and inline `$Vec<Name>` collection macros.

Neither pass modifies the registry.
"""

import logging
import re

from oas_forge.parser.directives import DirectiveKind, classify_line, parse_insert
from oas_forge.parser.generics import substitute_placeholders
from oas_forge.registry import Registry

logger = logging.getLogger(__name__)

EXTEND_KEY = "x-openapi-extend"

_VEC_MACRO_RE = re.compile(r"\$Vec<\s*\$?([A-Za-z_][\w.]*)\s*>")


def _fragment_lines(registry: Registry, argument: str) -> list[str] | None:
    """Body lines of the fragment named by an `@insert` argument, if registered."""
    parsed = parse_insert(argument)
    if parsed is None:
        return None
    name, args = parsed
    fragment = registry.lookup_fragment(name)
    if fragment is None:
        return None
    if len(args) > len(fragment.params):
        logger.warning("Fragment '%s' takes %d argument(s), got %d", name, len(fragment.params), len(args))
    body = substitute_placeholders(fragment.body, dict(zip(fragment.params, args)))
    return body.split("\n")


def expand_comment_inserts(text: str, registry: Registry) -> str:
    """Pass A: expand `@insert Name` lines inside commented source text.

    Each body line is re-emitted with the marker and indentation captured
    from the `@insert` line. Unknown fragments pass through unchanged.
    """
    out: list[str] = []
    for line in text.split("\n"):
        event = classify_line(line)
        if event.kind is DirectiveKind.INSERT:
            body = _fragment_lines(registry, event.argument)
            if body is not None:
                out.extend((event.prefix + b).rstrip() for b in body)
                continue
        out.append(line)
    return "\n".join(out)


def expand_macros(content: str, registry: Registry) -> str:
    """Pass B: expand directive macros in an extracted snippet body."""
    out: list[str] = []
    for line in content.split("\n"):
        event = classify_line(line)
        if event.kind is DirectiveKind.INSERT:
            out.extend(_expand_insert(event.prefix, event.argument, registry))
        elif event.kind is DirectiveKind.EXTEND:
            out.append(_expand_extend(event.prefix, event.argument))
        elif event.is_directive:
            # route type tokens such as `@return 200: $Vec<User>` are compiled later
            out.append(line)
        else:
            out.append(expand_collection_macros(line))
    return "\n".join(out)


def _expand_insert(prefix: str, argument: str, registry: Registry) -> list[str]:
    body = _fragment_lines(registry, argument)
    if body is None:
        parsed = parse_insert(argument)
        name = parsed[0] if parsed else argument.strip()
        # Not a local fragment: assume a shared component parameter.
        return [f'{prefix}$ref: "#/components/parameters/{name}"']
    # A list dash in the prefix belongs to the first line only.
    continuation = prefix.replace("-", " ")
    return [(prefix if i == 0 else continuation) + line for i, line in enumerate(body)]


def _expand_extend(prefix: str, argument: str) -> str:
    name = argument.strip().strip("'\"")
    quoted = f"'{name}'".replace("'", "''")
    return f"{prefix}{EXTEND_KEY}: '{quoted}'"


def expand_collection_macros(line: str) -> str:
    """Rewrite `$Vec<Name>` into an inline array-of-references schema."""
    return _VEC_MACRO_RE.sub(
        lambda m: f'{{ type: array, items: {{ $ref: "#/components/schemas/{m.group(1)}" }} }}',
        line,
    )
