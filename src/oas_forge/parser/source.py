"""Line-based extraction of directive blocks from annotated source files.

Consecutive `///` (item) or `//!` (file-level) comment lines form a doc
block. An item block takes its name from the declaration that follows it
(`struct User`, `fn get_user`, ...). Blocks carrying no directive are not
exported.
"""

import json
import logging
import re
import textwrap
from pathlib import Path

from pydantic import BaseModel

from oas_forge.parser.base import BlueprintItem, ExtractedItem, FragmentItem, RouteItem, SchemaItem
from oas_forge.parser.directives import DirectiveKind, DirectiveLine, classify_line, parse_insert

logger = logging.getLogger(__name__)

_DOC_RE = re.compile(r"^\s*(?P<marker>///(?!/)|//!) ?(?P<text>.*)$")
_ATTR_RE = re.compile(r"^\s*#!?\[")
_COMMENT_RE = re.compile(r"^\s*//")
_DECL_RE = re.compile(
    r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:(?:async|const|unsafe|extern(?:\s+\"[^\"]*\")?)\s+)*"
    r"(?P<kind>struct|enum|fn|type|mod|trait|union)\s+(?P<name>[A-Za-z_]\w*)"
)
_ROOT_KEY_RE = re.compile(
    r"^(openapi|info|paths|components|tags|servers|security|externalDocs|webhooks)\s*:"
)
_RENAME_RE = re.compile(r"^rename\s+\"?([^\"\s]+)\"?\s*$")


class DocBlock(BaseModel):
    """A run of doc-comment lines and the item it documents."""

    lines: list[str]
    line: int
    inner: bool
    item_kind: str | None = None
    item_name: str | None = None

    @property
    def text(self) -> str:
        return textwrap.dedent("\n".join(self.lines))


def collect_blocks(text: str) -> list[DocBlock]:
    """Group doc-comment lines into blocks, in file order."""
    source_lines = text.split("\n")
    blocks: list[DocBlock] = []
    current: DocBlock | None = None

    for index, line in enumerate(source_lines):
        m = _DOC_RE.match(line)
        inner = bool(m) and m.group("marker") == "//!"
        if current is not None and (not m or inner != current.inner):
            if not current.inner:
                current.item_kind, current.item_name = _find_declaration(source_lines, index)
            blocks.append(current)
            current = None
        if m:
            if current is None:
                current = DocBlock(lines=[], line=index + 1, inner=inner)
            current.lines.append(m.group("text"))

    if current is not None:
        blocks.append(current)
    return blocks


def _find_declaration(lines: list[str], start: int) -> tuple[str | None, str | None]:
    for line in lines[start:]:
        if not line.strip() or _ATTR_RE.match(line) or _COMMENT_RE.match(line):
            continue
        m = _DECL_RE.match(line)
        if m:
            return m.group("kind"), m.group("name")
        return None, None
    return None, None


def extract_items(text: str, file_path: Path) -> list[ExtractedItem]:
    """Extract schemas, fragments, blueprints and route bundles from source text."""
    items: list[ExtractedItem] = []
    for block in collect_blocks(text):
        items.extend(_items_from_block(block, file_path))
    return items


def _items_from_block(block: DocBlock, file_path: Path) -> list[ExtractedItem]:
    lines = block.text.split("\n")
    events = [classify_line(line) for line in lines]

    if any(e.kind is DirectiveKind.ROUTE for e in events):
        operation_id = block.item_name if block.item_kind == "fn" else _derive_operation_id(events)
        return [
            RouteItem(
                content="\n".join(lines),
                file_path=file_path,
                line=block.line,
                operation_id=operation_id,
            )
        ]

    header_kinds = (DirectiveKind.OPENAPI, DirectiveKind.OPENAPI_TYPE, DirectiveKind.OPENAPI_FRAGMENT)
    if not any(e.kind in header_kinds for e in events):
        return []

    name = block.item_name
    preamble: list[str] = []
    sections: list[tuple[DirectiveLine, list[str]]] = []
    for line, event in zip(lines, events):
        if event.kind is DirectiveKind.OPENAPI and event.argument.startswith("rename"):
            # naming modifiers: `rename "X"` renames, `rename-all` needs field reflection
            rename = _RENAME_RE.match(event.argument)
            if rename:
                name = rename.group(1)
            if not sections:
                sections.append((classify_line("@openapi"), []))
        elif event.kind in header_kinds:
            sections.append((event, []))
        elif sections:
            sections[-1][1].append(line)
        else:
            preamble.append(line.strip())
    if not sections:
        sections.append((classify_line("@openapi"), []))

    items: list[ExtractedItem] = []
    for header, body_lines in sections:
        body = "\n".join(body_lines).strip("\n")
        if header.kind is DirectiveKind.OPENAPI_FRAGMENT:
            parsed = parse_insert(header.argument)
            if parsed is None:
                logger.warning("Malformed @openapi-fragment at %s:%d", file_path, block.line)
                continue
            frag_name, params = parsed
            items.append(
                FragmentItem(name=frag_name, params=params, content=textwrap.dedent(body), file_path=file_path, line=block.line)
            )
        elif header.kind is DirectiveKind.OPENAPI_TYPE:
            type_name = header.argument.strip()
            items.append(
                SchemaItem(name=type_name, content=wrap_in_schema(type_name, body), file_path=file_path, line=block.line)
            )
        elif header.argument.startswith("<"):
            end = header.argument.rfind(">")
            if end < 0 or name is None:
                logger.warning("Blueprint header without a named item at %s:%d", file_path, block.line)
                continue
            params = [p.strip() for p in header.argument[1:end].split(",") if p.strip()]
            rest = header.argument[end + 1:].strip()
            content = "\n".join(filter(None, [rest, textwrap.dedent(body)]))
            items.append(BlueprintItem(name=name, params=params, content=content, file_path=file_path, line=block.line))
        else:
            body_text = "\n".join(filter(None, [header.argument, textwrap.dedent(body)]))
            items.append(_schema_item(name, body_text, preamble, file_path, block.line))
    return items


def _schema_item(name: str | None, body: str, preamble: list[str], file_path: Path, line: int) -> SchemaItem:
    has_root_key = any(_ROOT_KEY_RE.match(b) for b in body.split("\n"))
    if has_root_key or name is None:
        return SchemaItem(name=name, content=body, file_path=file_path, line=line)

    if not body.strip():
        body = "type: object"
    description = " ".join(p for p in preamble if p)
    if description and not re.search(r"^description\s*:", body, re.MULTILINE):
        body = f"{body}\ndescription: {json.dumps(description)}"
    return SchemaItem(name=name, content=wrap_in_schema(name, body), file_path=file_path, line=line)


def wrap_in_schema(name: str, content: str) -> str:
    """Nest a schema body under `components.schemas.<name>`."""
    indented = "\n".join(f"      {line}" if line else "" for line in content.split("\n"))
    return f"components:\n  schemas:\n    {name}:\n{indented}"


def _derive_operation_id(events) -> str:
    for event in events:
        if event.kind is DirectiveKind.ROUTE:
            parts = event.argument.split(None, 1)
            words = re.findall(r"[A-Za-z0-9]+", re.sub(r"\{(\w+)[^}]*\}", r"\1", parts[-1]))
            return "_".join([parts[0].lower(), *words]) if len(parts) > 1 else parts[0].lower()
    return "operation"
