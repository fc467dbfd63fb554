"""Input discovery: annotated source files under input directories plus
explicitly included YAML/JSON documents."""

import logging
from pathlib import Path

from pydantic import BaseModel

from oas_forge.errors import SourceParseError
from oas_forge.parser.base import ExtractedItem, SchemaItem
from oas_forge.parser.detect import SOURCE_SUFFIXES, detect_format
from oas_forge.parser.source import extract_items

logger = logging.getLogger(__name__)


class SourceFile(BaseModel):
    path: Path
    text: str
    format: str  # source / yaml / json

    def extract(self, text: str | None = None) -> list[ExtractedItem]:
        """Items found in this file, optionally from rewritten text."""
        text = self.text if text is None else text
        if self.format == "source":
            return extract_items(text, self.path)
        return [SchemaItem(name=None, content=text, file_path=self.path, line=1)]


def discover_sources(inputs: list[Path]) -> list[Path]:
    """All annotated source files below the input directories, sorted."""
    found: list[Path] = []
    for directory in inputs:
        if not directory.is_dir():
            logger.warning("Input directory %s does not exist, skipped", directory)
            continue
        found.extend(p for p in directory.rglob("*") if p.is_file() and p.suffix in SOURCE_SUFFIXES)
    return sorted(set(found))


def read_source(path: Path) -> SourceFile:
    try:
        text = path.read_text(encoding="utf-8")
        fmt = detect_format(path)
    except (OSError, UnicodeDecodeError) as e:
        raise SourceParseError(path, str(e)) from e
    return SourceFile(path=path, text=text, format=fmt)


def scan(inputs: list[Path], includes: list[Path]) -> list[SourceFile]:
    """Read every input: discovered sources first, then includes in given order."""
    paths = discover_sources(inputs)
    for include in includes:
        if include not in paths:
            paths.append(include)
    logger.info("Scanning %d file(s)", len(paths))
    return [read_source(p) for p in paths]
