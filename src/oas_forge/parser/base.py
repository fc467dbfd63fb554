"""Unified data models shared by the extraction and generation stages.

The extractor turns annotated source files into `ExtractedItem`s; the
generator consumes them as `Snippet`s and registry entries.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict


class Snippet(BaseModel):
    """A unit of raw directive text plus where it came from."""

    model_config = ConfigDict(frozen=True)

    content: str
    file_path: Path
    line_number: int
    operation_id: str | None = None

    def sort_key(self) -> tuple[str, int]:
        return (str(self.file_path), self.line_number)


class Fragment(BaseModel):
    """A reusable snippet body, inserted with `@insert Name`."""

    name: str
    params: list[str] = []
    body: str


class Blueprint(BaseModel):
    """A generic schema template whose body holds `$Param` placeholders."""

    name: str
    params: list[str]
    body: str


class SchemaItem(BaseModel):
    kind: Literal["schema"] = "schema"
    name: str | None
    content: str
    file_path: Path
    line: int


class FragmentItem(BaseModel):
    kind: Literal["fragment"] = "fragment"
    name: str
    params: list[str]
    content: str
    file_path: Path
    line: int


class BlueprintItem(BaseModel):
    kind: Literal["blueprint"] = "blueprint"
    name: str
    params: list[str]
    content: str
    file_path: Path
    line: int


class RouteItem(BaseModel):
    """Ordered route directive lines attached to one operation."""

    kind: Literal["route"] = "route"
    content: str
    file_path: Path
    line: int
    operation_id: str


ExtractedItem = SchemaItem | FragmentItem | BlueprintItem | RouteItem
