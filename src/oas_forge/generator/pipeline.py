"""End-to-end generation: scan, register, expand, compile, merge, write."""

import json
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel

from oas_forge.config import GeneratorConfig
from oas_forge.errors import ConfigError, NoRootError
from oas_forge.generator.merger import merge_snippets
from oas_forge.generator.monomorphizer import Monomorphizer
from oas_forge.generator.preprocessor import expand_comment_inserts, expand_macros
from oas_forge.generator.refs import emit_concrete_schemas, resolve_references
from oas_forge.generator.route import RouteCompiler
from oas_forge.parser.base import BlueprintItem, FragmentItem, RouteItem, SchemaItem, Snippet
from oas_forge.parser.scanner import SourceFile, scan
from oas_forge.parser.types import TypeResolver
from oas_forge.registry import Registry

logger = logging.getLogger(__name__)

ROOT_KEYS = ("openapi", "info")
FRAGMENT_STRIPPED_KEYS = ("openapi", "info", "servers")


class GenerationResult(BaseModel):
    document: dict
    written: dict[str, list[Path]] = {}
    failed: dict[str, str] = {}


def register_items(files: list[SourceFile], registry: Registry) -> None:
    """Pass 1: record every fragment and blueprint before anything expands."""
    for source in files:
        for item in source.extract():
            if isinstance(item, FragmentItem):
                registry.register_fragment(item.name, item.params, item.content)
            elif isinstance(item, BlueprintItem):
                registry.register_blueprint(item.name, item.params, item.content)
    logger.info(
        "Registered %d fragment(s) and %d blueprint(s)",
        len(registry.fragments), len(registry.blueprints),
    )


def collect_snippets(files: list[SourceFile], registry: Registry, compiler: RouteCompiler) -> list[Snippet]:
    """Pass 2: expand macros, compile routes and return mergeable snippets."""
    snippets: list[Snippet] = []
    for source in files:
        text = expand_comment_inserts(source.text, registry) if source.format == "source" else source.text
        for item in source.extract(text):
            if isinstance(item, SchemaItem):
                snippets.append(
                    Snippet(
                        content=expand_macros(item.content, registry),
                        file_path=item.file_path,
                        line_number=item.line,
                    )
                )
            elif isinstance(item, RouteItem):
                lines = expand_macros(item.content, registry).split("\n")
                document = compiler.compile(lines, item.operation_id)
                if document is None:
                    continue
                snippets.append(
                    Snippet(
                        content=yaml.safe_dump(document, sort_keys=False, allow_unicode=True),
                        file_path=item.file_path,
                        line_number=item.line,
                        operation_id=item.operation_id,
                    )
                )
    return snippets


def build_document(files: list[SourceFile], resolver: TypeResolver | None = None) -> dict:
    """Run the whole pipeline over already-read inputs with a fresh registry."""
    registry = Registry()
    register_items(files, registry)

    monomorphizer = Monomorphizer(registry)
    compiler = RouteCompiler(resolver or TypeResolver(), monomorphizer)
    snippets = collect_snippets(files, registry, compiler)

    logger.info("Merging %d snippet(s)", len(snippets))
    document = merge_snippets(snippets)
    document = resolve_references(document, monomorphizer)
    return emit_concrete_schemas(document, monomorphizer)


def full_view(document: dict) -> dict:
    missing = [key for key in ROOT_KEYS if key not in document]
    if missing:
        raise NoRootError(missing)
    return document


def schemas_view(document: dict) -> dict:
    components = document.get("components")
    schemas = components.get("schemas") if isinstance(components, dict) else None
    return schemas if isinstance(schemas, dict) else {}


def paths_view(document: dict) -> dict:
    paths = document.get("paths")
    return paths if isinstance(paths, dict) else {}


def fragment_view(document: dict) -> dict:
    return {k: v for k, v in document.items() if k not in FRAGMENT_STRIPPED_KEYS}


def write_document(path: Path, content: dict) -> None:
    """Write as JSON for `.json` paths, YAML otherwise."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(content, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(content, sort_keys=False, allow_unicode=True), encoding="utf-8")


class Generator:
    """Generates OpenAPI documents for one configuration."""

    def __init__(self, config: GeneratorConfig, resolver: TypeResolver | None = None):
        self.config = config
        self.resolver = resolver or TypeResolver()

    def generate(self) -> GenerationResult:
        """Build the document and write every requested view.

        A view that cannot be built (the full view without a root) is
        skipped and reported in `failed`; the other views are still written.
        """
        config = self.config
        if not config.has_outputs():
            raise ConfigError(
                "At least one output path (output, output_schemas, output_paths, "
                "or output_fragments) is required"
            )

        files = scan(config.input or [], config.include or [])
        document = build_document(files, self.resolver)

        views = []
        if config.output:
            views.append(("full", config.output, full_view))
        if config.output_schemas:
            views.append(("schemas", config.output_schemas, schemas_view))
        if config.output_paths:
            views.append(("paths", config.output_paths, paths_view))
        if config.output_fragments:
            views.append(("fragments", config.output_fragments, fragment_view))

        result = GenerationResult(document=document)
        for view, paths, build_view in views:
            try:
                content = build_view(document)
            except NoRootError as e:
                logger.error("Skipping %s view: %s", view, e)
                result.failed[view] = str(e)
                continue
            if not content:
                logger.warning("Generating empty %s file", view)
            for path in paths:
                write_document(path, content)
                logger.info("Written %s view to %s", view, path)
            result.written[view] = list(paths)
        return result
