"""CLI entry point for oas-forge."""

import logging
from pathlib import Path

import click

from oas_forge.config import GeneratorConfig, load_config
from oas_forge.errors import OasForgeError
from oas_forge.generator.pipeline import Generator, build_document, full_view
from oas_forge.parser.scanner import scan

DEFAULT_OUTPUT = Path("openapi.yaml")

_path_list = click.Path(path_type=Path)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _resolve_config(config_file: Path | None, **options) -> GeneratorConfig:
    overrides = GeneratorConfig(**{k: list(v) for k, v in options.items() if v})
    return load_config(overrides, config_file=config_file)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """oas-forge: assemble an OpenAPI document from source doc comments."""
    _setup_logging(verbose)


@main.command()
@click.option("-i", "--input", "inputs", multiple=True, type=_path_list, help="Directory to scan for annotated sources.")
@click.option("--include", "includes", multiple=True, type=_path_list, help="Extra YAML/JSON/source file to merge.")
@click.option("-o", "--output", "outputs", multiple=True, type=_path_list, help="Output file for the full document.")
@click.option("--output-schemas", multiple=True, type=_path_list, help="Output file for components/schemas only.")
@click.option("--output-paths", multiple=True, type=_path_list, help="Output file for paths only.")
@click.option("--output-fragments", multiple=True, type=_path_list, help="Output file for the document minus root details.")
@click.option("--config", "config_file", type=click.Path(exists=True, path_type=Path), help="TOML configuration file.")
def generate(inputs, includes, outputs, output_schemas, output_paths, output_fragments, config_file):
    """Generate OpenAPI definition(s). Defaults to openapi.yaml."""
    try:
        config = _resolve_config(
            config_file,
            input=inputs,
            include=includes,
            output=outputs,
            output_schemas=output_schemas,
            output_paths=output_paths,
            output_fragments=output_fragments,
        )
        if not config.has_outputs():
            config = config.model_copy(update={"output": [DEFAULT_OUTPUT]})

        click.echo("Starting oas-forge...")
        result = Generator(config).generate()
    except OasForgeError as e:
        raise click.ClickException(str(e)) from e

    for view, paths in result.written.items():
        for path in paths:
            click.echo(f"  Written {view}: {path}")
    if result.failed:
        raise click.ClickException("; ".join(f"{view}: {msg}" for view, msg in result.failed.items()))
    click.echo("Successfully generated OpenAPI definition(s)")


@main.command()
@click.option("-i", "--input", "inputs", multiple=True, type=_path_list, help="Directory to scan for annotated sources.")
@click.option("--include", "includes", multiple=True, type=_path_list, help="Extra YAML/JSON/source file to merge.")
@click.option("--config", "config_file", type=click.Path(exists=True, path_type=Path), help="TOML configuration file.")
def check(inputs, includes, config_file):
    """Build the document without writing it and report what was found."""
    try:
        config = _resolve_config(config_file, input=inputs, include=includes)
        files = scan(config.input or [], config.include or [])
        document = build_document(files)
        full_view(document)
    except OasForgeError as e:
        raise click.ClickException(str(e)) from e

    components = document.get("components")
    schemas = components.get("schemas", {}) if isinstance(components, dict) else {}
    paths = document.get("paths", {})
    click.echo(f"Scanned {len(files)} file(s).")
    click.echo(f"Found {len(paths)} path(s) and {len(schemas)} schema(s).")
