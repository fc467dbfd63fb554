"""Generator configuration.

Sources, lowest precedence first: `[tool.oas-forge]` in pyproject.toml,
`openapi.toml`, an explicit `--config` file, then command-line options. A
key set by a later source replaces the earlier value.
"""

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ValidationError

from oas_forge.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "openapi.toml"
PYPROJECT_TABLE = "oas-forge"


class GeneratorConfig(BaseModel):
    input: list[Path] | None = None
    include: list[Path] | None = None
    output: list[Path] | None = None
    output_schemas: list[Path] | None = None
    output_paths: list[Path] | None = None
    output_fragments: list[Path] | None = None

    def merged_with(self, other: "GeneratorConfig") -> "GeneratorConfig":
        """Copy of this config with every key `other` sets taken from `other`."""
        return self.model_copy(update=other.model_dump(exclude_none=True))

    def has_outputs(self) -> bool:
        return any([self.output, self.output_schemas, self.output_paths, self.output_fragments])


def _normalize(table: dict) -> dict:
    # TOML files may use kebab-case keys and single paths instead of lists
    data = {}
    for key, value in table.items():
        key = key.replace("-", "_")
        data[key] = [value] if isinstance(value, str) else value
    return data


def _from_table(table: dict, source: Path) -> GeneratorConfig:
    try:
        return GeneratorConfig(**_normalize(table))
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def load_toml_config(path: Path) -> GeneratorConfig:
    """Load a standalone TOML configuration file."""
    try:
        with path.open("rb") as f:
            table = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    return _from_table(table, path)


def load_pyproject_config(path: Path) -> GeneratorConfig:
    """Load the `[tool.oas-forge]` table of a pyproject.toml."""
    try:
        with path.open("rb") as f:
            table = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    return _from_table(table.get("tool", {}).get(PYPROJECT_TABLE, {}), path)


def load_config(
    overrides: GeneratorConfig | None = None,
    config_file: Path | None = None,
    cwd: Path | None = None,
) -> GeneratorConfig:
    """Resolve the effective configuration for one run."""
    cwd = cwd or Path.cwd()
    config = GeneratorConfig()

    for candidate, loader in (
        (cwd / "pyproject.toml", load_pyproject_config),
        (cwd / DEFAULT_CONFIG_FILE, load_toml_config),
    ):
        if not candidate.is_file():
            continue
        try:
            config = config.merged_with(loader(candidate))
            logger.debug("Loaded configuration from %s", candidate)
        except ConfigError as e:
            logger.warning("Ignoring %s", e)

    if config_file is not None:
        config = config.merged_with(load_toml_config(config_file))
        logger.debug("Loaded configuration from %s", config_file)

    if overrides is not None:
        config = config.merged_with(overrides)
    return config
