"""Error types raised while assembling an OpenAPI document.

Only a malformed route override is recovered from (logged and skipped);
everything raised from here aborts generation before output is written.
"""

from pathlib import Path


class OasForgeError(Exception):
    """Base class for all generation errors."""


class ConfigError(OasForgeError):
    """Invalid or incomplete generator configuration."""


class SourceParseError(OasForgeError):
    """A source file or snippet body could not be parsed."""

    def __init__(self, path: Path | str, detail: str, line: int | None = None):
        self.path = Path(path)
        self.line = line
        self.detail = detail
        location = f"{self.path}:{line}" if line is not None else str(self.path)
        super().__init__(f"Failed to parse {location}: {detail}")


class NoRootError(OasForgeError):
    """The merged document lacks the `openapi` and `info` root keys."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "No root definition found (missing "
            + ", ".join(missing)
            + "); add an @openapi block with openapi and info"
        )


class PathParameterError(OasForgeError):
    """Declared and used path parameters of a route disagree."""

    def __init__(self, name: str, path: str, reason: str):
        self.name = name
        self.path = path
        self.reason = reason  # missing / unused / duplicate
        if reason == "missing":
            message = f"Missing definition for path parameter '{name}' in route '{path}'"
        elif reason == "duplicate":
            message = f"Path parameter '{name}' appears more than once in route '{path}'"
        else:
            message = f"Declared path parameter '{name}' is unused in route '{path}'"
        super().__init__(message)


class MalformedGenericError(OasForgeError, ValueError):
    """A generic reference expression like `$Page<User>` does not parse."""

    def __init__(self, expr: str, detail: str):
        self.expr = expr
        self.detail = detail
        super().__init__(f"Malformed generic reference '{expr}': {detail}")


class UndeclaredBlueprintError(OasForgeError):
    """A generic reference names a blueprint that was never registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No blueprint registered for generic '{name}'")
