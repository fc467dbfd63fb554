"""Generic blueprint instantiation.

`$Page<$Wrapper<User>>` resolves innermost-first: `Wrapper<User>` becomes
the concrete schema `Wrapper_User`, then `Page<Wrapper_User>` becomes
`Page_Wrapper_User`. Each concrete body is stored once in the registry's
concrete-schema cache.
"""

import logging

import yaml

from oas_forge.errors import UndeclaredBlueprintError
from oas_forge.parser.generics import SLICE, UNIT, TypeExpr, parse_type_expr, substitute_placeholders
from oas_forge.parser.types import PRIMITIVES, SEQUENCES, TRANSPARENT_WRAPPERS
from oas_forge.registry import Registry

logger = logging.getLogger(__name__)


class Monomorphizer:
    """Instantiates blueprints into concrete, cached schemas."""

    def __init__(self, registry: Registry):
        self.registry = registry

    def process(self, expr: str) -> str:
        """Instantiate a generic reference and return `$<mangled name>`."""
        return "$" + self._resolve(parse_type_expr(expr.strip()))

    def _resolve(self, expr: TypeExpr) -> str:
        if expr.name == UNIT:
            return "Unit"
        if expr.name == SLICE:
            return self._array(expr.args[0])
        if not expr.is_generic:
            return expr.base_name

        name = expr.base_name
        if name not in self.registry.blueprints:
            # std containers are not blueprints unless one is declared under that name
            if name in TRANSPARENT_WRAPPERS or name == "Option":
                return self._resolve(expr.args[0])
            if name in SEQUENCES:
                return self._array(expr.args[0])

        # Arguments first: the mangled name is built from resolved names.
        resolved_args = [self._resolve(arg) for arg in expr.args]
        mangled = "_".join([name, *resolved_args])

        if mangled not in self.registry.concrete_schemas:
            blueprint = self.registry.lookup_blueprint(name)
            if blueprint is None:
                raise UndeclaredBlueprintError(name)
            if len(blueprint.params) != len(resolved_args):
                logger.warning(
                    "Blueprint '%s' expects %d argument(s), got %d in '%s'",
                    name, len(blueprint.params), len(resolved_args), expr.render(),
                )
            values = dict(zip(blueprint.params, resolved_args))
            self.registry.get_or_insert_concrete(
                mangled, lambda: substitute_placeholders(blueprint.body, values)
            )
        return mangled

    def _array(self, item: TypeExpr) -> str:
        """Concrete `Array_<item>` schema for `Vec<T>` and `[T]` arguments."""
        item_name = self._resolve(item)

        def compute() -> str:
            items = dict(PRIMITIVES[item_name]) if item_name in PRIMITIVES else {"$ref": "$" + item_name}
            return yaml.safe_dump({"type": "array", "items": items}, sort_keys=False)

        mangled = "Array_" + item_name
        self.registry.get_or_insert_concrete(mangled, compute)
        return mangled
