"""Symbol table for one generation run.

Holds named fragments, generic blueprints and the cache of concrete
(monomorphized) schema bodies. A fresh Registry is built per run and passed
explicitly to every stage that needs it.
"""

import logging
from collections.abc import Callable

from oas_forge.parser.base import Blueprint, Fragment

logger = logging.getLogger(__name__)


class Registry:
    """Fragments, blueprints and concrete schemas known to a run."""

    def __init__(self):
        self.fragments: dict[str, Fragment] = {}
        self.blueprints: dict[str, Blueprint] = {}
        self.concrete_schemas: dict[str, str] = {}

    def register_fragment(self, name: str, params: list[str], body: str) -> None:
        if name in self.fragments:
            logger.debug("Fragment '%s' redefined, last registration wins", name)
        self.fragments[name] = Fragment(name=name, params=list(params), body=body)

    def register_blueprint(self, name: str, params: list[str], body: str) -> None:
        if name in self.blueprints:
            logger.debug("Blueprint '%s' redefined, last registration wins", name)
        self.blueprints[name] = Blueprint(name=name, params=list(params), body=body)

    def lookup_fragment(self, name: str) -> Fragment | None:
        return self.fragments.get(name)

    def lookup_blueprint(self, name: str) -> Blueprint | None:
        return self.blueprints.get(name)

    def get_or_insert_concrete(self, mangled_name: str, compute: Callable[[], str]) -> str:
        """Return the cached body for `mangled_name`, computing it only once."""
        if mangled_name not in self.concrete_schemas:
            self.concrete_schemas[mangled_name] = compute()
            logger.debug("Instantiated concrete schema '%s'", mangled_name)
        return self.concrete_schemas[mangled_name]
