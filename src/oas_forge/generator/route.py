"""Route DSL compiler.

Compiles the directive lines attached to one operation into a path-item
document `{paths: {<path>: {<method>: <operation>}}}`:

    @route GET /users/{id: u32 "User ID"}
    @tag Users
    @query-param expand: bool "Include relations"
    @return 200: User "The user"
    @return 404: "Not found"
"""

import logging
import re
import textwrap

import yaml
from pydantic import BaseModel

from oas_forge.errors import PathParameterError
from oas_forge.generator.merger import deep_merge, stringify_keys
from oas_forge.generator.monomorphizer import Monomorphizer
from oas_forge.parser.directives import PARAM_LOCATIONS, DirectiveKind, DirectiveLine, split_tokens, tokenize
from oas_forge.parser.generics import looks_generic, parse_type_expr
from oas_forge.parser.types import TypeResolver

logger = logging.getLogger(__name__)

JSON_MIME = "application/json"

OVERRIDE_KEYS = (
    "parameters:",
    "requestBody:",
    "responses:",
    "security:",
    "externalDocs:",
    "callbacks:",
    "servers:",
)

STD_WRAPPERS = ("Option<", "Vec<", "Box<", "Arc<", "Rc<", "Cow<")
UNIT_TYPES = ("()", "unit")
VEC_MACRO = "$Vec<"

_INLINE_PARAM_RE = re.compile(r'\{(\w+)(?::\s*([^"}]+))?(?:\s*"([^"]+)")?\}')
_PATH_VAR_RE = re.compile(r"\{(\w+)\}")
_SECURITY_RE = re.compile(r"^([^(\s]+)\s*(?:\((.*)\))?\s*$")


class Parameter(BaseModel):
    name: str
    location: str  # path / query / header / cookie
    required: bool
    schema_: dict
    description: str | None = None
    deprecated: bool = False
    example: str | None = None

    def to_document(self) -> dict:
        doc = {"name": self.name, "in": self.location, "required": self.required, "schema": self.schema_}
        if self.deprecated:
            doc["deprecated"] = True
        if self.example is not None:
            doc["example"] = self.example
        if self.description is not None:
            doc["description"] = self.description
        return doc


class OperationDraft(BaseModel):
    """In-progress operation built up line by line."""

    operation_id: str
    method: str = ""
    path: str = ""
    summary: str | None = None
    description_lines: list[str] = []
    tags: list[str] = []
    parameters: list[Parameter] = []
    request_body: dict | None = None
    responses: dict[str, dict] = {}
    security: list[dict[str, list[str]]] | None = None
    override_lines: list[str] = []
    declared_path_params: list[str] = []

    def add_parameter(self, param: Parameter) -> None:
        # a later declaration of the same parameter replaces the earlier one
        self.parameters = [
            p for p in self.parameters if (p.name, p.location) != (param.name, param.location)
        ]
        self.parameters.append(param)
        if param.location == "path" and param.name not in self.declared_path_params:
            self.declared_path_params.append(param.name)

    def description(self) -> str | None:
        if not self.description_lines:
            return None
        return textwrap.dedent("\n".join(self.description_lines))

    def to_operation(self) -> dict:
        operation = {
            "summary": self.summary,
            "description": self.description(),
            "operationId": self.operation_id,
            "tags": list(self.tags),
            "parameters": [p.to_document() for p in self.parameters],
            "requestBody": self.request_body,
            "responses": dict(self.responses),
            "security": self.security,
        }
        return operation


class RouteCompiler:
    """Turns route directive bundles into path-item documents.

    When a `monomorphizer` is given, `$`-prefixed generic body and response
    types are instantiated immediately; otherwise they are kept as raw
    references for the reference resolution pass.
    """

    def __init__(self, resolver: TypeResolver | None = None, monomorphizer: Monomorphizer | None = None):
        self.resolver = resolver or TypeResolver()
        self.monomorphizer = monomorphizer

    def compile(self, directive_lines: list[str], operation_id: str) -> dict | None:
        """Compile one operation. Returns None when there is no `@route` line."""
        events = [e for line in directive_lines for e in tokenize(line)]
        if not any(e.kind is DirectiveKind.ROUTE for e in events):
            return None

        draft = OperationDraft(operation_id=operation_id)
        collecting_override = False
        for event in events:
            if event.kind is DirectiveKind.BLANK:
                continue
            if event.is_directive:
                collecting_override = False
                self._apply_directive(draft, event)
                continue

            stripped = event.raw.strip()
            if stripped.startswith(OVERRIDE_KEYS):
                collecting_override = True
            if collecting_override:
                draft.override_lines.append(event.raw)
            elif draft.summary is None:
                draft.summary = stripped
            else:
                draft.description_lines.append(event.raw)

        if not draft.method or not draft.path:
            logger.warning("Route '%s' has an incomplete @route line, skipped", operation_id)
            return None

        operation = draft.to_operation()
        if draft.override_lines:
            self._merge_override(operation, draft)
        self._validate_path_params(draft)

        operation = {k: v for k, v in operation.items() if v is not None}
        return {"paths": {draft.path: {draft.method: operation}}}

    def _apply_directive(self, draft: OperationDraft, event: DirectiveLine) -> None:
        handlers = {
            DirectiveKind.ROUTE: self._route,
            DirectiveKind.TAG: self._tag,
            DirectiveKind.PARAM: self._param,
            DirectiveKind.BODY: self._body,
            DirectiveKind.RETURN: self._return,
            DirectiveKind.SECURITY: self._security,
        }
        handler = handlers.get(event.kind)
        if handler is None:
            logger.debug("Ignoring '@%s' in route '%s'", event.keyword, draft.operation_id)
            return
        handler(draft, event)

    def _route(self, draft: OperationDraft, event: DirectiveLine) -> None:
        parts = event.argument.split(None, 1)
        if len(parts) < 2:
            logger.warning("Malformed @route in '%s': %s", draft.operation_id, event.raw.strip())
            return
        draft.method = parts[0].lower()

        new_path = []
        last_end = 0
        raw_path = parts[1].strip()
        for m in _INLINE_PARAM_RE.finditer(raw_path):
            name, type_str, desc = m.group(1), m.group(2), m.group(3)
            new_path.append(raw_path[last_end:m.start()])
            new_path.append("{" + name + "}")
            last_end = m.end()
            if type_str is None and desc is None:
                continue  # bare, declared separately with @path-param
            schema, _ = self.resolver.resolve((type_str or "String").strip())
            draft.add_parameter(Parameter(name=name, location="path", required=True, schema_=schema, description=desc))
        new_path.append(raw_path[last_end:])
        draft.path = "".join(new_path)

    def _tag(self, draft: OperationDraft, event: DirectiveLine) -> None:
        draft.tags = [t.strip() for t in event.argument.split(",") if t.strip()]

    def _param(self, draft: OperationDraft, event: DirectiveLine) -> None:
        location = PARAM_LOCATIONS[event.keyword]
        name, sep, spec = event.argument.partition(":")
        if not sep or not name.strip():
            logger.warning("Parameter without 'name:' in '%s': %s", draft.operation_id, event.raw.strip())
            return
        name = name.strip()
        tokens = split_tokens(spec.strip())

        type_str = "String"
        if tokens and not _is_param_flag(tokens[0]):
            type_str = tokens.pop(0)
        schema, required = self.resolver.resolve(type_str)

        deprecated = False
        example = None
        description = None
        for i, token in enumerate(tokens):
            if token == "deprecated":
                deprecated = True
            elif token == "required":
                required = True
            elif token.startswith("example="):
                example = token[len("example="):].strip('"')
            elif token.startswith('"'):
                description = " ".join(tokens[i:]).strip('"')
                break

        if location == "path":
            required = True
        draft.add_parameter(
            Parameter(
                name=name,
                location=location,
                required=required,
                schema_=schema,
                description=description,
                deprecated=deprecated,
                example=example,
            )
        )

    def _body(self, draft: OperationDraft, event: DirectiveLine) -> None:
        parts = split_tokens(event.argument)
        if not parts:
            return
        mime = parts[1] if len(parts) > 1 else JSON_MIME
        draft.request_body = {"content": {mime: {"schema": self._schema_for(parts[0])}}}

    def _return(self, draft: OperationDraft, event: DirectiveLine) -> None:
        code, sep, residue = event.argument.partition(":")
        if not sep:
            logger.warning("Malformed @return in '%s': %s", draft.operation_id, event.raw.strip())
            return
        code = code.strip()
        residue = residue.strip()

        description = ""
        if residue.startswith('"'):
            type_str = "()"
            description = residue.strip('"')
        elif '"' in residue:
            quote = residue.index('"')
            type_str = residue[:quote].strip()
            description = residue[quote + 1:].rstrip().removesuffix('"')
        else:
            type_str = residue

        response: dict = {"description": description}
        if type_str and type_str not in UNIT_TYPES:
            response["content"] = {JSON_MIME: {"schema": self._schema_for(type_str)}}
        draft.responses[code] = response

    def _security(self, draft: OperationDraft, event: DirectiveLine) -> None:
        m = _SECURITY_RE.match(event.argument)
        if not m:
            logger.warning("Malformed @security in '%s': %s", draft.operation_id, event.raw.strip())
            return
        scheme, inner = m.group(1), m.group(2)
        scopes = [s.strip().strip("\"'") for s in inner.split(",")] if inner else []
        if draft.security is None:
            draft.security = []
        draft.security.append({scheme: [s for s in scopes if s]})

    def _schema_for(self, type_ref: str) -> dict:
        """Schema for a `@body`/`@return` type or reference."""
        if type_ref.startswith(VEC_MACRO):
            item = parse_type_expr(type_ref).args[0]
            item_ref = item.render() if item.sigil else "$" + item.render()
            return {"type": "array", "items": self._schema_for(item_ref)}
        if not type_ref.startswith(STD_WRAPPERS) and "<" in type_ref:
            if self.monomorphizer is not None and looks_generic(type_ref):
                return {"$ref": self.monomorphizer.process(type_ref)}
            return {"$ref": type_ref}
        if type_ref.startswith("$"):
            return {"$ref": f"#/components/schemas/{type_ref[1:]}"}
        return self.resolver.resolve(type_ref)[0]

    def _merge_override(self, operation: dict, draft: OperationDraft) -> None:
        text = textwrap.dedent("\n".join(draft.override_lines))
        try:
            override = stringify_keys(yaml.safe_load(text))
        except yaml.YAMLError as e:
            logger.warning("Skipping malformed override in route '%s': %s", draft.operation_id, e)
            return
        if override is None:
            return
        if not isinstance(override, dict):
            logger.warning("Skipping non-mapping override in route '%s'", draft.operation_id)
            return
        merged = deep_merge(operation, override)
        operation.clear()
        operation.update(merged)

    def _validate_path_params(self, draft: OperationDraft) -> None:
        used = _PATH_VAR_RE.findall(draft.path)
        for name in used:
            if name not in draft.declared_path_params:
                raise PathParameterError(name, draft.path, "missing")
        for name in draft.declared_path_params:
            if name not in used:
                raise PathParameterError(name, draft.path, "unused")
            if used.count(name) > 1:
                raise PathParameterError(name, draft.path, "duplicate")


def _is_param_flag(token: str) -> bool:
    return token in ("deprecated", "required") or token.startswith(("example=", '"'))
