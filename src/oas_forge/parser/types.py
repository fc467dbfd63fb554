"""Type resolver: maps type descriptors to OpenAPI schema primitives."""

import logging

from oas_forge.errors import MalformedGenericError
from oas_forge.parser.generics import SLICE, UNIT, TypeExpr, parse_type_expr

logger = logging.getLogger(__name__)

PRIMITIVES: dict[str, dict] = {
    "bool": {"type": "boolean"},
    "String": {"type": "string"},
    "str": {"type": "string"},
    "char": {"type": "string"},
    "i8": {"type": "integer", "format": "int32"},
    "i16": {"type": "integer", "format": "int32"},
    "i32": {"type": "integer", "format": "int32"},
    "u8": {"type": "integer", "format": "int32"},
    "u16": {"type": "integer", "format": "int32"},
    "u32": {"type": "integer", "format": "int32"},
    "i64": {"type": "integer", "format": "int64"},
    "u64": {"type": "integer", "format": "int64"},
    "isize": {"type": "integer", "format": "int64"},
    "usize": {"type": "integer", "format": "int64"},
    "f32": {"type": "number", "format": "float"},
    "f64": {"type": "number", "format": "double"},
    "Uuid": {"type": "string", "format": "uuid"},
    "NaiveDate": {"type": "string", "format": "date"},
    "DateTime": {"type": "string", "format": "date-time"},
    "NaiveDateTime": {"type": "string", "format": "date-time"},
    "DateTimeUtc": {"type": "string", "format": "date-time"},
    "NaiveTime": {"type": "string", "format": "time"},
    "Url": {"type": "string", "format": "uri"},
    "Uri": {"type": "string", "format": "uri"},
    "Decimal": {"type": "string", "format": "decimal"},
    "BigDecimal": {"type": "string", "format": "decimal"},
    "ObjectId": {"type": "string", "format": "objectid"},
    "Value": {},
}

TRANSPARENT_WRAPPERS = {"Box", "Arc", "Rc", "Cow"}
SEQUENCES = {"Vec", "LinkedList", "HashSet", "BTreeSet", "VecDeque"}
MAPS = {"HashMap", "BTreeMap"}


class TypeResolver:
    """Resolves a type descriptor into `(schema, required_by_default)`."""

    def resolve(self, descriptor: str) -> tuple[dict, bool]:
        try:
            expr = parse_type_expr(descriptor)
        except MalformedGenericError as e:
            logger.debug("Unparseable type '%s' treated as string: %s", descriptor, e.detail)
            return {"type": "string"}, True
        return self.resolve_expr(expr)

    def resolve_expr(self, expr: TypeExpr) -> tuple[dict, bool]:
        if expr.name == UNIT:
            return {}, True
        if expr.name == SLICE:
            return {"type": "array", "items": self.resolve_expr(expr.args[0])[0]}, True

        name = expr.base_name
        if name in TRANSPARENT_WRAPPERS and expr.args:
            return self.resolve_expr(expr.args[0])
        if name == "Option":
            if expr.args:
                return self.resolve_expr(expr.args[0])[0], False
            return {}, False
        if name in SEQUENCES:
            if expr.args:
                return {"type": "array", "items": self.resolve_expr(expr.args[0])[0]}, True
            return {"type": "array"}, True
        if name in MAPS:
            if len(expr.args) >= 2:
                values = self.resolve_expr(expr.args[1])[0]
                return {"type": "object", "additionalProperties": values}, True
            return {"type": "object"}, True
        if name in PRIMITIVES:
            return dict(PRIMITIVES[name]), True
        return {"$ref": f"${name}"}, True
