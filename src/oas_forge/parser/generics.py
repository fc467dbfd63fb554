"""Parser for type and generic-reference expressions.

Handles `$Page<User>`, `$Map<String, $Wrapper<User>>` as well as the type
descriptors used by the route DSL (`Vec<i32>`, `[String]`, `&str`,
`Option<chrono::DateTime<Utc>>`). The result is a small `TypeExpr` tree.
"""

import re

from pydantic import BaseModel, ConfigDict

from oas_forge.errors import MalformedGenericError

SLICE = "[]"
UNIT = "()"

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_LIFETIME_RE = re.compile(r"'[A-Za-z_][A-Za-z0-9_]*")
_LENGTH_RE = re.compile(r"[A-Za-z0-9_]+")


class TypeExpr(BaseModel):
    """A parsed type: a (possibly `$`-marked) name and its type arguments."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: tuple["TypeExpr", ...] = ()
    sigil: bool = False

    @property
    def is_generic(self) -> bool:
        return bool(self.args)

    @property
    def base_name(self) -> str:
        """Last path segment, e.g. `DateTime` for `chrono::DateTime`."""
        return self.name.rsplit("::", 1)[-1]

    def render(self) -> str:
        if self.name == SLICE:
            return f"[{self.args[0].render()}]"
        text = ("$" if self.sigil else "") + self.name
        if self.args:
            text += "<" + ", ".join(a.render() for a in self.args) + ">"
        return text


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def parse(self) -> TypeExpr:
        if not self.text.strip():
            raise self._error("empty expression")
        expr = self._expr()
        if self._peek():
            raise self._error(f"unexpected trailing text '{self.text[self.pos:].strip()}'")
        return expr

    def _error(self, detail: str) -> MalformedGenericError:
        return MalformedGenericError(self.text, detail)

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        self._skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _expect(self, ch: str) -> None:
        if self._peek() != ch:
            found = self._peek() or "end of input"
            raise self._error(f"expected '{ch}' at position {self.pos}, found '{found}'")
        self.pos += 1

    def _match(self, pattern: re.Pattern, what: str) -> str:
        self._skip_ws()
        m = pattern.match(self.text, self.pos)
        if not m:
            raise self._error(f"expected {what} at position {self.pos}")
        self.pos = m.end()
        return m.group()

    def _expr(self) -> TypeExpr:
        ch = self._peek()
        if ch == "&":
            self.pos += 1
            if self._peek() == "'":
                self._match(_LIFETIME_RE, "lifetime")
            self._skip_ws()
            m = _IDENT_RE.match(self.text, self.pos)
            if m and m.group() == "mut":
                self.pos = m.end()
            return self._expr()
        if ch == "[":
            self.pos += 1
            inner = self._expr()
            if self._peek() == ";":
                self.pos += 1
                self._match(_LENGTH_RE, "array length")
            self._expect("]")
            return TypeExpr(name=SLICE, args=(inner,))
        if ch == "(":
            self.pos += 1
            self._expect(")")
            return TypeExpr(name=UNIT)

        sigil = False
        if ch == "$":
            sigil = True
            self.pos += 1
        name = self._path()
        args: list[TypeExpr] = []
        if self._peek() == "<":
            self.pos += 1
            args = self._args()
            self._expect(">")
        return TypeExpr(name=name, args=tuple(args), sigil=sigil)

    def _path(self) -> str:
        parts = [self._match(_IDENT_RE, "identifier")]
        while True:
            self._skip_ws()
            if not self.text.startswith("::", self.pos):
                return "::".join(parts)
            self.pos += 2
            parts.append(self._match(_IDENT_RE, "identifier"))

    def _args(self) -> list[TypeExpr]:
        args: list[TypeExpr] = []
        while True:
            if self._peek() == "'":
                # lifetimes carry no schema information
                self._match(_LIFETIME_RE, "lifetime")
            else:
                args.append(self._expr())
            if self._peek() != ",":
                break
            self.pos += 1
        if not args:
            raise self._error("empty type argument list")
        return args


def parse_type_expr(text: str) -> TypeExpr:
    """Parse a type or generic-reference expression into a `TypeExpr`."""
    return _Parser(text).parse()


def looks_generic(text: str) -> bool:
    """True for `$`-prefixed generic references such as `$Page<User>`."""
    text = text.strip()
    return text.startswith("$") and "<" in text


def substitute_placeholders(body: str, values: dict[str, str]) -> str:
    """Replace each whole-token `$Param` in `body` with `$<value>`.

    All placeholders are replaced in one pass, so a substituted value is
    never itself rewritten.
    """
    if not values:
        return body
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile(
        r"\$(" + "|".join(re.escape(n) for n in names) + r")(?![A-Za-z0-9_])"
    )
    return pattern.sub(lambda m: "$" + values[m.group(1)].lstrip("$"), body)
