"""Line classifier for the directive language.

Every line of directive-bearing text is turned into a `DirectiveLine`
event. A directive is an `@keyword` preceded only by a prefix made of
comment markers, indentation or a YAML list dash, so `/// @insert Frag`,
`  - @insert Frag` and `@route GET /` are directives while
`contact: admin@example.com` is plain text.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

_DIRECTIVE_RE = re.compile(r"^(?P<prefix>[^\w@\"'$`]*)@(?P<keyword>[A-Za-z][\w-]*)(?P<rest>.*)$")
_INSERT_RE = re.compile(r"^(?P<name>[A-Za-z_][\w.-]*)\s*(?:\((?P<args>.*)\))?\s*$")

PARAM_LOCATIONS = {
    "path-param": "path",
    "query-param": "query",
    "header-param": "header",
    "cookie-param": "cookie",
}


class DirectiveKind(str, Enum):
    INSERT = "insert"
    EXTEND = "extend"
    ROUTE = "route"
    TAG = "tag"
    PARAM = "param"
    BODY = "body"
    RETURN = "return"
    SECURITY = "security"
    OPENAPI = "openapi"
    OPENAPI_TYPE = "openapi-type"
    OPENAPI_FRAGMENT = "openapi-fragment"
    UNKNOWN = "unknown"
    TEXT = "text"
    BLANK = "blank"


_KEYWORDS = {
    "insert": DirectiveKind.INSERT,
    "extend": DirectiveKind.EXTEND,
    "route": DirectiveKind.ROUTE,
    "tag": DirectiveKind.TAG,
    "body": DirectiveKind.BODY,
    "return": DirectiveKind.RETURN,
    "security": DirectiveKind.SECURITY,
    "openapi": DirectiveKind.OPENAPI,
    "openapi-type": DirectiveKind.OPENAPI_TYPE,
    "openapi-fragment": DirectiveKind.OPENAPI_FRAGMENT,
    **{k: DirectiveKind.PARAM for k in PARAM_LOCATIONS},
}


class DirectiveLine(BaseModel):
    """One classified line of directive text."""

    model_config = ConfigDict(frozen=True)

    kind: DirectiveKind
    raw: str
    prefix: str = ""
    keyword: str = ""
    argument: str = ""

    @property
    def is_directive(self) -> bool:
        return self.kind not in (DirectiveKind.TEXT, DirectiveKind.BLANK)


def classify_line(line: str) -> DirectiveLine:
    """Classify a single line."""
    if not line.strip():
        return DirectiveLine(kind=DirectiveKind.BLANK, raw=line)
    m = _DIRECTIVE_RE.match(line)
    if not m:
        return DirectiveLine(kind=DirectiveKind.TEXT, raw=line)
    keyword = m.group("keyword")
    rest = m.group("rest")
    # `@openapi<T>` attaches its parameter list directly to the keyword
    if rest and not rest[0].isspace() and rest[0] != "<":
        return DirectiveLine(kind=DirectiveKind.TEXT, raw=line)
    return DirectiveLine(
        kind=_KEYWORDS.get(keyword, DirectiveKind.UNKNOWN),
        raw=line,
        prefix=m.group("prefix"),
        keyword=keyword,
        argument=rest.strip(),
    )


def tokenize(text: str) -> list[DirectiveLine]:
    """Classify every line of `text`, in order."""
    return [classify_line(line) for line in text.split("\n")]


def parse_insert(argument: str) -> tuple[str, list[str]] | None:
    """Split an `@insert` argument into the fragment name and its arguments."""
    m = _INSERT_RE.match(argument)
    if not m:
        return None
    args = m.group("args")
    if args is None:
        return m.group("name"), []
    return m.group("name"), [a.strip().strip("\"'") for a in split_top_level(args)]


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on `sep` outside of quotes and `<>`/`()`/`[]` nesting."""
    parts: list[str] = []
    depth = 0
    quote = ""
    current: list[str] = []
    for ch in text:
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch in "<([{":
            depth += 1
        elif ch in ">)]}":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return [p for p in parts if p]


def split_tokens(text: str) -> list[str]:
    """Split on whitespace, keeping quoted strings and bracketed types whole.

    `String required example="a b" "Search term"` gives
    `['String', 'required', 'example="a b"', '"Search term"']`.
    """
    tokens: list[str] = []
    current: list[str] = []
    depth = 0
    quote = ""
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch == '"':
            quote = ch
        elif ch in "<[(":
            depth += 1
        elif ch in ">])":
            depth -= 1
        elif ch.isspace() and depth <= 0:
            if current:
                tokens.append("".join(current))
                current = []
            continue
        current.append(ch)
    if current:
        tokens.append("".join(current))
    return tokens
