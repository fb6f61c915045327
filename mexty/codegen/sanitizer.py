"""Sanitizer — make registry strings safe to embed in generated TypeScript.

Every registry-supplied value that ends up in generated source passes
through exactly one of these helpers:

- identifiers (component names) are validated, never rewritten
- author namespaces are validated as directory names
- string values are emitted through :func:`quote`
- display text inside ``//`` comments goes through :func:`comment_text`
"""

from __future__ import annotations

import re

from mexty.errors import InvalidIdentifierError, InvalidNamespaceError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_SURROGATE_RE = re.compile("[\ud800-\udfff]")

RESERVED_WORDS = frozenset(
    {
        # ECMAScript reserved words
        "break", "case", "catch", "class", "const", "continue", "debugger",
        "default", "delete", "do", "else", "enum", "export", "extends",
        "false", "finally", "for", "function", "if", "import", "in",
        "instanceof", "new", "null", "return", "super", "switch", "this",
        "throw", "true", "try", "typeof", "var", "void", "while", "with",
        # Strict mode
        "implements", "interface", "let", "package", "private", "protected",
        "public", "static", "yield", "await", "eval", "arguments",
        # Built-in globals and the prototype setter key
        "undefined", "__proto__",
        # Names the generated modules declare themselves
        "NamedComponents", "registryMetadata", "authorMetadata",
        "createNamedBlock", "createAuthorBlock",
    }
)

_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def is_valid_identifier(name: str) -> bool:
    """True when ``name`` can be used as an exported binding name."""
    return bool(_IDENTIFIER_RE.match(name)) and name not in RESERVED_WORDS


def validate_identifier(name: str, location: str = "") -> str:
    """Return ``name`` unchanged, or raise if it is not a usable identifier."""
    if not isinstance(name, str) or not is_valid_identifier(name):
        raise InvalidIdentifierError(str(name), location)
    return name


def validate_namespace(author: str, location: str = "") -> str:
    """Return ``author`` unchanged, or raise if it cannot name a module directory."""
    if (
        not isinstance(author, str)
        or author in (".", "..", "__proto__")
        or not _NAMESPACE_RE.match(author)
    ):
        raise InvalidNamespaceError(str(author), location)
    return author


def quote(text: str) -> str:
    """Render ``text`` as a single-quoted TypeScript string literal."""
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        elif 0xD800 <= ord(ch) <= 0xDFFF:
            # Lone surrogates cannot be encoded as UTF-8
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    return "'" + "".join(out) + "'"


def comment_text(text: str) -> str:
    """Flatten ``text`` onto one line so it stays inside a ``//`` comment."""
    flat = " ".join(text.split())
    return _SURROGATE_RE.sub("\ufffd", flat)


def string_list(items: list[str]) -> str:
    """Render a list of strings as an array literal; empty lists give ``[]``."""
    return "[" + ", ".join(quote(item) for item in items) + "]"


def property_key(name: str) -> str:
    """Bare object key for identifiers, quoted key otherwise."""
    return name if _IDENTIFIER_RE.match(name) else quote(name)
