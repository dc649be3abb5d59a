"""Nodes for literal values and variables."""

__all__ = [
    "StringLiteral",
    "NumberLiteral",
    "Variable",
    "TypeLiteral",
    "HashEntry",
    "HashLiteral",
    "ArrayLiteral",
    "ScriptBlock",
]

from . import _base

# Scope qualifiers that still name an ordinary variable
_VARIABLE_SCOPES = {"global", "local", "script", "private", "using"}


class StringLiteral(_base.Node):
    """String constant or bare command-mode word.

    `quote` is the opening quote character, "@'" or '@"' for here-strings,
    and None for bare words written without quotes in command mode.
    `expandable` marks double quoted strings that interpolate variables or
    subexpressions, whose value is only known at run time.
    """

    def __init__(self, value: str, quote: str | None = None, expandable: bool = False):
        super().__init__()
        self.value = value
        self.quote = quote
        self.expandable = expandable


class NumberLiteral(_base.Node):
    """Numeric constant, value kept as written."""

    def __init__(self, value: str):
        super().__init__()
        self.value = value


class Variable(_base.Node):
    """Variable reference such as `$name`, `$script:name` or `@name`.

    A splatted variable is written with `@` in command arguments and
    spreads a hashtable into named parameters.
    """

    def __init__(self, name: str, scope: str | None = None, splatted: bool = False):
        super().__init__()
        self.name = name
        self.scope = scope
        self.splatted = splatted

    @property
    def key(self) -> str:
        """Case-insensitive identity used to match reads with writes."""
        if self.scope and self.scope.lower() not in _VARIABLE_SCOPES:
            return f"{self.scope}:{self.name}".casefold()
        return self.name.casefold()


class TypeLiteral(_base.Node):
    """Type name in brackets, like `[string]` or `[ordered]`."""

    def __init__(self, name: str):
        super().__init__()
        self.name = name


class HashEntry(_base.Node):
    """Single `key = value` pair inside a hashtable literal.

    `key` is the constant key text, or None when the key is computed from a
    variable or expression. `key_node` always holds the key as parsed.
    """

    def __init__(self, key: str | None, key_node, value):
        super().__init__([key_node, value])
        self.key = key
        self.key_node = key_node
        self.value = value

    @property
    def dynamic(self) -> bool:
        return self.key is None


class HashLiteral(_base.Node):
    """Hashtable literal `@{ ... }`."""

    def __init__(self, entries: list[HashEntry]):
        super().__init__(entries)
        self.entries = list(entries)


class ArrayLiteral(_base.Node):
    """Comma separated list of values."""

    def __init__(self, items):
        super().__init__(items)
        self.items = list(items)


class ScriptBlock(_base.Node):
    """Script block literal `{ ... }`, a new lexical scope."""

    def __init__(self, body):
        super().__init__([body])
        self.body = body
