"""Command argument pairing and classification"""

__all__ = [
    "RawArgument",
    "raw_arguments",
    "classify",
    "strip_quotes",
    "argument_text",
    "NAME",
    "POSITION",
    "SPLAT",
    "SWITCH_VALUE",
]

from dataclasses import dataclass

import psmock

from ._config import PSEUDO_KEYS

# Binding strategies
NAME = "name"
POSITION = "position"
SPLAT = "splat"

# Value recorded for a switch parameter given without an argument
SWITCH_VALUE = "$true"

# Switches every cmdlet and advanced function accepts
_COMMON_SWITCHES = {"verbose", "debug", "whatif", "confirm"}


@dataclass(frozen=True)
class RawArgument:
    """One argument of an invocation as written.

    Attributes:
        name: Parameter name without the dash, None for positional
            arguments and splats
        value: Argument node, None for a switch written without a value
        ordinal: Index among the positional arguments, None otherwise
        position: Source position of the argument
    """
    name: str | None
    value: object = None
    ordinal: int | None = None
    position: object = None

    @property
    def text(self) -> str:
        return argument_text(self.value)


def raw_arguments(command, pseudo_keys=PSEUDO_KEYS, lookup=None):
    """Pair the elements of a command into raw arguments.

    A parameter takes the following element as its argument unless it was
    written `-Name:value`, or the next element is itself a parameter or a
    splat, in which case it is a switch. When `lookup` is given and the
    command's signature declares the parameter as a switch, the following
    element stays a positional argument. The signature is only looked up
    when a parameter is followed by a value.

    Parameters named in `pseudo_keys` are dropped without consuming
    anything, so `Where-Object Name -eq x` yields two positional
    arguments. Redirections are not arguments.
    """
    ast = psmock.ast
    elements = [e for e in command.elements if not isinstance(e, ast.Redirection)]
    signature = None
    looked_up = lookup is None or command.name is None
    result = []
    ordinal = 0
    index = 0
    while index < len(elements):
        element = elements[index]
        index += 1
        if isinstance(element, ast.CommandParameter):
            if element.name.casefold() in pseudo_keys:
                continue
            value = element.argument
            if value is None and index < len(elements) and _is_value(elements[index]):
                if not looked_up:
                    signature = lookup(command.name)
                    looked_up = True
                if not _is_switch(signature, element.name):
                    value = elements[index]
                    index += 1
            result.append(RawArgument(element.name, value, None, element.position))
        elif isinstance(element, ast.Variable) and element.splatted:
            result.append(RawArgument(None, element, None, element.position))
        else:
            result.append(RawArgument(None, element, ordinal, element.position))
            ordinal += 1
    return result


def _is_switch(signature, name):
    if signature is None:
        return False
    param = signature.parameter(name)
    if param is None:
        return name.casefold() in _COMMON_SWITCHES
    return param.switch


def _is_value(element):
    ast = psmock.ast
    if isinstance(element, ast.CommandParameter):
        return False
    if isinstance(element, ast.Variable) and element.splatted:
        return False
    return True


def classify(raw: RawArgument) -> str:
    """Binding strategy of a raw argument: NAME, POSITION or SPLAT."""
    value = raw.value
    if isinstance(value, psmock.ast.Variable) and value.splatted:
        return SPLAT
    if raw.name is None:
        return POSITION
    return NAME


def strip_quotes(text: str) -> str:
    """Remove one matching pair of surrounding quote characters."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


def argument_text(node) -> str:
    """Literal text of an argument value.

    Constant strings give their decoded value, so `'x'`, `"x"` and a bare
    `x` are all `x`. Anything else is its source text with quotes removed,
    such as `$path` or `(Get-Date)`.
    """
    if node is None:
        return SWITCH_VALUE
    if isinstance(node, psmock.ast.StringLiteral) and not node.expandable:
        return node.value
    if not node.text and isinstance(node, (psmock.ast.StringLiteral, psmock.ast.NumberLiteral)):
        return node.value
    return strip_quotes(node.text)
