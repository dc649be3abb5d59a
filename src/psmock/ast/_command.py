"""Nodes for pipelines and command invocations."""

__all__ = ["Pipeline", "Command", "CommandParameter", "Redirection"]

from . import _base


class Pipeline(_base.Node):
    """Sequence of elements joined with `|`.

    The first element may be any expression; every later element is a
    Command. Commands after the first are marked as `piped` so bindings
    can account for pipeline input.
    """

    def __init__(self, elements):
        super().__init__(elements)
        self.elements = list(elements)
        for element in self.elements[1:]:
            element.piped = True


class Command(_base.Node):
    """Single command invocation.

    Attributes:
        name: Literal command name, or None when the name is only known at
            run time (`& $cmd`, `& (Get-Name)`, script blocks)
        name_node: The node naming the command for `&` and `.` invocations
        elements: Parameters, arguments, splats and redirections in order
        invocation_operator: "&", "." or None for a plain invocation
        piped: True when the command receives input from an earlier
            pipeline element
    """

    def __init__(self, name: str | None, elements, name_node=None,
                 invocation_operator: str | None = None):
        super().__init__([name_node, *elements])
        self.name = name
        self.name_node = name_node
        self.elements = list(elements)
        self.invocation_operator = invocation_operator
        self.piped = False


class CommandParameter(_base.Node):
    """Parameter token `-Name`, or `-Name:value` with an attached argument."""

    def __init__(self, name: str, argument=None):
        super().__init__([argument])
        self.name = name
        self.argument = argument

    @property
    def colon(self) -> bool:
        return self.argument is not None


class Redirection(_base.Node):
    """Output redirection `> file`, `2>&1`, `*>> log`."""

    def __init__(self, operator: str, target=None):
        super().__init__([target])
        self.operator = operator
        self.target = target
