"""Nodes for statements, blocks and function definitions."""

__all__ = [
    "Script",
    "ScriptBody",
    "Block",
    "NamedBlock",
    "FunctionDefinition",
    "ParamBlock",
    "ParameterDefinition",
    "Attribute",
    "AttributeArgument",
    "Assignment",
    "IfStatement",
    "SwitchStatement",
    "SwitchClause",
    "ForeachStatement",
    "ForStatement",
    "WhileStatement",
    "TryStatement",
    "CatchClause",
    "FlowStatement",
]

from . import _base


class ScriptBody(_base.Node):
    """Contents of a script, function or script block.

    A body has optional attributes and a param block, followed either by
    plain statements or by `begin`/`process`/`end` named blocks.
    """

    def __init__(self, attributes, param_block, statements, named_blocks):
        super().__init__([*attributes, param_block, *statements, *named_blocks])
        self.attributes = list(attributes)
        self.param_block = param_block
        self.statements = list(statements)
        self.named_blocks = list(named_blocks)

    @property
    def parameters(self):
        if self.param_block is None:
            return []
        return self.param_block.parameters


class Script(_base.Node):
    """Root of a parsed script file."""

    def __init__(self, body: ScriptBody, filename: str | None = None):
        super().__init__([body])
        self.body = body
        self.filename = filename

    def functions(self) -> list["FunctionDefinition"]:
        """Every function definition in the script, at any depth."""
        return self.find_all(FunctionDefinition)

    def function(self, name: str):
        """Function definition matching name case-insensitively.

        When a name is defined more than once the last definition wins, as
        it does when the script runs.
        """
        folded = name.casefold()
        found = None
        for func in self.functions():
            if func.name.casefold() == folded:
                found = func
        return found


class Block(_base.Node):
    """Statement list in braces belonging to a control flow statement."""

    def __init__(self, statements):
        super().__init__(statements)
        self.statements = list(statements)


class NamedBlock(_base.Node):
    """`begin`, `process` or `end` block of a function body."""

    def __init__(self, name: str, block: Block):
        super().__init__([block])
        self.name = name
        self.block = block


class FunctionDefinition(_base.Node):
    """`function Name { ... }` definition, a new lexical scope.

    Parameters declared inline (`function Name($a) {}`) and in a `param()`
    block are both available through `parameters`.
    """

    def __init__(self, name: str, inline_parameters, body: ScriptBody,
                 filter: bool = False):
        super().__init__([*inline_parameters, body])
        self.name = name
        self.inline_parameters = list(inline_parameters)
        self.body = body
        self.filter = filter

    @property
    def parameters(self) -> list["ParameterDefinition"]:
        return self.inline_parameters + self.body.parameters

    @property
    def attributes(self) -> list["Attribute"]:
        return self.body.attributes


class ParamBlock(_base.Node):
    """`param( ... )` declaration."""

    def __init__(self, parameters):
        super().__init__(parameters)
        self.parameters = list(parameters)


class ParameterDefinition(_base.Node):
    """Single declared parameter with its attributes, types and default."""

    def __init__(self, variable, attributes, types, default=None):
        super().__init__([*attributes, variable, default])
        self.variable = variable
        self.attributes = list(attributes)
        self.types = list(types)
        self.default = default

    @property
    def name(self) -> str:
        return self.variable.name

    def attribute(self, name: str):
        """First attribute with the given name, case-insensitive."""
        folded = name.casefold()
        for attr in self.attributes:
            if attr.name.casefold() == folded:
                return attr
        return None


class AttributeArgument(_base.Node):
    """Argument inside an attribute.

    Named arguments carry `name` and `value`. A flag such as `Mandatory`
    has a name but no value. Positional arguments have no name.
    """

    def __init__(self, name: str | None, value=None):
        super().__init__([value])
        self.name = name
        self.value = value


class Attribute(_base.Node):
    """Attribute like `[Parameter(Mandatory, Position=0)]`."""

    def __init__(self, name: str, arguments):
        super().__init__(arguments)
        self.name = name
        self.arguments = list(arguments)

    def named(self, name: str):
        """Named argument by name, case-insensitive, or None."""
        folded = name.casefold()
        for arg in self.arguments:
            if arg.name and arg.name.casefold() == folded:
                return arg
        return None

    @property
    def positional(self):
        return [arg.value for arg in self.arguments if arg.name is None]


class Assignment(_base.Node):
    """Assignment statement `target op value`.

    `type_name` is set for typed assignments like `[int]$x = 1`.
    """

    def __init__(self, target, operator: str, value, type_name: str | None = None):
        super().__init__([target, value])
        self.target = target
        self.operator = operator
        self.value = value
        self.type_name = type_name


class IfStatement(_base.Node):
    """`if`/`elseif`/`else` chain, clauses kept as (condition, block) pairs."""

    def __init__(self, clauses, else_block=None):
        kids = [kid for clause in clauses for kid in clause]
        super().__init__([*kids, else_block])
        self.clauses = list(clauses)
        self.else_block = else_block


class SwitchClause(_base.Node):
    def __init__(self, condition, block: Block):
        super().__init__([condition, block])
        self.condition = condition
        self.block = block


class SwitchStatement(_base.Node):
    def __init__(self, flags, subject, clauses):
        super().__init__([subject, *clauses])
        self.flags = list(flags)
        self.subject = subject
        self.clauses = list(clauses)


class ForeachStatement(_base.Node):
    def __init__(self, variable, iterable, body: Block):
        super().__init__([variable, iterable, body])
        self.variable = variable
        self.iterable = iterable
        self.body = body


class ForStatement(_base.Node):
    def __init__(self, init, condition, step, body: Block):
        super().__init__([init, condition, step, body])
        self.init = init
        self.condition = condition
        self.step = step
        self.body = body


class WhileStatement(_base.Node):
    """`while` loop, or `do { } while/until ( )` when `form` says so."""

    def __init__(self, condition, body: Block, form: str = "while"):
        if form == "while":
            super().__init__([condition, body])
        else:
            super().__init__([body, condition])
        self.condition = condition
        self.body = body
        self.form = form


class CatchClause(_base.Node):
    def __init__(self, types, body: Block):
        super().__init__([body])
        self.types = list(types)
        self.body = body


class TryStatement(_base.Node):
    def __init__(self, body: Block, catches, finally_block=None):
        super().__init__([body, *catches, finally_block])
        self.body = body
        self.catches = list(catches)
        self.finally_block = finally_block


class FlowStatement(_base.Node):
    """`return`, `throw`, `exit`, `break` or `continue` with optional value."""

    def __init__(self, keyword: str, value=None):
        super().__init__([value])
        self.keyword = keyword
        self.value = value
