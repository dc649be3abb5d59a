"""Nodes for operators and compound expressions."""

__all__ = [
    "UnaryExpression",
    "BinaryExpression",
    "Cast",
    "MemberAccess",
    "MethodCall",
    "IndexExpression",
    "ParenExpression",
    "SubExpression",
]

from . import _base


class UnaryExpression(_base.Node):
    """Prefix or postfix operator applied to one operand.

    Covers `!x`, `-not x`, `-x` as well as `x++` and `x--`.
    """

    def __init__(self, op: str, operand, postfix: bool = False):
        super().__init__([operand])
        self.op = op
        self.operand = operand
        self.postfix = postfix


class BinaryExpression(_base.Node):
    """Infix operator between two operands, `$a -eq $b` or `$x + 1`."""

    def __init__(self, op: str, left, right):
        super().__init__([left, right])
        self.op = op
        self.left = left
        self.right = right


class Cast(_base.Node):
    """Type conversion `[type]operand`."""

    def __init__(self, type_name: str, operand):
        super().__init__([operand])
        self.type_name = type_name
        self.operand = operand


class MemberAccess(_base.Node):
    """Property lookup `.Name` or static `::Name`."""

    def __init__(self, target, member: str, static: bool = False):
        super().__init__([target])
        self.target = target
        self.member = member
        self.static = static


class MethodCall(_base.Node):
    """Method invocation `.Name(args)` or static `::Name(args)`."""

    def __init__(self, target, member: str, arguments, static: bool = False):
        super().__init__([target, *arguments])
        self.target = target
        self.member = member
        self.arguments = list(arguments)
        self.static = static


class IndexExpression(_base.Node):
    """Indexing `target[index]`."""

    def __init__(self, target, index):
        super().__init__([target, index])
        self.target = target
        self.index = index


class ParenExpression(_base.Node):
    """Parenthesized pipeline or assignment."""

    def __init__(self, inner):
        super().__init__([inner])
        self.inner = inner


class SubExpression(_base.Node):
    """Subexpression `$( ... )` or array subexpression `@( ... )`."""

    def __init__(self, statements, array: bool = False):
        super().__init__(statements)
        self.statements = list(statements)
        self.array = array
