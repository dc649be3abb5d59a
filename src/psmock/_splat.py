"""Resolution of splatted hashtable variables.

A splat `@params` passes each entry of the hashtable held by `$params` as a
named parameter. Statically that is only knowable when the variable was
last assigned a hashtable literal before the invocation, in the same or an
enclosing lexical scope. Anything else is reported, never guessed.
"""

__all__ = ["Scope", "SCOPE_NODES", "resolve_splat"]

import logging

import psmock

from ._binding import argument_text, strip_quotes

logger = logging.getLogger(__name__)

# Methods that change a hashtable in place
_MUTATORS = {"add", "remove", "clear", "set_item", "insert", "removeat", "tryadd"}

# Types whose cast keeps a hashtable literal static
_HASH_CASTS = {"ordered", "hashtable", "system.collections.hashtable",
               "system.collections.specialized.ordereddictionary"}

# Nodes that open a new lexical scope
SCOPE_NODES = (psmock.ast.Script, psmock.ast.FunctionDefinition, psmock.ast.ScriptBlock)


class Scope:
    """Lexical scope snapshot: a script, function or script block.

    Scopes are immutable views over the read-only tree; the parent link
    leads to the enclosing scope, ending at the script.
    """

    def __init__(self, node, parent=None):
        self.node = node
        self.parent = parent

    def __repr__(self):
        kind = type(self.node).__name__
        name = getattr(self.node, "name", None)
        return f"Scope({kind}{' ' + name if name else ''})"

    def chain(self):
        """Yield this scope and its ancestors, innermost first."""
        scope = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def child(self, node):
        return Scope(node, self)

    @classmethod
    def enclosing(cls, root, target):
        """Innermost scope around target, built from the path from root.

        Returns None when target is not inside root.
        """
        path = _path_to(root, target)
        if path is None:
            return None
        scope = cls(root)
        for node in path[1:]:
            if isinstance(node, SCOPE_NODES) and node is not target:
                scope = scope.child(node)
        if isinstance(target, SCOPE_NODES) and target is not root:
            scope = scope.child(target)
        return scope

    def statements(self):
        """Nodes of this scope in document order, skipping nested scopes."""
        yield from _own_nodes(self.node, SCOPE_NODES)

    def writes(self, key, before=None):
        """Nodes in this scope that change the variable, in document order.

        Args:
            key: Case-folded variable identity, see `Variable.key`
            before: Offset; only writes ending at or before it count
        """
        found = []
        for node in self.statements():
            write_end = _write_end(node, key)
            if write_end is None:
                continue
            if before is not None and write_end > before:
                continue
            found.append(node)
        return found


def resolve_splat(variable, scope, before=None, policy="nearest"):
    """Entries of the hashtable literal a splatted variable refers to.

    Args:
        variable: Variable node, or a name such as "params", "$params" or
            "@script:params"
        scope: Innermost Scope enclosing the invocation
        before: Offset of the invocation; later writes are ignored up to
            the nearest enclosing function
        policy: "nearest" uses the closest preceding write, "strict" also
            rejects variables assigned more than one hashtable literal

    Returns:
        List of (key, value) pairs in declaration order, quotes stripped

    Raises:
        psmock.SplatSourceNotFound: No write precedes the invocation
        psmock.AmbiguousSplatSource: Strict policy saw several literals
        psmock.DynamicSplatSource: The nearest write is not a static literal
    """
    key, label = _variable_key(variable)
    writes = []
    for current in scope.chain():
        writes = current.writes(key, before)
        if writes:
            break
        # A function runs after its definition, so outer writes count anywhere
        if isinstance(current.node, psmock.ast.FunctionDefinition):
            before = None
    if not writes:
        raise psmock.SplatSourceNotFound(f"No assignment to {label} before it is splatted")

    if policy == "strict":
        literals = [node for node in writes if _hash_literal(node) is not None]
        if len(literals) > 1:
            lines = ", ".join(str(node.position.start_line) for node in literals)
            raise psmock.AmbiguousSplatSource(
                f"{label} is assigned {len(literals)} hashtables (lines {lines})")

    nearest = writes[-1]
    if isinstance(nearest, psmock.ast.ParameterDefinition):
        raise psmock.DynamicSplatSource(
            f"{label} is a parameter, its hashtable is only known at run time")
    literal = _hash_literal(nearest)
    if literal is None:
        raise psmock.DynamicSplatSource(
            f"{label} is not a hashtable literal at {nearest.position}")

    entries = []
    for entry in literal.entries:
        if entry.dynamic:
            raise psmock.DynamicSplatSource(
                f"{label} has a computed key {entry.key_node.text!r}")
        entries.append((strip_quotes(entry.key), argument_text(entry.value)))
    logger.debug("Splat %s resolved to %d entries from %s", label, len(entries), nearest.position)
    return entries


def _variable_key(variable):
    """Case-folded identity and display label of a variable or name."""
    if isinstance(variable, psmock.ast.Variable):
        return variable.key, f"${variable.name}"
    name = variable.lstrip("$@")
    scope = None
    if ":" in name:
        scope, _, name = name.partition(":")
    variable = psmock.ast.Variable(name, scope)
    return variable.key, f"${name}"


def _own_nodes(node, scope_types):
    for kid in node.kids:
        yield kid
        if not isinstance(kid, scope_types):
            yield from _own_nodes(kid, scope_types)


def _path_to(node, target):
    if node is target:
        return [node]
    for kid in node.kids:
        path = _path_to(kid, target)
        if path is not None:
            return [node, *path]
    return None


def _base_variable(node):
    """Variable at the root of member and index chains."""
    ast = psmock.ast
    while isinstance(node, (ast.MemberAccess, ast.IndexExpression)):
        node = node.target
    return node if isinstance(node, ast.Variable) else None


def _write_end(node, key):
    """End offset of the write when node changes the variable, else None."""
    ast = psmock.ast
    match node:
        case ast.Assignment(target=target):
            base = _base_variable(target)
            if base is not None and base.key == key:
                return node.end
        case ast.MethodCall(target=target, member=member):
            base = _base_variable(target)
            if base is not None and base.key == key and member.casefold() in _MUTATORS:
                return node.end
        case ast.ForeachStatement(variable=loop_variable):
            if loop_variable.key == key:
                return loop_variable.end
        case ast.ParameterDefinition(variable=variable):
            if variable.key == key:
                return variable.end
    return None


def _hash_literal(node):
    """Hashtable literal assigned outright by node, or None."""
    ast = psmock.ast
    if not isinstance(node, ast.Assignment) or node.operator != "=":
        return None
    if not isinstance(node.target, ast.Variable):
        return None
    value = node.value
    while isinstance(value, ast.ParenExpression):
        value = value.inner
    if isinstance(value, ast.Cast) and value.type_name.casefold() in _HASH_CASTS:
        value = value.operand
    if isinstance(value, ast.HashLiteral):
        return value
    return None
