"""Parser for converting Lark parse trees to syntax tree nodes.

The grammar produces a concrete tree close to the PowerShell surface
syntax. Conversion builds the smaller set of nodes the analysis works on:
- Children are converted before parent nodes are created
- Single element pipelines collapse to the element itself
- Every node records its position and exact source text
"""

__all__ = ["parse_script", "parse_file", "parse_lark"]

import logging
import pathlib
import re

import lark

import psmock

logger = logging.getLogger(__name__)

# Global parser instance, built on first use
_parser: lark.Lark | None = None

# Current source being parsed (for position tracking and node text)
_current_filename: str | None = None
_current_source: str = ""

_DQ_ESCAPES = {
    "0": "\0", "a": "\a", "b": "\b", "e": "\x1b", "f": "\f",
    "n": "\n", "r": "\r", "t": "\t", "v": "\v",
}
_DQ_ESCAPE = re.compile(r"`(.)", re.DOTALL)
_DQ_EXPANSION = re.compile(r"(?<!`)\$[\w{(:?]")


def parse_script(text, filename=None):
    """Parse PowerShell source into a syntax tree.

    Args:
        text: Script source code
        filename: Optional source filename for error messages and positions

    Returns:
        Script node for the whole source

    Raises:
        psmock.ParseError: If the text contains invalid or unsupported syntax
    """
    global _current_filename, _current_source
    if text.startswith("\ufeff"):
        text = text[1:]
    _current_filename = filename
    _current_source = text
    try:
        tree = _get_parser().parse(text)
        body = _convert_tree(tree.children[0])
        script = psmock.ast.Script(body, filename)
        _apply_position(script, tree)
        logger.debug("Parsed %s: %d functions", filename or "<script>",
                     len(script.functions()))
        return script
    except lark.exceptions.UnexpectedInput as e:
        position = None
        if getattr(e, "line", -1) and e.line > 0:
            position = psmock.ast.SourcePosition(
                filename=filename,
                start_line=e.line,
                start_column=e.column,
                start_offset=getattr(e, "pos_in_stream", None),
            )
        raise psmock.ParseError(_describe(e), position) from e
    except lark.exceptions.LarkError as e:
        raise psmock.ParseError(str(e)) from e
    finally:
        _current_filename = None
        _current_source = ""


def parse_file(path):
    """Parse a script file, read as UTF-8."""
    path = pathlib.Path(path)
    return parse_script(path.read_text(encoding="utf-8"), filename=str(path))


def parse_lark(text):
    """Raw Lark parse tree, for debugging the grammar."""
    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        return _get_parser().parse(text)
    except lark.exceptions.LarkError as e:
        raise psmock.ParseError(str(e)) from e


def _describe(error):
    """Short message for a Lark parse failure."""
    if isinstance(error, lark.exceptions.UnexpectedCharacters):
        if error.char in "\"'":
            return "Unterminated string literal"
        return f"Unexpected character {error.char!r}"
    if isinstance(error, lark.exceptions.UnexpectedEOF):
        return "Unexpected end of script"
    if isinstance(error, lark.exceptions.UnexpectedToken):
        token = error.token
        if token.type == "$END":
            return "Unexpected end of script"
        return f"Unexpected {token.value.strip()!r}"
    return str(error)


def _convert_tree(tree):
    """Convert a single Lark tree to a syntax node.

    This is the main dispatcher that handles all grammar rules.
    Tokens are handled by the rules that own them.

    Args:
        tree: Lark Tree to convert

    Returns:
        Node instance, or a list of nodes for rules that splice into
        their parent
    """
    assert isinstance(tree, lark.Tree)
    kids = tree.children
    ast = psmock.ast

    match tree.data:
        # === BLOCKS AND BODIES ===
        case 'body':
            node = _convert_body(kids)

        case 'statement_list':
            return _convert_children(kids)

        case 'block':
            node = ast.Block(_convert_children(kids))

        case 'named_block':
            node = ast.NamedBlock(kids[0].value.lower(), _convert_tree(kids[1]))

        case 'script_block':
            node = ast.ScriptBlock(_convert_tree(kids[0]))

        # === FUNCTIONS AND PARAMETERS ===
        case 'function_definition':
            name = kids[0].value
            params = [_convert_tree(kid) for kid in kids[1:-1]]
            body = _convert_tree(kids[-1])
            is_filter = _source(tree).lstrip().lower().startswith("filter")
            node = ast.FunctionDefinition(name, params, body, filter=is_filter)

        case 'param_block':
            node = ast.ParamBlock([_convert_tree(kid) for kid in kids])

        case 'parameter_definition':
            node = _convert_parameter(kids)

        case 'attribute':
            name = kids[0].value[1:-1]
            node = ast.Attribute(name, [_convert_tree(kid) for kid in kids[1:]])

        case 'attribute_argument':
            if isinstance(kids[0], lark.Token):
                value = _convert_tree(kids[1]) if len(kids) > 1 else None
                node = ast.AttributeArgument(kids[0].value, value)
            else:
                node = ast.AttributeArgument(None, _convert_tree(kids[0]))

        # === CONTROL FLOW ===
        case 'if_statement':
            clauses = [(_convert_tree(kids[0]), _convert_tree(kids[1]))]
            else_block = None
            for clause in kids[2:]:
                if clause.data == 'elseif_clause':
                    clauses.append((_convert_tree(clause.children[1]),
                                    _convert_tree(clause.children[2])))
                else:
                    else_block = _convert_tree(clause.children[1])
            node = ast.IfStatement(clauses, else_block)

        case 'switch_statement':
            flags = [kid.value[1:].lower() for kid in kids if isinstance(kid, lark.Token)]
            rest = [kid for kid in kids if isinstance(kid, lark.Tree)]
            node = ast.SwitchStatement(flags, _convert_tree(rest[0]),
                                       [_convert_tree(kid) for kid in rest[1:]])

        case 'switch_clause':
            if isinstance(kids[0], lark.Token):
                condition = _apply_position(ast.StringLiteral(kids[0].value), kids[0])
            else:
                condition = _convert_tree(kids[0])
            node = ast.SwitchClause(condition, _convert_tree(kids[1]))

        case 'foreach_statement':
            variable = _convert_variable(kids[0])
            node = ast.ForeachStatement(variable, _convert_tree(kids[1]), _convert_tree(kids[2]))

        case 'for_statement':
            parts = {kid.data: _convert_tree(kid.children[0]) for kid in kids[:-1]}
            node = ast.ForStatement(parts.get('for_init'), parts.get('for_condition'),
                                    parts.get('for_step'), _convert_tree(kids[-1]))

        case 'while_statement':
            node = ast.WhileStatement(_convert_tree(kids[0]), _convert_tree(kids[1]))

        case 'do_statement':
            form = "do-" + kids[1].value.split()[-1].lower()
            node = ast.WhileStatement(_convert_tree(kids[2]), _convert_tree(kids[0]), form)

        case 'try_statement':
            body = _convert_tree(kids[0])
            catches = [_convert_tree(kid) for kid in kids[1:] if kid.data == 'catch_clause']
            finals = [_convert_tree(kid.children[1]) for kid in kids[1:]
                      if kid.data == 'finally_clause']
            node = ast.TryStatement(body, catches, finals[0] if finals else None)

        case 'catch_clause':
            types = [kid.value[1:-1] for kid in kids[1:-1]]
            node = ast.CatchClause(types, _convert_tree(kids[-1]))

        case 'flow_statement':
            value = _convert_tree(kids[1]) if len(kids) > 1 else None
            node = ast.FlowStatement(kids[0].value.lower(), value)

        case 'assignment':
            type_name = None
            if isinstance(kids[0], lark.Token):
                type_name = kids[0].value[1:-1]
                kids = kids[1:]
            target, op, value = kids
            node = ast.Assignment(_convert_tree(target), op.value, _convert_tree(value), type_name)

        # === PIPELINES AND COMMANDS ===
        case 'pipeline':
            elements = [_convert_tree(kid) for kid in kids]
            if len(elements) == 1:
                return elements[0]
            node = ast.Pipeline(elements)

        case 'command':
            node = _convert_command(kids)

        case 'command_parameter':
            name = kids[0].value[1:].rstrip(":")
            argument = _convert_tree(kids[1]) if len(kids) > 1 else None
            node = ast.CommandParameter(name, argument)

        case 'splat':
            node = _convert_variable(kids[0], splatted=True)

        case 'redirection':
            target = _convert_tree(kids[1]) if len(kids) > 1 else None
            node = ast.Redirection(kids[0].value, target)

        case 'generic':
            value = kids[0].value
            node = ast.StringLiteral(value, None, expandable="$" in value)

        # === EXPRESSIONS ===
        case 'array_literal':
            node = ast.ArrayLiteral([_convert_tree(kid) for kid in kids])

        case 'binary_expression':
            left, op, right = kids
            node = ast.BinaryExpression(op.value.lower(), _convert_tree(left), _convert_tree(right))

        case 'unary_expression':
            if isinstance(kids[0], lark.Token):
                node = ast.UnaryExpression(kids[0].value.lower(), _convert_tree(kids[1]))
            else:
                node = ast.UnaryExpression(kids[1].value, _convert_tree(kids[0]), postfix=True)

        case 'cast':
            node = ast.Cast(kids[0].value[1:-1], _convert_tree(kids[1]))

        case 'member_access':
            token = kids[1]
            node = ast.MemberAccess(_convert_tree(kids[0]), token.value.lstrip(".:"),
                                    static=token.type == 'STATIC_MEMBER')

        case 'method_call':
            token = kids[1]
            arguments = _convert_children(kids[2].children)
            node = ast.MethodCall(_convert_tree(kids[0]), token.value.lstrip(".:").rstrip("("),
                                  arguments, static=token.type == 'STATIC_METHOD')

        case 'index_expression':
            node = ast.IndexExpression(_convert_tree(kids[0]), _convert_tree(kids[1]))

        case 'paren_expression':
            node = ast.ParenExpression(_convert_tree(kids[0]))

        case 'subexpression' | 'array_subexpression':
            node = ast.SubExpression(_convert_children(kids),
                                     array=tree.data == 'array_subexpression')

        # === LITERALS ===
        case 'variable':
            return _convert_variable(kids[0])

        case 'string':
            return _convert_string(kids[0])

        case 'number':
            node = ast.NumberLiteral(kids[0].value)

        case 'type_literal':
            node = ast.TypeLiteral(kids[0].value[1:-1])

        case 'hash_literal':
            node = ast.HashLiteral([_convert_tree(kid) for kid in kids])

        case 'hash_entry':
            key, key_node = _convert_hash_key(kids[0])
            node = ast.HashEntry(key, key_node, _convert_tree(kids[1]))

        case _:
            raise ValueError(f"Unhandled grammar rule: {tree.data}")

    return _apply_position(node, tree)


def _convert_children(children):
    """Convert a list of Lark trees to nodes, splicing nested lists."""
    result = []
    for child in children:
        if isinstance(child, lark.Token):
            continue
        converted = _convert_tree(child)
        if isinstance(converted, list):
            result.extend(converted)
        elif converted is not None:
            result.append(converted)
    return result


def _convert_body(kids):
    attributes, param_block, statements, named = [], None, [], []
    for kid in kids:
        match kid.data:
            case 'attribute':
                attributes.append(_convert_tree(kid))
            case 'param_block':
                param_block = _convert_tree(kid)
            case 'named_block':
                named.append(_convert_tree(kid))
            case 'statement_list':
                statements = _convert_tree(kid)
            case _:
                raise ValueError(f"Unhandled body element: {kid.data}")
    return psmock.ast.ScriptBody(attributes, param_block, statements, named)


def _convert_parameter(kids):
    attributes, types, variable, default = [], [], None, None
    for kid in kids:
        if isinstance(kid, lark.Token):
            if kid.type == 'TYPE':
                types.append(kid.value[1:-1])
            elif kid.type == 'VARIABLE':
                variable = _convert_variable(kid)
        elif kid.data == 'attribute':
            attributes.append(_convert_tree(kid))
        else:
            default = _convert_tree(kid)
    return psmock.ast.ParameterDefinition(variable, attributes, types, default)


def _convert_command(kids):
    """Build a Command from its name or invocation target and elements."""
    ast = psmock.ast
    first = kids[0]
    if first.type in ('CALL_OP', 'DOT_SOURCE'):
        operator = "&" if first.type == 'CALL_OP' else "."
        target = kids[1]
        if isinstance(target, lark.Token):
            name_node = _apply_position(ast.StringLiteral(target.value), target)
            name = target.value
        else:
            name_node = _convert_tree(target)
            name = _static_name(name_node)
        elements = _convert_children(kids[2:])
        return ast.Command(name, elements, name_node, operator)
    return ast.Command(first.value, _convert_children(kids[1:]))


def _static_name(node):
    """Literal command name of an invocation target, None when dynamic."""
    if isinstance(node, psmock.ast.StringLiteral) and not node.expandable:
        return node.value
    return None


def _convert_variable(token, splatted=False):
    body = token.value[1:]
    if body.startswith("{") and body.endswith("}"):
        body = body[1:-1]
    scope = None
    if ":" in body[1:]:
        scope, _, body = body.partition(":")
    node = psmock.ast.Variable(body, scope, splatted)
    return _apply_position(node, token)


def _convert_string(token):
    """Decode a string token into a StringLiteral."""
    raw = token.value
    if raw.startswith("@"):
        quote = raw[:2]
        lines = raw.splitlines()
        inner = "\n".join(lines[1:-1])
    else:
        quote = raw[0]
        inner = raw[1:-1]
    if "'" in quote:
        value = inner.replace("''", "'") if quote == "'" else inner
        node = psmock.ast.StringLiteral(value, quote)
    else:
        expandable = bool(_DQ_EXPANSION.search(inner))
        if quote == '"':
            inner = inner.replace('""', '"')
        value = _DQ_ESCAPE.sub(lambda m: _DQ_ESCAPES.get(m.group(1), m.group(1)), inner)
        node = psmock.ast.StringLiteral(value, quote, expandable)
    return _apply_position(node, token)


def _convert_hash_key(tree):
    """Convert a hashtable key, returning (constant key or None, node)."""
    token = tree.children[0]
    ast = psmock.ast
    if isinstance(token, lark.Tree):
        node = _apply_position(ast.ParenExpression(_convert_tree(token)), tree)
        return None, node
    match token.type:
        case 'BAREWORD':
            node = _apply_position(ast.StringLiteral(token.value), token)
            return token.value, node
        case 'STRING':
            node = _convert_string(token)
            return (None if node.expandable else node.value), node
        case 'NUMBER':
            node = _apply_position(ast.NumberLiteral(token.value), token)
            return token.value, node
        case 'VARIABLE':
            return None, _convert_variable(token)
        case _:
            raise ValueError(f"Unhandled hash key: {token.type}")


def _source(tree):
    meta = tree.meta
    if getattr(meta, 'empty', True):
        return ""
    return _current_source[meta.start_pos:meta.end_pos]


def _apply_position(node, tree):
    """Apply source position information from Lark tree/token to a node.

    Args:
        node: Syntax node to annotate with position
        tree: Lark tree or token containing position metadata

    Returns:
        The node (modified in place for convenience)
    """
    if isinstance(tree, lark.Tree):
        meta = tree.meta
        if getattr(meta, 'empty', True):
            return node
        start, end = meta.start_pos, meta.end_pos
        line, column = meta.line, meta.column
        end_line, end_column = meta.end_line, meta.end_column
    else:
        start, end = tree.start_pos, tree.end_pos
        line, column = tree.line, tree.column
        end_line, end_column = tree.end_line, tree.end_column
    node.position = psmock.ast.SourcePosition(
        filename=_current_filename,
        start_line=line,
        start_column=column,
        end_line=end_line,
        end_column=end_column,
        start_offset=start,
        end_offset=end,
    )
    node.text = _current_source[start:end]
    return node


def _get_parser():
    """Get the cached Lark parser instance.

    Returns:
        lark.Lark: Cached Lark parser instance
    """
    global _parser
    if _parser is None:
        grammar_path = pathlib.Path(__file__).parent / "powershell.lark"
        _parser = lark.Lark(
            grammar_path.read_text(encoding="utf-8"),
            parser="lalr",
            lexer="contextual",
            propagate_positions=True,
            maybe_placeholders=False,
        )
    return _parser
