"""Lark-based parser for sheetscript source text.

Supports:
- Declarations and assignment: ``dim x = 1``, ``x = 2``, ``a[0][1] = 3``
- Conditionals: ``if ... then`` / ``elseif`` / ``else`` / ``end if``
  and the single-line form ``if cond then stmt``
- Counted and collection loops: ``for i = 1 to 10 step 2 ... next``,
  ``for each x in xs ... next``
- Conditional loops: ``while ... wend`` (or ``end while``)
- Functions: ``function f(a, optional b = 1) ... end function`` (``sub``
  is accepted as a synonym), ``return``, ``exit for|while|function``
- Calls as statements: ``print(x)`` or ``call print(x)``
- Comments starting with ``'`` or ``//``
"""

from __future__ import annotations

import re

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, VisitError

from sheetscript import ast
from sheetscript.errors import ScriptParseError
from sheetscript.values import INT_MAX

# LALR(1) grammar.  Operator precedence (lowest to highest):
#   1. or
#   2. and
#   3. Comparison: = == <> != < <= > >=
#   4. Additive: + - & (string concatenation)
#   5. Multiplicative: * / mod %
#   6. Unary: - + not
#   7. Exponentiation: ^ (right-associative)
#   8. Postfix indexing: a[i]
# Keywords are case-insensitive and outrank NAME through terminal priority.
GRAMMAR = r"""
start: _NL? statement*

?statement: simple_stmt _NL
    | if_stmt
    | for_stmt
    | foreach_stmt
    | while_stmt
    | function_def

?simple_stmt: dim_stmt
    | assign_stmt
    | return_stmt
    | exit_stmt
    | call_stmt

dim_stmt: DIM NAME ("=" expr)?

assign_stmt: lvalue "=" expr

?lvalue: NAME                   -> variable
    | lvalue "[" expr "]"       -> index

return_stmt: RETURN expr?

exit_stmt: EXIT (FOR | WHILE | FUNCTION | SUB)

call_stmt: CALL NAME ("(" [arguments] ")")?
    | NAME "(" [arguments] ")"

block: statement*

if_stmt: IF expr THEN _NL block elseif_clause* else_clause? END IF _NL
    | IF expr THEN simple_stmt _NL  -> if_inline

elseif_clause: ELSEIF expr THEN _NL block

else_clause: ELSE _NL block

for_stmt: FOR NAME "=" expr TO expr (STEP expr)? _NL block NEXT NAME? _NL

foreach_stmt: FOR EACH NAME IN expr _NL block NEXT NAME? _NL

while_stmt: WHILE expr _NL block (WEND | END WHILE) _NL

function_def: (FUNCTION | SUB) NAME "(" [params] ")" _NL block END (FUNCTION | SUB) _NL

params: param ("," param)*

param: BYVAL? NAME                  -> param_byval
    | BYREF NAME                    -> param_byref
    | OPTIONAL NAME ("=" expr)?     -> param_optional
    | PARAMARRAY NAME               -> param_rest

?expr: or_expr

?or_expr: and_expr
    | or_expr OR and_expr       -> or_op

?and_expr: comparison
    | and_expr AND comparison   -> and_op

?comparison: additive
    | comparison "=" additive   -> eq
    | comparison "==" additive  -> eq
    | comparison "<>" additive  -> ne
    | comparison "!=" additive  -> ne
    | comparison "<" additive   -> lt
    | comparison "<=" additive  -> le
    | comparison ">" additive   -> gt
    | comparison ">=" additive  -> ge

?additive: multiplicative
    | additive "+" multiplicative   -> add
    | additive "-" multiplicative   -> sub
    | additive "&" multiplicative   -> concat

?multiplicative: unary
    | multiplicative "*" unary  -> mul
    | multiplicative "/" unary  -> div
    | multiplicative MOD unary  -> mod
    | multiplicative "%" unary  -> mod

?unary: power
    | "-" unary     -> neg
    | "+" unary     -> pos
    | NOT unary     -> not_op

?power: postfix
    | postfix "^" unary     -> pow

?postfix: atom
    | postfix "[" expr "]"  -> index

?atom: NUMBER                       -> number
    | STRING                        -> string
    | TRUE                          -> true
    | FALSE                         -> false
    | NULL                          -> null
    | NAME "(" [arguments] ")"      -> call
    | NAME                          -> variable
    | "[" [arguments] "]"           -> array
    | "(" expr ")"

arguments: expr ("," expr)*

DIM.2: /dim\b/i
IF.2: /if\b/i
THEN.2: /then\b/i
ELSEIF.2: /elseif\b/i
ELSE.2: /else\b/i
END.2: /end\b/i
FOR.2: /for\b/i
EACH.2: /each\b/i
IN.2: /in\b/i
TO.2: /to\b/i
STEP.2: /step\b/i
NEXT.2: /next\b/i
WHILE.2: /while\b/i
WEND.2: /wend\b/i
FUNCTION.2: /function\b/i
SUB.2: /sub\b/i
RETURN.2: /return\b/i
EXIT.2: /exit\b/i
CALL.2: /call\b/i
AND.2: /and\b/i
OR.2: /or\b/i
NOT.2: /not\b/i
MOD.2: /mod\b/i
TRUE.2: /true\b/i
FALSE.2: /false\b/i
NULL.2: /null\b/i
BYVAL.2: /byval\b/i
BYREF.2: /byref\b/i
OPTIONAL.2: /optional\b/i
PARAMARRAY.2: /paramarray\b/i

NAME.1: /[A-Za-z_][A-Za-z0-9_]*/
NUMBER: /\d+(\.\d+)?([eE][+-]?\d+)?/
STRING: /"(\\.|[^"\\\n])*"/

// A newline run swallows blank lines and whole-line comments.
_NL: /(\r?\n[\t \f]*((\'|\/\/)[^\n]*)?)+/
COMMENT: /'[^\n]*/ | /\/\/[^\n]*/
WS_INLINE: /[\t \f]+/

%ignore WS_INLINE
%ignore COMMENT
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start", propagate_positions=True)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"'}
_ESCAPE_RE = re.compile(r"\\(.)")

_KEYWORDS = frozenset(
    t.name for t in _parser.terminals if t.priority == 2
)


def _unescape(raw: str) -> str:
    """Strip the quotes of a STRING token and decode its escapes."""
    body = raw[1:-1]
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), body)


def _line_of(node: object, default: int = 0) -> int:
    if isinstance(node, Token):
        return node.line or default
    return getattr(node, "line", default) or default


def _strip(children: list) -> list:
    """Drop keyword tokens, keeping expressions, names and nested nodes."""
    return [c for c in children if not (isinstance(c, Token) and c.type in _KEYWORDS)]


def _body(block: object) -> tuple:
    return tuple(block) if block is not None else ()


class _ProgramBuilder(Transformer):
    """Build :mod:`sheetscript.ast` nodes from the Lark parse tree."""

    # -- literals and atoms ------------------------------------------------

    def number(self, children):
        token = children[0]
        text = str(token)
        if "." in text or "e" in text or "E" in text:
            return ast.Literal(float(text), token.line)
        value = int(text)
        if value > INT_MAX:
            raise ScriptParseError(
                f"Integer literal {text} is out of range",
                line=token.line,
                column=token.column,
            )
        return ast.Literal(value, token.line)

    def string(self, children):
        token = children[0]
        return ast.Literal(_unescape(str(token)), token.line)

    def true(self, children):
        return ast.Literal(True, children[0].line)

    def false(self, children):
        return ast.Literal(False, children[0].line)

    def null(self, children):
        return ast.Literal(None, children[0].line)

    def variable(self, children):
        token = children[0]
        return ast.Variable(str(token), token.line)

    def arguments(self, children):
        return tuple(children)

    def call(self, children):
        name, args = children
        return ast.Call(str(name), args or (), name.line)

    @v_args(meta=True)
    def array(self, meta, children):
        items = children[0] or ()
        line = getattr(meta, "line", None) or (_line_of(items[0]) if items else 0)
        return ast.ArrayLiteral(tuple(items), line)

    def index(self, children):
        target, idx = children
        return ast.Index(target, idx, _line_of(target))

    # -- operators ---------------------------------------------------------

    def _binary(op):
        def build(self, children):
            left, right = _strip(children)
            return ast.Binary(op, left, right, _line_of(left))

        return build

    or_op = _binary("or")
    and_op = _binary("and")
    eq = _binary("=")
    ne = _binary("<>")
    lt = _binary("<")
    le = _binary("<=")
    gt = _binary(">")
    ge = _binary(">=")
    add = _binary("+")
    sub = _binary("-")
    concat = _binary("&")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("mod")
    pow = _binary("^")

    del _binary

    def neg(self, children):
        operand = children[0]
        return ast.Unary("-", operand, _line_of(operand))

    def pos(self, children):
        return children[0]

    def not_op(self, children):
        keyword, operand = children
        return ast.Unary("not", operand, keyword.line)

    # -- statements --------------------------------------------------------

    def dim_stmt(self, children):
        keyword = children[0]
        rest = _strip(children)
        name = rest[0]
        value = rest[1] if len(rest) > 1 else None
        return ast.Dim(str(name), value, keyword.line)

    def assign_stmt(self, children):
        target, value = children
        return ast.Assign(target, value, _line_of(target))

    def return_stmt(self, children):
        keyword = children[0]
        value = children[1] if len(children) > 1 else None
        return ast.Return(value, keyword.line)

    def exit_stmt(self, children):
        keyword, kind = children
        kind_name = kind.type.lower()
        if kind_name == "sub":
            kind_name = "function"
        return ast.Exit(kind_name, keyword.line)

    def call_stmt(self, children):
        rest = _strip(children)
        name = rest[0]
        args = rest[1] if len(rest) > 1 and rest[1] is not None else ()
        return ast.ExprStatement(ast.Call(str(name), args, name.line), name.line)

    def block(self, children):
        return tuple(children)

    def if_stmt(self, children):
        keyword = children[0]
        rest = _strip(children)
        condition, body = rest[0], rest[1]
        branches = [(condition, _body(body))]
        else_body = None
        for clause in rest[2:]:
            if clause[0] == "elseif":
                branches.append((clause[1], clause[2]))
            else:
                else_body = clause[1]
        return ast.If(tuple(branches), else_body, keyword.line)

    def if_inline(self, children):
        keyword = children[0]
        condition, stmt = _strip(children)
        return ast.If(((condition, (stmt,)),), None, keyword.line)

    def elseif_clause(self, children):
        condition, body = _strip(children)
        return ("elseif", condition, _body(body))

    def else_clause(self, children):
        (body,) = _strip(children)
        return ("else", _body(body))

    def for_stmt(self, children):
        keyword = children[0]
        step = None
        rest = []
        expect_step = False
        for child in children[1:]:
            if isinstance(child, Token) and child.type == "STEP":
                expect_step = True
                continue
            if isinstance(child, Token) and child.type in _KEYWORDS:
                continue
            if expect_step:
                step = child
                expect_step = False
                continue
            rest.append(child)
        var, start, end, body = rest[0], rest[1], rest[2], rest[3]
        trailing = rest[4] if len(rest) > 4 else None
        _check_next_name(var, trailing)
        return ast.ForRange(str(var), start, end, step, _body(body), keyword.line)

    def foreach_stmt(self, children):
        keyword = children[0]
        rest = _strip(children)
        var, iterable, body = rest[0], rest[1], rest[2]
        trailing = rest[3] if len(rest) > 3 else None
        _check_next_name(var, trailing)
        return ast.ForEach(str(var), iterable, _body(body), keyword.line)

    def while_stmt(self, children):
        keyword = children[0]
        rest = _strip(children)
        condition, body = rest[0], rest[1]
        return ast.While(condition, _body(body), keyword.line)

    def function_def(self, children):
        keyword = children[0]
        rest = _strip(children)
        name, params, body = rest[0], rest[1], rest[2]
        params = tuple(params or ())
        names = [p.name.lower() for p in params]
        if len(set(names)) != len(names):
            raise ScriptParseError(
                f"Duplicate parameter name in function {name}", line=keyword.line
            )
        for p in params[:-1]:
            if p.is_rest:
                raise ScriptParseError(
                    "paramarray must be the last parameter", line=p.line
                )
        return ast.FunctionDef(str(name), params, _body(body), keyword.line)

    def params(self, children):
        return tuple(children)

    def param_byval(self, children):
        name = _strip(children)[0]
        return ast.Param(str(name), "byval", None, name.line)

    def param_byref(self, children):
        name = _strip(children)[0]
        return ast.Param(str(name), "byref", None, name.line)

    def param_optional(self, children):
        rest = _strip(children)
        name = rest[0]
        default = rest[1] if len(rest) > 1 else None
        return ast.Param(str(name), "optional", default, name.line)

    def param_rest(self, children):
        name = _strip(children)[0]
        return ast.Param(str(name), "paramarray", None, name.line)

    def start(self, children):
        return ast.Program(tuple(children))


def _check_next_name(var: Token, trailing: Token | None) -> None:
    if trailing is not None and str(trailing) != str(var):
        raise ScriptParseError(
            f"'next {trailing}' does not match loop variable '{var}'",
            line=trailing.line,
            column=trailing.column,
        )


def _describe_terminal(name: str) -> str:
    if name == "_NL":
        return "newline"
    for term in _parser.terminals:
        if term.name == name:
            if term.pattern.type == "str":
                return repr(term.pattern.value)
            if name in _KEYWORDS:
                return name.lower()
    return name.lower()


def parse(text: str) -> ast.Program:
    """Parse script text into an immutable :class:`~sheetscript.ast.Program`.

    Parsing is all-or-nothing: any syntax error aborts the whole parse.

    Args:
        text: Script source.

    Returns:
        The parsed program.

    Raises:
        ScriptParseError: With line, column and the expected tokens.
    """
    source = text if text.endswith("\n") else text + "\n"
    try:
        tree = _parser.parse(source)
    except UnexpectedInput as exc:
        if isinstance(exc, UnexpectedCharacters):
            expected = exc.allowed or set()
            found = repr(exc.char)
        else:
            expected = getattr(exc, "expected", None) or set()
            token = getattr(exc, "token", None)
            if token is None or token.type == "$END":
                found = "end of input"
            elif token.type == "_NL":
                found = "end of line"
            else:
                found = repr(str(token))
        raise ScriptParseError(
            f"Unexpected {found}",
            line=getattr(exc, "line", None),
            column=getattr(exc, "column", None),
            expected=[_describe_terminal(name) for name in expected],
        ) from exc
    try:
        return _ProgramBuilder().transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, ScriptParseError):
            raise exc.orig_exc from None
        raise
