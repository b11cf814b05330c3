"""
Expression Reducer

Reduces a fully substituted expression (no `#` references left) to a
primitive value. The grammar is closed: literals, arrays, parentheses,
unary `! - +`, arithmetic, comparison, equality, `&&`, `||` and the ternary
operator. Operator semantics follow the script engine the production
preview was calibrated against (loose equality, operand-returning `||`/`&&`,
string concatenation with `+`), so the simulator reproduces its results
without evaluating arbitrary code.

Usage:
    from expression.reducer import reduce_expression

    reduce_expression('"GEN2" == "GEN2" ? 1.5 * 2 : 0')   # -> 3
"""

import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple


class ExpressionError(ValueError):
    """Raised when an expression cannot be tokenized, parsed or reduced."""
    pass


# =============================================================================
# Tokenizer
# =============================================================================

NUMBER = "NUMBER"
STRING = "STRING"
IDENT = "IDENT"
OP = "OP"
EOF = "EOF"

_OPERATORS = (
    "===", "!==",
    "==", "!=", "<=", ">=", "&&", "||",
    "<", ">", "+", "-", "*", "/", "%", "!",
    "?", ":", "(", ")", "[", "]", ",",
)

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


@dataclass(frozen=True)
class Token:
    kind: str
    value: Any
    pos: int


def _read_string(text: str, start: int) -> Tuple[str, int]:
    quote = text[start]
    chars = []
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                break
            nxt = text[i + 1]
            if nxt == "u" and re.fullmatch(r"[0-9a-fA-F]{4}", text[i + 2:i + 6]):
                chars.append(chr(int(text[i + 2:i + 6], 16)))
                i += 6
                continue
            chars.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch == quote:
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise ExpressionError(f"Unterminated string literal at position {start}")


def tokenize(text: str) -> List[Token]:
    """Split an expression into tokens."""
    tokens: List[Token] = []
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch in ("'", '"'):
            value, end = _read_string(text, i)
            tokens.append(Token(STRING, value, i))
            i = end
            continue
        if ch.isdigit() or (ch == "." and i + 1 < length and text[i + 1].isdigit()):
            match = _NUMBER_RE.match(text, i)
            tokens.append(Token(NUMBER, float(match.group(0)), i))
            i = match.end()
            continue
        match = _IDENT_RE.match(text, i)
        if match:
            tokens.append(Token(IDENT, match.group(0), i))
            i = match.end()
            continue
        for op in _OPERATORS:
            if text.startswith(op, i):
                tokens.append(Token(OP, op, i))
                i += len(op)
                break
        else:
            raise ExpressionError(f"Unexpected character {ch!r} at position {i}")
    tokens.append(Token(EOF, None, length))
    return tokens


# =============================================================================
# AST
# =============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ArrayLiteral:
    elements: Tuple[Any, ...]


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Logical:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Conditional:
    test: Any
    consequent: Any
    alternate: Any


_IDENT_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": math.nan,
    "Infinity": math.inf,
}


# =============================================================================
# Parser
# =============================================================================

class Parser:
    """Recursive-descent parser; precedence low to high:
    ternary, ||, &&, equality, relational, additive, multiplicative, unary.
    """

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    def parse(self):
        if self._peek().kind == EOF:
            return Literal(None)
        node = self._conditional()
        if self._peek().kind != EOF:
            token = self._peek()
            raise ExpressionError(f"Unexpected token {token.value!r} at position {token.pos}")
        return node

    # -- token helpers --------------------------------------------------------

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _match(self, *ops: str) -> Optional[str]:
        token = self._peek()
        if token.kind == OP and token.value in ops:
            self.index += 1
            return token.value
        return None

    def _expect(self, op: str) -> None:
        if not self._match(op):
            token = self._peek()
            found = "end of expression" if token.kind == EOF else repr(token.value)
            raise ExpressionError(f"Expected {op!r} but found {found} at position {token.pos}")

    # -- grammar --------------------------------------------------------------

    def _conditional(self):
        test = self._logical_or()
        if self._match("?"):
            consequent = self._conditional()
            self._expect(":")
            alternate = self._conditional()
            return Conditional(test, consequent, alternate)
        return test

    def _logical_or(self):
        node = self._logical_and()
        while self._match("||"):
            node = Logical("||", node, self._logical_and())
        return node

    def _logical_and(self):
        node = self._equality()
        while self._match("&&"):
            node = Logical("&&", node, self._equality())
        return node

    def _equality(self):
        node = self._relational()
        while True:
            op = self._match("===", "!==", "==", "!=")
            if not op:
                return node
            node = Binary(op, node, self._relational())

    def _relational(self):
        node = self._additive()
        while True:
            op = self._match("<=", ">=", "<", ">")
            if not op:
                return node
            node = Binary(op, node, self._additive())

    def _additive(self):
        node = self._multiplicative()
        while True:
            op = self._match("+", "-")
            if not op:
                return node
            node = Binary(op, node, self._multiplicative())

    def _multiplicative(self):
        node = self._unary()
        while True:
            op = self._match("*", "/", "%")
            if not op:
                return node
            node = Binary(op, node, self._unary())

    def _unary(self):
        op = self._match("!", "-", "+")
        if op:
            return Unary(op, self._unary())
        return self._primary()

    def _primary(self):
        token = self._advance()
        if token.kind in (NUMBER, STRING):
            return Literal(token.value)
        if token.kind == IDENT:
            if token.value in _IDENT_LITERALS:
                return Literal(_IDENT_LITERALS[token.value])
            raise ExpressionError(f"Unknown identifier {token.value!r} at position {token.pos}")
        if token.kind == OP and token.value == "(":
            node = self._conditional()
            self._expect(")")
            return node
        if token.kind == OP and token.value == "[":
            elements = []
            if not self._match("]"):
                while True:
                    elements.append(self._conditional())
                    if self._match("]"):
                        break
                    self._expect(",")
            return ArrayLiteral(tuple(elements))
        found = "end of expression" if token.kind == EOF else repr(token.value)
        raise ExpressionError(f"Unexpected {found} at position {token.pos}")


# =============================================================================
# Value semantics
# =============================================================================

_NUMERIC_STRING_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def truthy(value: Any) -> bool:
    """Truthiness: null, false, 0, NaN and "" are falsy; arrays are truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def format_number(value: float) -> str:
    """Render a number the way the script engine stringifies it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def to_string(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else to_string(v) for v in value)
    return str(value)


def to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return 0.0
        if _NUMERIC_STRING_RE.match(s):
            return float(s)
        if s in ("Infinity", "+Infinity"):
            return math.inf
        if s == "-Infinity":
            return -math.inf
        return math.nan
    if isinstance(value, (list, tuple)):
        return to_number(to_string(value)) if len(value) <= 1 else math.nan
    return math.nan


def _is_primitive(value: Any) -> bool:
    return not isinstance(value, (list, tuple))


def loose_equals(a: Any, b: Any) -> bool:
    """`==` semantics."""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool):
        return loose_equals(to_number(a), b)
    if isinstance(b, bool):
        return loose_equals(a, to_number(b))
    if is_number(a) and is_number(b):
        return float(a) == float(b)
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if is_number(a) and isinstance(b, str):
        return float(a) == to_number(b)
    if isinstance(a, str) and is_number(b):
        return to_number(a) == float(b)
    if not _is_primitive(a) and not _is_primitive(b):
        return a is b
    if not _is_primitive(a):
        return loose_equals(to_string(a), b)
    return loose_equals(a, to_string(b))


def strict_equals(a: Any, b: Any) -> bool:
    """`===` semantics."""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return float(a) == float(b)
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def _add(a: Any, b: Any) -> Any:
    if not _is_primitive(a):
        a = to_string(a)
    if not _is_primitive(b):
        b = to_string(b)
    if isinstance(a, str) or isinstance(b, str):
        return to_string(a) + to_string(b)
    return to_number(a) + to_number(b)


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _remainder(a: float, b: float) -> float:
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def _compare(op: str, a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        left, right = a, b
    else:
        left, right = to_number(a), to_number(b)
        if math.isnan(left) or math.isnan(right):
            return False
    if op == "<":
        return left < right
    if op == ">":
        return left > right
    if op == "<=":
        return left <= right
    return left >= right


# =============================================================================
# Evaluator
# =============================================================================

def evaluate_node(node) -> Any:
    """Walk the AST and produce a value."""
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, ArrayLiteral):
        return [evaluate_node(element) for element in node.elements]

    if isinstance(node, Unary):
        operand = evaluate_node(node.operand)
        if node.op == "!":
            return not truthy(operand)
        if node.op == "-":
            return -to_number(operand)
        return to_number(operand)

    if isinstance(node, Logical):
        left = evaluate_node(node.left)
        if node.op == "||":
            return left if truthy(left) else evaluate_node(node.right)
        return evaluate_node(node.right) if truthy(left) else left

    if isinstance(node, Conditional):
        if truthy(evaluate_node(node.test)):
            return evaluate_node(node.consequent)
        return evaluate_node(node.alternate)

    if isinstance(node, Binary):
        left = evaluate_node(node.left)
        right = evaluate_node(node.right)
        op = node.op
        if op == "+":
            return _add(left, right)
        if op == "-":
            return to_number(left) - to_number(right)
        if op == "*":
            return to_number(left) * to_number(right)
        if op == "/":
            return _divide(to_number(left), to_number(right))
        if op == "%":
            return _remainder(to_number(left), to_number(right))
        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        return _compare(op, left, right)

    raise ExpressionError(f"Unsupported node: {node!r}")


def normalize_result(value: Any) -> Any:
    """Map a reduced value onto payload primitives.

    Integral numbers become int, NaN and infinities become None (they have
    no JSON representation).
    """
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if is_number(value):
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer() and abs(value) < 2 ** 53:
            return int(value)
        return value
    if isinstance(value, (list, tuple)):
        return [normalize_result(v) for v in value]
    return value


def reduce_expression(text: str) -> Any:
    """Parse and evaluate a substituted expression.

    Raises:
        ExpressionError: if the text is outside the supported grammar
    """
    try:
        node = Parser(text).parse()
        return normalize_result(evaluate_node(node))
    except RecursionError:
        raise ExpressionError("Expression nesting too deep")
