"""
Expression Interpreter

Simulates what the production system computes for one mapping expression.

The expression is rewritten in a fixed order until no context references are
left, then reduced to a primitive value:

1. Collapse whitespace
2. `or` / `and` keywords -> `||` / `&&`
3. Collection projection `?.![...]` -> `[]` (unsupported)
4. `#invoicingItems['NAME']?.prop?.value` -> number (0 when absent)
5. Elvis `?:` -> `||`
6. Map-literal lookups `{ 'A': x, 'B': y }[key]`
7. `#input.<method>()` -> false, `#input.operation.name()` -> operation name
8. `toLowerCase()` / `toUpperCase()` / `toString()` on input fields
9. Plain `#input` field references
10. Standalone `#<name>Value` / `#isVatOptimisedOrder` variables
11. Residual `undefined` -> null
12. Reduce (see expression.reducer)

The order matters: invoicing items must be replaced before the elvis rewrite
and before variable substitution, and map literals must still be intact when
step 6 runs.

Evaluation never raises. Anything the pipeline cannot reduce degrades to 0.
"""

import json
import re
from typing import Any, Callable, List, Optional, Tuple

from core.models.context import EvaluationContext
from core.observability.logging import get_logger
from core.settings import get_settings

from .reducer import ExpressionError, format_number, is_number, reduce_expression, to_string


logger = get_logger(__name__)

FALLBACK_RESULT = 0

# Method shorthands on #input that the simulator cannot run
UNSUPPORTED_METHOD_FALLBACK = "false"


# =============================================================================
# Patterns
# =============================================================================

_WHITESPACE_RE = re.compile(r"\s+")
_STRING_LITERAL_RE = re.compile(r"('(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\")")
_OR_RE = re.compile(r"\bor\b")
_AND_RE = re.compile(r"\band\b")
_PROJECTION_RE = re.compile(r"\?\.!\[([^\]]*)\]")
_INVOICING_ITEM_RE = re.compile(
    r"#invoicingItems\['([^']+)'\](?:\??\.(?!value\b)(\w+))?(?:\??\.value\b)?"
)
_ELVIS_RE = re.compile(r"\?\s*:")

_INPUT_METHOD_RE = re.compile(r"#input\.(\w+)\(\)")
_OPERATION_NAME_CALL_RE = re.compile(r"#input\.operation\.name\(\)")

_SAFE_LOWER_RE = re.compile(r"#input\.orderMetadata\?\.(\w+)\?\.toLowerCase\(\)")
_SAFE_UPPER_RE = re.compile(r"#input\.orderMetadata\?\.(\w+)\?\.toUpperCase\(\)")
_METADATA_TO_STRING_RE = re.compile(r"#input\.orderMetadata\.(\w+)\.toString\(\)")
_ROOT_TO_STRING_RE = re.compile(r"#input\.(\w+)\.toString\(\)")
_LOWER_RE = re.compile(r"#input\.orderMetadata\.(\w+)\.toLowerCase\(\)")
_UPPER_RE = re.compile(r"#input\.orderMetadata\.(\w+)\.toUpperCase\(\)")

_SAFE_METADATA_RE = re.compile(r"#input\.orderMetadata\?\.(\w+)")
_METADATA_RE = re.compile(r"#input\.orderMetadata\.(\w+)")
_OPERATION_FIELD_RE = re.compile(r"#input\.operation\.(\w+)")
_ROOT_FIELD_RE = re.compile(r"#input\.(\w+)")

_VARIABLE_RE = re.compile(r"#(\w+Value|isVatOptimisedOrder)\b")
_UNDEFINED_RE = re.compile(r"\bundefined\b")


# =============================================================================
# Rendering helpers
# =============================================================================

def to_primitive(value: Any) -> Any:
    """Flatten structured context values to something renderable.

    `{value: x}` wrappers yield x; other objects and lists become JSON text.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        if "value" in value:
            return value["value"]
        return json.dumps(value, default=str)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), default=str)
    return value


def quote(text: str) -> str:
    """Render text as a double-quoted string literal."""
    return json.dumps(text, ensure_ascii=False)


def render_literal(value: Any, absent: str = "null") -> str:
    """Render a context value as expression source.

    None renders as `absent`; numbers and booleans as-is; anything else as a
    quoted string.
    """
    value = to_primitive(value)
    if value is None:
        return absent
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(float(value))
    return quote(str(value))


def _render_reduced(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render_reduced(v) for v in value) + "]"
    return render_literal(value)


def _split_string_literals(text: str) -> List[Tuple[bool, str]]:
    """Split text into (is_literal, chunk) pieces."""
    pieces = []
    pos = 0
    for match in _STRING_LITERAL_RE.finditer(text):
        if match.start() > pos:
            pieces.append((False, text[pos:match.start()]))
        pieces.append((True, match.group(0)))
        pos = match.end()
    if pos < len(text):
        pieces.append((False, text[pos:]))
    return pieces


def _outside_literals(text: str, rewrite: Callable[[str], str]) -> str:
    return "".join(
        chunk if is_literal else rewrite(chunk)
        for is_literal, chunk in _split_string_literals(text)
    )


# =============================================================================
# Map literal scanning
# =============================================================================

_OPENERS = {"(": ")", "{": "}", "[": "]"}


def _skip_string(text: str, pos: int) -> int:
    """Return the index just past the string literal starting at pos."""
    quote_char = text[pos]
    i = pos + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote_char:
            return i + 1
        i += 1
    return len(text)


def _find_closing(text: str, pos: int) -> Optional[int]:
    """Index of the bracket closing the one at pos, or None when unbalanced."""
    stack = []
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in ("'", '"'):
            i = _skip_string(text, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in (")", "}", "]"):
            if not stack or stack[-1] != ch:
                return None
            stack.pop()
            if not stack:
                return i
        i += 1
    return None


def find_map_lookup(text: str, start: int = 0) -> Optional[Tuple[int, int, int]]:
    """Locate the next `{...}[...]` span.

    Returns:
        (brace_start, brace_end, bracket_end) indexes, or None
    """
    i = start
    while i < len(text):
        ch = text[i]
        if ch in ("'", '"'):
            i = _skip_string(text, i)
            continue
        if ch == "{":
            brace_end = _find_closing(text, i)
            if brace_end is not None and brace_end + 1 < len(text) and text[brace_end + 1] == "[":
                bracket_end = _find_closing(text, brace_end + 1)
                if bracket_end is not None:
                    return i, brace_end, bracket_end
        i += 1
    return None


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on separators that are not nested in brackets or strings."""
    parts = []
    depth = 0
    current = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in ("'", '"'):
            end = _skip_string(text, i)
            current.append(text[i:end])
            i = end
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in (")", "}", "]"):
            depth -= 1
        elif ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1
    if "".join(current).strip():
        parts.append("".join(current))
    return parts


def _strip_quotes(text: str) -> str:
    return text.replace("'", "").replace('"', "").strip()


# =============================================================================
# Interpreter
# =============================================================================

class ExpressionInterpreter:
    """
    Rewrite-then-reduce interpreter for mapping expressions.

    Usage:
        interpreter = ExpressionInterpreter()
        value = interpreter.evaluate("#input.orderMetadata.orderCode", context)
    """

    def __init__(self, max_map_nesting: Optional[int] = None):
        """
        Args:
            max_map_nesting: Depth cap for map literals nested in map values
                (defaults to PAYLOAD_MAPPER_MAX_MAP_NESTING)
        """
        if max_map_nesting is None:
            max_map_nesting = get_settings().max_map_nesting
        self.max_map_nesting = max_map_nesting

    # -- public API -------------------------------------------------------------

    def evaluate(self, expression: Optional[str], context: Any) -> Any:
        """
        Evaluate one expression against a context.

        Args:
            expression: Expression source
            context: EvaluationContext (or a dict in its document shape)

        Returns:
            str, int, float, bool, list or None; 0 when the expression
            cannot be reduced. Blank expressions yield None.
        """
        if expression is None or not str(expression).strip():
            return None

        rewritten = None
        try:
            ctx = self._coerce_context(context)
            rewritten = self.rewrite(expression, ctx)
            return reduce_expression(rewritten)
        except ExpressionError as e:
            logger.debug(
                "Expression could not be reduced, using fallback",
                extra_fields={"expression": expression, "rewritten": rewritten, "error": str(e)},
            )
        except Exception as e:
            logger.warning(
                "Expression evaluation failed, using fallback",
                extra_fields={"expression": expression, "rewritten": rewritten, "error": repr(e)},
            )
        return FALLBACK_RESULT

    def rewrite(self, expression: str, context: EvaluationContext) -> str:
        """Apply rewrite steps 1-11 and return the text handed to the reducer."""
        text = _WHITESPACE_RE.sub(" ", str(expression).strip())
        text = self._substitute_logical_keywords(text)
        text = _PROJECTION_RE.sub("[]", text)
        text = self._substitute_invoicing_items(text, context)
        text = _ELVIS_RE.sub(" || ", text)
        return self._rewrite_references(text, context, depth=0)

    def explain(self, expression: str, context: Any) -> Optional[str]:
        """Rewritten text for diagnostics, or None if rewriting failed."""
        if expression is None or not str(expression).strip():
            return None
        try:
            return self.rewrite(expression, self._coerce_context(context))
        except Exception as e:
            logger.debug("Expression rewrite failed", extra_fields={"expression": expression, "error": repr(e)})
            return None

    # -- steps ------------------------------------------------------------------

    @staticmethod
    def _coerce_context(context: Any) -> EvaluationContext:
        if isinstance(context, EvaluationContext):
            return context
        if context is None:
            return EvaluationContext()
        return EvaluationContext.model_validate(context)

    @staticmethod
    def _substitute_logical_keywords(text: str) -> str:
        def rewrite(chunk: str) -> str:
            chunk = _OR_RE.sub("||", chunk)
            return _AND_RE.sub("&&", chunk)
        return _outside_literals(text, rewrite)

    @staticmethod
    def _substitute_invoicing_items(text: str, context: EvaluationContext) -> str:
        def replace(match: re.Match) -> str:
            value = context.invoicing_amount(match.group(1), match.group(2))
            return render_literal(value, absent="0")
        return _INVOICING_ITEM_RE.sub(replace, text)

    def _rewrite_references(self, text: str, context: EvaluationContext, depth: int) -> str:
        """Steps 6-11; reused for map keys and map values."""
        text = self._rewrite_map_lookups(text, context, depth)
        text = self._substitute_method_calls(text, context)
        text = self._substitute_case_methods(text, context)
        text = self._substitute_fields(text, context)
        text = _VARIABLE_RE.sub(lambda m: render_literal(context.variable(m.group(1))), text)
        return _UNDEFINED_RE.sub("null", text)

    def _reduce_fragment(self, fragment: str, context: EvaluationContext, depth: int) -> Any:
        return reduce_expression(self._rewrite_references(fragment, context, depth))

    def _rewrite_map_lookups(self, text: str, context: EvaluationContext, depth: int) -> str:
        pos = 0
        while True:
            span = find_map_lookup(text, pos)
            if span is None:
                return text
            start, brace_end, bracket_end = span
            if depth >= self.max_map_nesting:
                logger.debug("Map literal nesting limit reached", extra_fields={"depth": depth})
                replacement = str(FALLBACK_RESULT)
            else:
                try:
                    replacement = self._resolve_map_lookup(
                        text[start + 1:brace_end],
                        text[brace_end + 2:bracket_end].strip(),
                        context,
                        depth,
                    )
                except Exception as e:
                    logger.debug("Map lookup failed", extra_fields={"span": text[start:bracket_end + 1], "error": repr(e)})
                    replacement = str(FALLBACK_RESULT)
            text = text[:start] + replacement + text[bracket_end + 1:]
            pos = start + len(replacement)

    def _resolve_map_lookup(self, body: str, key_expr: str, context: EvaluationContext, depth: int) -> str:
        try:
            key_value = self._reduce_fragment(key_expr, context, depth + 1)
        except ExpressionError:
            key_value = _strip_quotes(key_expr)

        entries = {}
        for entry in split_top_level(body):
            colon = self._top_level_colon(entry)
            if colon is None or colon == 0:
                continue
            key = _strip_quotes(entry[:colon])
            value_src = entry[colon + 1:].strip()
            try:
                entries[key] = self._reduce_fragment(value_src, context, depth + 1)
            except ExpressionError:
                entries[key] = _strip_quotes(value_src)

        result = entries.get(to_string(key_value))
        if result is None:
            return str(FALLBACK_RESULT)
        return _render_reduced(result)

    @staticmethod
    def _top_level_colon(entry: str) -> Optional[int]:
        i = 0
        while i < len(entry):
            ch = entry[i]
            if ch in ("'", '"'):
                i = _skip_string(entry, i)
                continue
            if ch == ":":
                return i
            i += 1
        return None

    @staticmethod
    def _substitute_method_calls(text: str, context: EvaluationContext) -> str:
        text = _INPUT_METHOD_RE.sub(UNSUPPORTED_METHOD_FALLBACK, text)
        return _OPERATION_NAME_CALL_RE.sub(lambda m: quote(context.operation_name()), text)

    @staticmethod
    def _substitute_case_methods(text: str, context: EvaluationContext) -> str:
        def as_string(value: Any, transform: Callable[[str], str], absent: str) -> str:
            value = to_primitive(value)
            if value is None:
                return absent
            return quote(transform(to_string(value)))

        metadata = context.order_metadata
        same = lambda s: s

        text = _SAFE_LOWER_RE.sub(lambda m: as_string(metadata(m.group(1)), str.lower, "null"), text)
        text = _SAFE_UPPER_RE.sub(lambda m: as_string(metadata(m.group(1)), str.upper, "null"), text)
        text = _METADATA_TO_STRING_RE.sub(lambda m: as_string(metadata(m.group(1)), same, '""'), text)
        text = _ROOT_TO_STRING_RE.sub(lambda m: as_string(context.input_field(m.group(1)), same, '""'), text)
        text = _LOWER_RE.sub(lambda m: as_string(metadata(m.group(1)), str.lower, '""'), text)
        return _UPPER_RE.sub(lambda m: as_string(metadata(m.group(1)), str.upper, '""'), text)

    @staticmethod
    def _substitute_fields(text: str, context: EvaluationContext) -> str:
        text = _SAFE_METADATA_RE.sub(lambda m: render_literal(context.order_metadata(m.group(1))), text)
        text = _METADATA_RE.sub(lambda m: render_literal(context.order_metadata(m.group(1))), text)
        text = _OPERATION_FIELD_RE.sub(lambda m: render_literal(context.operation_field(m.group(1))), text)
        return _ROOT_FIELD_RE.sub(lambda m: render_literal(context.input_field(m.group(1))), text)


# =============================================================================
# Convenience Function
# =============================================================================

_default_interpreter: Optional[ExpressionInterpreter] = None


def get_interpreter() -> ExpressionInterpreter:
    """Shared interpreter configured from settings (it holds no per-call state)."""
    global _default_interpreter
    if _default_interpreter is None:
        _default_interpreter = ExpressionInterpreter()
    return _default_interpreter


def evaluate_expression(expression: Optional[str], context: Any) -> Any:
    """Evaluate one expression with the shared interpreter. Never raises."""
    return get_interpreter().evaluate(expression, context)
