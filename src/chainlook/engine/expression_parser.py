# src/chainlook/engine/expression_parser.py
"""Safe expression parser for dynamic fields.

Expressions use Python expression syntax, are validated against an AST
whitelist at parse time, and are evaluated by walking the AST. Nothing is
ever passed to eval() or compile().

Field references:
    volumeUSD            bare identifier
    token.decimals       dotted identifier (flattened nested field)
    row['volume USD']    subscript, for names that are not identifiers
    row.get('fee', 0)    lookup with a default

Allowed: literals, arithmetic (+ - * / // % **), comparisons (including
chains, in, is), and/or/not, ternaries, list/tuple/set/dict displays and the
helpers abs, round, min, max, int, float, str, len, coalesce, lower, upper.

Missing fields evaluate to EMPTY. EMPTY propagates through arithmetic and
helpers, is falsy, compares equal only to None/EMPTY and makes ordering
comparisons False. Numeric strings (subgraph BigInt/BigDecimal values) are
coerced to numbers in arithmetic and ordering.
"""

import ast
import operator
from collections.abc import Callable, Mapping
from typing import Any

from chainlook.contracts.errors import EvaluationError
from chainlook.core.numbers import coerce_number


class ExpressionSecurityError(Exception):
    """Expression uses a construct outside the whitelist."""


class ExpressionSyntaxError(Exception):
    """Expression is not a valid Python expression."""


class _Empty:
    """Value of a reference to a field the row does not have."""

    _instance: "_Empty | None" = None

    def __new__(cls) -> "_Empty":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY: Any = _Empty()

_MAX_EXPONENT = 1000
_MAX_POW_BITS = 10_000

# Names that are never field references, whatever the row contains
_FORBIDDEN_NAMES = frozenset(
    {
        "__import__",
        "breakpoint",
        "compile",
        "delattr",
        "dir",
        "eval",
        "exec",
        "exit",
        "getattr",
        "globals",
        "help",
        "input",
        "locals",
        "open",
        "quit",
        "setattr",
        "type",
        "vars",
    }
)


def _to_int(value: Any) -> int:
    number = coerce_number(value)
    if number is None:
        raise ValueError(f"not a number: {value!r}")
    return int(number)


def _to_float(value: Any) -> float:
    number = coerce_number(value)
    if number is None:
        raise ValueError(f"not a number: {value!r}")
    return float(number)


def _round(value: Any, ndigits: int | None = None) -> Any:
    return round(_arith_operand(value), ndigits)


def _coalesce(*values: Any) -> Any:
    for value in values:
        if value is not EMPTY and value is not None:
            return value
    return None


HELPERS: dict[str, Callable[..., Any]] = {
    "abs": lambda value: abs(_arith_operand(value)),
    "coalesce": _coalesce,
    "float": _to_float,
    "int": _to_int,
    "len": len,
    "lower": lambda value: str(value).lower(),
    "max": max,
    "min": min,
    "round": _round,
    "str": str,
    "upper": lambda value: str(value).upper(),
}

# Helpers that receive EMPTY arguments instead of short-circuiting to EMPTY
_EMPTY_AWARE_HELPERS = frozenset({"coalesce"})


def _safe_pow(base: Any, exponent: Any) -> Any:
    if isinstance(exponent, int | float) and abs(exponent) > _MAX_EXPONENT:
        raise EvaluationError(f"Exponent {exponent} exceeds limit of {_MAX_EXPONENT}")
    if isinstance(base, int) and isinstance(exponent, int) and base.bit_length() * exponent > _MAX_POW_BITS:
        raise EvaluationError(f"Power result exceeds limit of {_MAX_POW_BITS} bits")
    return base**exponent


_BIN_OPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _safe_pow,
}

_ORDERING_OPS: dict[type[ast.cmpop], Callable[[Any, Any], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_REJECTED: dict[type[ast.AST], str] = {
    ast.Lambda: "Lambda expressions are not allowed",
    ast.ListComp: "List comprehensions are not allowed",
    ast.DictComp: "Dict comprehensions are not allowed",
    ast.SetComp: "Set comprehensions are not allowed",
    ast.GeneratorExp: "Generator expressions are not allowed",
    ast.NamedExpr: "Assignment expressions (:=) are not allowed",
    ast.JoinedStr: "F-string expressions are not allowed",
    ast.FormattedValue: "F-string expressions are not allowed",
    ast.Starred: "Starred expressions are not allowed",
    ast.Await: "Await expressions are not allowed",
    ast.Yield: "Yield expressions are not allowed",
    ast.YieldFrom: "Yield expressions are not allowed",
    ast.Slice: "Slices are not allowed",
}

_ALLOWED_NODES = (
    ast.Expression,
    ast.Constant,
    ast.Name,
    ast.Attribute,
    ast.Subscript,
    ast.Call,
    ast.BinOp,
    ast.UnaryOp,
    ast.BoolOp,
    ast.Compare,
    ast.IfExp,
    ast.List,
    ast.Tuple,
    ast.Set,
    ast.Dict,
    ast.Load,
    ast.operator,
    ast.unaryop,
    ast.boolop,
    ast.cmpop,
)


def _dotted_name(node: ast.AST) -> list[str] | None:
    """Return ``a.b.c`` as ["a", "b", "c"], or None if not a pure name chain."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return list(reversed(parts))


def _is_row_get(node: ast.Call) -> bool:
    func = node.func
    return (
        isinstance(func, ast.Attribute)
        and isinstance(func.value, ast.Name)
        and func.value.id == "row"
    )


def _is_row_subscript(node: ast.Subscript) -> bool:
    return isinstance(node.value, ast.Name) and node.value.id == "row"


class _ExpressionValidator(ast.NodeVisitor):
    """Rejects non-whitelisted constructs and collects referenced fields."""

    def __init__(self) -> None:
        self.fields: set[str] = set()

    def visit(self, node: ast.AST) -> Any:
        rejection = _REJECTED.get(type(node))
        if rejection is not None:
            raise ExpressionSecurityError(rejection)
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionSecurityError(
                f"Forbidden expression construct: {type(node).__name__}"
            )
        return super().visit(node)

    def _check_name(self, name: str) -> None:
        if name.startswith("_") or name in _FORBIDDEN_NAMES:
            raise ExpressionSecurityError(f"Forbidden name: {name}")

    def visit_Constant(self, node: ast.Constant) -> None:
        if node.value is not None and not isinstance(node.value, str | int | float | bool):
            raise ExpressionSecurityError(
                f"Forbidden constant type: {type(node.value).__name__}"
            )

    def visit_Name(self, node: ast.Name) -> None:
        self._check_name(node.id)
        if node.id == "row":
            raise ExpressionSecurityError(
                "'row' must be subscripted (row['field']) or used as row.get('field')"
            )
        self.fields.add(node.id)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        path = _dotted_name(node)
        if path is None:
            raise ExpressionSecurityError("Attribute access is only allowed on field names")
        if path[0] == "row":
            raise ExpressionSecurityError(f"Forbidden row attribute: {'.'.join(path[1:])}")
        for part in path:
            self._check_name(part)
        self.fields.add(".".join(path))

    def visit_Subscript(self, node: ast.Subscript) -> None:
        if _is_row_subscript(node):
            key = node.slice
            if not (isinstance(key, ast.Constant) and isinstance(key.value, str)):
                raise ExpressionSecurityError("row[...] keys must be string literals")
            self.fields.add(key.value)
            return
        self.visit(node.value)
        self.visit(node.slice)

    def visit_Call(self, node: ast.Call) -> None:
        if node.keywords:
            raise ExpressionSecurityError("Function calls cannot use keyword arguments")

        if _is_row_get(node):
            attr = node.func.attr  # type: ignore[attr-defined]
            if attr != "get":
                raise ExpressionSecurityError(f"Forbidden row attribute: {attr}")
            if not 1 <= len(node.args) <= 2:
                raise ExpressionSecurityError("row.get() requires 1 or 2 arguments")
            key = node.args[0]
            if not (isinstance(key, ast.Constant) and isinstance(key.value, str)):
                raise ExpressionSecurityError("row.get() keys must be string literals")
            self.fields.add(key.value)
            for arg in node.args[1:]:
                self.visit(arg)
            return

        # Arguments first so nested forbidden constructs report themselves
        for arg in node.args:
            self.visit(arg)

        func = node.func
        if isinstance(func, ast.Name):
            self._check_name(func.id)
            if func.id not in HELPERS:
                raise ExpressionSecurityError(f"Forbidden function call: {func.id}")
            return

        self.visit(func)
        raise ExpressionSecurityError(f"Forbidden function call: {ast.unparse(func)}")

    def visit_BinOp(self, node: ast.BinOp) -> None:
        if type(node.op) not in _BIN_OPS:
            raise ExpressionSecurityError(f"Forbidden operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> None:
        if isinstance(node.op, ast.Invert):
            raise ExpressionSecurityError("Forbidden operator: Invert")
        self.generic_visit(node)

    def visit_Dict(self, node: ast.Dict) -> None:
        if any(key is None for key in node.keys):
            raise ExpressionSecurityError("Dict spread (**) is not allowed")
        self.generic_visit(node)


def _truthy(value: Any) -> bool:
    return value is not EMPTY and bool(value)


def _as_none(value: Any) -> Any:
    return None if value is EMPTY else value


def _arith_operand(value: Any) -> Any:
    if isinstance(value, str):
        number = coerce_number(value)
        if number is not None:
            return number
    return value


class _Evaluator:
    """Evaluates a validated expression tree against one row."""

    def __init__(self, row: Mapping[str, Any]) -> None:
        self._row = row

    def eval(self, node: ast.AST) -> Any:
        method = getattr(self, f"_eval_{type(node).__name__}")
        return method(node)

    def _field(self, name: str) -> Any:
        if name in self._row:
            return self._row[name]
        return EMPTY

    def _eval_Expression(self, node: ast.Expression) -> Any:
        return self.eval(node.body)

    def _eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _eval_Name(self, node: ast.Name) -> Any:
        return self._field(node.id)

    def _eval_Attribute(self, node: ast.Attribute) -> Any:
        path = _dotted_name(node)
        assert path is not None  # Guaranteed by validator
        return self._field(".".join(path))

    def _eval_Subscript(self, node: ast.Subscript) -> Any:
        if _is_row_subscript(node):
            return self._field(node.slice.value)  # type: ignore[attr-defined]

        container = self.eval(node.value)
        key = self.eval(node.slice)
        if container is EMPTY or container is None or key is EMPTY:
            return EMPTY
        try:
            return container[key]
        except (KeyError, IndexError):
            return EMPTY

    def _eval_Call(self, node: ast.Call) -> Any:
        if _is_row_get(node):
            key = node.args[0].value  # type: ignore[attr-defined]
            if key in self._row:
                return self._row[key]
            return self.eval(node.args[1]) if len(node.args) == 2 else None

        name = node.func.id  # type: ignore[attr-defined]
        args = [self.eval(arg) for arg in node.args]
        if name not in _EMPTY_AWARE_HELPERS and any(arg is EMPTY for arg in args):
            return EMPTY
        return HELPERS[name](*args)

    def _eval_BinOp(self, node: ast.BinOp) -> Any:
        left = self.eval(node.left)
        right = self.eval(node.right)
        if left is EMPTY or right is EMPTY or left is None or right is None:
            return EMPTY

        if isinstance(node.op, ast.Add) and isinstance(left, str) and isinstance(right, str):
            return left + right

        left = _arith_operand(left)
        right = _arith_operand(right)
        if isinstance(node.op, ast.Mult) and (
            isinstance(left, str | list | tuple) or isinstance(right, str | list | tuple)
        ):
            raise EvaluationError("Sequence repetition is not supported")
        return _BIN_OPS[type(node.op)](left, right)

    def _eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.eval(node.operand)
        if isinstance(node.op, ast.Not):
            return not _truthy(operand)
        if operand is EMPTY or operand is None:
            return EMPTY
        operand = _arith_operand(operand)
        if isinstance(node.op, ast.USub):
            return -operand
        return +operand

    def _eval_BoolOp(self, node: ast.BoolOp) -> Any:
        value: Any = None
        if isinstance(node.op, ast.And):
            for operand in node.values:
                value = self.eval(operand)
                if not _truthy(value):
                    return value
            return value
        for operand in node.values:
            value = self.eval(operand)
            if _truthy(value):
                return value
        return value

    def _eval_Compare(self, node: ast.Compare) -> bool:
        left = self.eval(node.left)
        for op, comparator in zip(node.ops, node.comparators, strict=True):
            right = self.eval(comparator)
            if not self._compare(op, left, right):
                return False
            left = right
        return True

    def _compare(self, op: ast.cmpop, left: Any, right: Any) -> bool:
        if isinstance(op, ast.Is):
            return _as_none(left) is _as_none(right)
        if isinstance(op, ast.IsNot):
            return _as_none(left) is not _as_none(right)
        if isinstance(op, ast.Eq):
            return bool(_as_none(left) == _as_none(right))
        if isinstance(op, ast.NotEq):
            return bool(_as_none(left) != _as_none(right))
        if isinstance(op, ast.In | ast.NotIn):
            container = () if right is EMPTY or right is None else right
            contained = _as_none(left) in container
            return contained if isinstance(op, ast.In) else not contained

        if left is EMPTY or right is EMPTY or left is None or right is None:
            return False
        if isinstance(left, str) != isinstance(right, str):
            left, right = _arith_operand(left), _arith_operand(right)
        return bool(_ORDERING_OPS[type(op)](left, right))

    def _eval_IfExp(self, node: ast.IfExp) -> Any:
        if _truthy(self.eval(node.test)):
            return self.eval(node.body)
        return self.eval(node.orelse)

    def _eval_List(self, node: ast.List) -> list[Any]:
        return [self.eval(element) for element in node.elts]

    def _eval_Tuple(self, node: ast.Tuple) -> tuple[Any, ...]:
        return tuple(self.eval(element) for element in node.elts)

    def _eval_Set(self, node: ast.Set) -> set[Any]:
        return {self.eval(element) for element in node.elts}

    def _eval_Dict(self, node: ast.Dict) -> dict[Any, Any]:
        return {
            self.eval(key): self.eval(value)  # type: ignore[arg-type]
            for key, value in zip(node.keys, node.values, strict=True)
        }


class ExpressionParser:
    """Parse once, evaluate against many rows.

    Example:
        parser = ExpressionParser("volumeUSD / 10 ** token.decimals")
        parser.referenced_fields  # frozenset({"volumeUSD", "token.decimals"})
        parser.evaluate({"volumeUSD": "1500", "token.decimals": 3})  # 1.5

    Raises:
        ExpressionSyntaxError: If the expression does not parse
        ExpressionSecurityError: If it uses a non-whitelisted construct
    """

    def __init__(self, expression: str) -> None:
        self._expression = expression
        try:
            self._tree = ast.parse(expression, mode="eval")
        except (SyntaxError, ValueError) as e:
            message = e.msg if isinstance(e, SyntaxError) else str(e)
            raise ExpressionSyntaxError(f"Invalid syntax: {message}") from e

        validator = _ExpressionValidator()
        validator.visit(self._tree)
        self._fields = frozenset(validator.fields)

    @property
    def expression(self) -> str:
        return self._expression

    @property
    def referenced_fields(self) -> frozenset[str]:
        """Every row field the expression can read."""
        return self._fields

    def evaluate(self, row: Mapping[str, Any]) -> Any:
        """Evaluate against ``row``.

        Returns:
            The expression value, or EMPTY when it depends on a missing field.

        Raises:
            EvaluationError: On runtime failures (division by zero, type
                mismatches). Callers decide whether this is fatal.
        """
        try:
            return _Evaluator(row).eval(self._tree)
        except EvaluationError:
            raise
        except (ArithmeticError, TypeError, ValueError) as e:
            raise EvaluationError(
                f"Failed to evaluate {self._expression!r}: {type(e).__name__}: {e}"
            ) from e

    def __repr__(self) -> str:
        return f"ExpressionParser({self._expression!r})"
