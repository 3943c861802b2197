"""
Expression and constraint evaluation.

Constraints have the form ``flows.<id> == <expression>``.  The right-hand
side may reference ``parameters.<name>`` and previously defined
``flows.<id>`` values, numeric literals, ``+ - * /`` and parentheses.

Arithmetic is evaluated by walking a whitelisted Python AST; nothing is
ever handed to ``eval``.
"""

from __future__ import annotations

import ast
import math
import re
from typing import Dict, Mapping, Optional, Sequence, Tuple

from loguru import logger


_PARAMETER_REF = re.compile(r"parameters\.(\w+)")
_FLOW_REF = re.compile(r"flows\.(\w+)")
_REFERENCE = re.compile(r"(parameters|flows)\.(\w+)")
_DIGIT_SEPARATOR = re.compile(r"\d_\d")
_BOUND_PREFIX = "_ref"

_BINARY_OPERATORS = (ast.Add, ast.Sub, ast.Mult, ast.Div)
_UNARY_OPERATORS = (ast.UAdd, ast.USub)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ExpressionError(ValueError):
    """Base class for constraint and expression failures."""


class UnknownParameter(ExpressionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown parameter: {name}")
        self.name = name


class FlowNotYetDefined(ExpressionError):
    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Flow {flow_id} not yet defined")
        self.flow_id = flow_id


class MalformedConstraint(ExpressionError):
    def __init__(self) -> None:
        super().__init__("Constraint must contain exactly one ==")


class LeftSideNotFlowReference(ExpressionError):
    def __init__(self) -> None:
        super().__init__("Left side of constraint must be a flow reference (flows.id)")


class InvalidExpression(ExpressionError):
    def __init__(self, expr: str) -> None:
        super().__init__(f"Cannot evaluate expression: {expr}")
        self.expr = expr


class ConstraintEvaluationError(ExpressionError):
    """Raised by evaluate_all_constraints, naming the offending constraint."""

    def __init__(self, constraint: str, cause: Exception) -> None:
        super().__init__(f'Error evaluating constraint "{constraint}": {cause}')
        self.constraint = constraint


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------


def evaluate_expression(
    expr: str,
    parameters: Mapping[str, float],
    defined_flows: Mapping[str, Optional[float]],
) -> float:
    """Evaluate an arithmetic expression over parameters and defined flows.

    All parameter references are checked before any flow reference, so an
    unknown parameter is reported even when a flow is also missing.  Each
    reference is then replaced by a bound name before parsing, which keeps
    ids such as ``flows.1`` or ``parameters.in`` usable.
    """
    for name in _PARAMETER_REF.findall(expr):
        if parameters.get(name) is None:
            raise UnknownParameter(name)

    for flow_id in _FLOW_REF.findall(expr):
        if defined_flows.get(flow_id) is None:
            raise FlowNotYetDefined(flow_id)

    # Bare names and digit separators are not part of the grammar
    residual = _REFERENCE.sub(" ", expr)
    if _BOUND_PREFIX in residual or _DIGIT_SEPARATOR.search(residual):
        raise InvalidExpression(expr)

    namespaces = {"parameters": parameters, "flows": defined_flows}
    bindings: Dict[str, float] = {}

    def _bind(match: re.Match) -> str:
        name = f"{_BOUND_PREFIX}{len(bindings)}"
        bindings[name] = float(namespaces[match.group(1)][match.group(2)])
        return name

    substituted = _REFERENCE.sub(_bind, expr).strip()
    try:
        tree = ast.parse(substituted, mode="eval")
    except (SyntaxError, ValueError) as exc:
        raise InvalidExpression(expr) from exc

    evaluator = _ArithmeticEvaluator(expr, bindings)
    return evaluator.visit(tree.body)


class _ArithmeticEvaluator:
    """Reduce an expression AST to a float, rejecting anything non-arithmetic."""

    def __init__(self, expr: str, bindings: Mapping[str, float]) -> None:
        self.expr = expr
        self.bindings = bindings

    def visit(self, node: ast.AST) -> float:
        if isinstance(node, ast.Constant):
            # bool is an int subclass
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise InvalidExpression(self.expr)
            try:
                return float(node.value)
            except OverflowError as exc:
                raise InvalidExpression(self.expr) from exc

        if isinstance(node, ast.Name):
            if node.id not in self.bindings:
                raise InvalidExpression(self.expr)
            return self.bindings[node.id]

        if isinstance(node, ast.UnaryOp) and isinstance(node.op, _UNARY_OPERATORS):
            operand = self.visit(node.operand)
            return -operand if isinstance(node.op, ast.USub) else operand

        if isinstance(node, ast.BinOp) and isinstance(node.op, _BINARY_OPERATORS):
            left = self.visit(node.left)
            right = self.visit(node.right)
            if isinstance(node.op, ast.Add):
                return left + right
            if isinstance(node.op, ast.Sub):
                return left - right
            if isinstance(node.op, ast.Mult):
                return left * right
            return _divide(left, right)

        raise InvalidExpression(self.expr)


def _divide(left: float, right: float) -> float:
    """IEEE-754 division: x/0 is a signed infinity and 0/0 is nan."""
    try:
        return left / right
    except ZeroDivisionError:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


def parse_constraint(constraint: str) -> Tuple[str, str]:
    """Split ``left == right`` into its trimmed sides."""
    parts = [part.strip() for part in constraint.split("==")]
    if len(parts) != 2:
        raise MalformedConstraint()
    return parts[0], parts[1]


def evaluate_constraint(
    constraint: str,
    parameters: Mapping[str, float],
    defined_flows: Mapping[str, Optional[float]],
) -> Dict[str, Optional[float]]:
    """Evaluate one constraint and return a new map with the bound flow added.

    The input map is never mutated.
    """
    left, right = parse_constraint(constraint)

    match = _FLOW_REF.fullmatch(left)
    if match is None:
        raise LeftSideNotFlowReference()

    flow_id = match.group(1)
    value = evaluate_expression(right, parameters, defined_flows)

    updated = dict(defined_flows)
    updated[flow_id] = value
    return updated


def evaluate_all_constraints(
    constraints: Sequence[str],
    parameters: Mapping[str, float],
) -> Dict[str, Optional[float]]:
    """Evaluate constraints in order, threading the growing flow map through."""
    defined_flows: Dict[str, Optional[float]] = {}
    for constraint in constraints:
        try:
            defined_flows = evaluate_constraint(constraint, parameters, defined_flows)
        except ExpressionError as exc:
            raise ConstraintEvaluationError(constraint, exc) from exc
        logger.debug("Constraint '{}' evaluated", constraint)
    return defined_flows

