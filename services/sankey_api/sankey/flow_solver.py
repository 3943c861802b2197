"""
Sankey flow solver.

  1. Evaluate the explicit constraints in order
  2. Propagate node balances to a fixed point
  3. Verify conservation at every fully known node
  4. Classify: contradictory > solved > underdetermined

Evaluation failures short-circuit into an error result before any
balance propagation happens.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from . import schemas
from .balance import solve_iteratively
from .expressions import ExpressionError, evaluate_all_constraints
from .verification import get_undetermined_flow_ids, is_fully_solved, verify_balance


ConfigInput = Union[schemas.SankeyConfig, Mapping[str, Any], None]


def solve(config: ConfigInput = None) -> schemas.SolveResult:
    """Solve every flow of a Sankey configuration.

    ``config`` may be a SankeyConfig, a plain mapping with the same keys, or
    None (an empty network, which is trivially solved).
    """
    if not isinstance(config, schemas.SankeyConfig):
        config = schemas.SankeyConfig.model_validate(dict(config or {}))

    nodes = config.nodes
    flows = config.flows
    warnings = _topology_warnings(config)

    logger.info(
        "Solving '{}': {} node(s), {} flow(s), {} constraint(s)",
        config.name, len(nodes), len(flows), len(config.constraints),
    )

    try:
        defined_flows = evaluate_all_constraints(config.constraints, config.parameters)
    except ExpressionError as exc:
        logger.error("Constraint evaluation failed: {}", exc)
        return schemas.EvaluationErrorResult(error=str(exc), warnings=warnings)

    logger.info("Constraints defined {} flow(s)", len(defined_flows))

    defined_flows = solve_iteratively(
        nodes, flows, defined_flows, max_iterations=2 * len(flows),
    )

    violations = verify_balance(nodes, flows, defined_flows)
    if violations:
        logger.warning(
            "Balance violated at node(s): {}", [v.node for v in violations],
        )
        return schemas.ContradictoryResult(balance_errors=violations, warnings=warnings)

    known = {k: v for k, v in defined_flows.items() if v is not None}

    if is_fully_solved(flows, defined_flows):
        logger.info("All {} flow(s) solved", len(flows))
        return schemas.SolvedResult(flows=known, warnings=warnings)

    undetermined = get_undetermined_flow_ids(flows, defined_flows)
    logger.info("Underdetermined: {} flow(s) without a value", len(undetermined))
    return schemas.UnderdeterminedResult(
        defined_flows=known,
        undetermined_flows=undetermined,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Topology diagnostics
# ---------------------------------------------------------------------------


def _topology_warnings(config: schemas.SankeyConfig) -> List[str]:
    warnings: List[str] = []

    node_ids = {n.id for n in config.nodes}
    for flow in config.flows:
        for endpoint in (flow.source, flow.target):
            if endpoint not in node_ids:
                warnings.append(f"Flow '{flow.id}' references unknown node '{endpoint}'")

    cyclic = _unordered_nodes(config)
    if cyclic:
        logger.warning("Flow cycle detected, unordered nodes: {}", cyclic)
        warnings.append(f"Flow cycle detected, unordered nodes: {cyclic}")

    return warnings


def _unordered_nodes(config: schemas.SankeyConfig) -> List[str]:
    """Nodes left over by Kahn's algorithm, i.e. on or downstream of a cycle."""
    order_hint: List[str] = []
    in_degree: Dict[str, int] = {}
    adj: Dict[str, List[str]] = defaultdict(list)

    def _register(node_id: str) -> None:
        if node_id not in in_degree:
            in_degree[node_id] = 0
            order_hint.append(node_id)

    for node in config.nodes:
        _register(node.id)
    for flow in config.flows:
        _register(flow.source)
        _register(flow.target)
        adj[flow.source].append(flow.target)
        in_degree[flow.target] += 1

    queue = deque(n for n in order_hint if in_degree[n] == 0)
    visited: set = set()
    while queue:
        u = queue.popleft()
        visited.add(u)
        for v in adj.get(u, []):
            in_degree[v] -= 1
            if in_degree[v] == 0:
                queue.append(v)

    return [n for n in order_hint if n not in visited]


def flow_value(result: schemas.SolveResult, flow_id: str) -> Optional[float]:
    """Value of ``flow_id`` in a result, from the full or the partial map."""
    if isinstance(result, schemas.SolvedResult):
        return result.flows.get(flow_id)
    if isinstance(result, schemas.UnderdeterminedResult):
        return result.defined_flows.get(flow_id)
    return None
