"""
Node-balance propagation.

At every node that has both inputs and outputs, sum(inputs) == sum(outputs).
When exactly one incident flow of such a node is still unknown, that flow
is fixed by the balance.  Repeated full passes over the node list propagate
values through the network until nothing changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from . import schemas


FlowMap = Dict[str, Optional[float]]


@dataclass(frozen=True)
class BalanceSolution:
    """A flow value derived from one node's balance."""
    flow_id: str
    value: float


def is_defined(flow_id: str, defined_flows: Mapping[str, Optional[float]]) -> bool:
    return defined_flows.get(flow_id) is not None


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------


def get_node_flows(
    node: schemas.NodeSpec,
    flows: Sequence[schemas.FlowSpec],
) -> Tuple[List[schemas.FlowSpec], List[schemas.FlowSpec]]:
    """Partition flows into (inputs, outputs) of ``node``, keeping list order."""
    inputs = [f for f in flows if f.target == node.id]
    outputs = [f for f in flows if f.source == node.id]
    return inputs, outputs


def is_source_or_sink(
    inputs: Sequence[schemas.FlowSpec],
    outputs: Sequence[schemas.FlowSpec],
) -> bool:
    return not inputs or not outputs


def get_undefined_flows(
    flow_list: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> List[schemas.FlowSpec]:
    return [f for f in flow_list if not is_defined(f.id, defined_flows)]


def sum_defined_flows(
    flow_list: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> float:
    """Sum the values of the flows that have one; unknown flows count as 0."""
    total = 0.0
    for f in flow_list:
        value = defined_flows.get(f.id)
        if value is not None:
            total += value
    return total


# ---------------------------------------------------------------------------
# Propagation
# ---------------------------------------------------------------------------


def solve_node_balance(
    node: schemas.NodeSpec,
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> Optional[BalanceSolution]:
    """Derive the single unknown flow at ``node`` from its balance, if any.

    Returns None for sources and sinks, for fully known nodes, and for nodes
    with two or more unknown flows.
    """
    inputs, outputs = get_node_flows(node, flows)
    if is_source_or_sink(inputs, outputs):
        return None

    undefined_inputs = get_undefined_flows(inputs, defined_flows)
    undefined_outputs = get_undefined_flows(outputs, defined_flows)
    if len(undefined_inputs) + len(undefined_outputs) != 1:
        return None

    sum_inputs = sum_defined_flows(inputs, defined_flows)
    sum_outputs = sum_defined_flows(outputs, defined_flows)

    if undefined_inputs:
        # unknown_input = sum(outputs) - sum(other inputs)
        return BalanceSolution(undefined_inputs[0].id, sum_outputs - sum_inputs)

    # unknown_output = sum(inputs) - sum(other outputs)
    return BalanceSolution(undefined_outputs[0].id, sum_inputs - sum_outputs)


def solve_iteration(
    nodes: Sequence[schemas.NodeSpec],
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> Tuple[FlowMap, bool]:
    """One pass over ``nodes`` in order.

    Values solved at a node are visible to the nodes after it in the same
    pass.  Returns the new map and whether anything was added.
    """
    current: FlowMap = dict(defined_flows)
    changed = False
    for node in nodes:
        solution = solve_node_balance(node, flows, current)
        if solution is None:
            continue
        current[solution.flow_id] = solution.value
        changed = True
        logger.debug(
            "Node '{}': {} = {}", node.id, solution.flow_id, solution.value,
        )
    return current, changed


def solve_iteratively(
    nodes: Sequence[schemas.NodeSpec],
    flows: Sequence[schemas.FlowSpec],
    initial_defined_flows: Mapping[str, Optional[float]],
    max_iterations: int,
) -> FlowMap:
    """Repeat solve_iteration until a fixed point or ``max_iterations`` passes.

    Completeness is not checked here; whatever is known when the loop ends
    is returned.
    """
    current: FlowMap = dict(initial_defined_flows)
    for iteration in range(1, max_iterations + 1):
        current, changed = solve_iteration(nodes, flows, current)
        if not changed:
            logger.debug("Balance propagation converged after {} pass(es)", iteration)
            return current
    logger.debug("Balance propagation stopped at the {} iteration limit", max_iterations)
    return current
