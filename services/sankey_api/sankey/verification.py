from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from . import schemas
from .balance import get_node_flows, is_defined, is_source_or_sink, sum_defined_flows


# Absorbs float accumulation error from chained arithmetic
TOLERANCE = 1e-4


def verify_node_balance(
    node: schemas.NodeSpec,
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> Optional[schemas.BalanceViolation]:
    """Check sum(inputs) == sum(outputs) at ``node`` within TOLERANCE.

    Sources, sinks and nodes with any unknown incident flow are never
    reported.
    """
    inputs, outputs = get_node_flows(node, flows)
    if is_source_or_sink(inputs, outputs):
        return None
    if not all(is_defined(f.id, defined_flows) for f in inputs + outputs):
        return None

    sum_inputs = sum_defined_flows(inputs, defined_flows)
    sum_outputs = sum_defined_flows(outputs, defined_flows)

    # nan differences fail this comparison and are reported
    if abs(sum_inputs - sum_outputs) <= TOLERANCE:
        return None

    return schemas.BalanceViolation(
        node=node.id,
        sum_inputs=sum_inputs,
        sum_outputs=sum_outputs,
        difference=sum_inputs - sum_outputs,
    )


def verify_balance(
    nodes: Sequence[schemas.NodeSpec],
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> List[schemas.BalanceViolation]:
    violations: List[schemas.BalanceViolation] = []
    for node in nodes:
        violation = verify_node_balance(node, flows, defined_flows)
        if violation is not None:
            violations.append(violation)
    return violations


def is_fully_solved(
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> bool:
    """True when every flow has a value (0 counts as a value)."""
    return all(is_defined(f.id, defined_flows) for f in flows)


def get_undetermined_flow_ids(
    flows: Sequence[schemas.FlowSpec],
    defined_flows: Mapping[str, Optional[float]],
) -> List[str]:
    return [f.id for f in flows if not is_defined(f.id, defined_flows)]
