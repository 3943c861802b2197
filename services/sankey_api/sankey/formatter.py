"""
Plain-text rendering of solve results for terminals and the /solve/text
endpoint.
"""

from __future__ import annotations

import math
from typing import List, Mapping, Sequence

from . import schemas


def format_number(value: float) -> str:
    """Render 100.0 as ``100`` and 123.456 as ``123.456``."""
    if not math.isfinite(value):
        return str(value)
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_flow_list(flows: Mapping[str, float]) -> str:
    return "\n".join(f"  {flow_id}: {format_number(v)}" for flow_id, v in flows.items())


def format_balance_errors(errors: Sequence[schemas.BalanceViolation]) -> str:
    lines: List[str] = []
    for e in errors:
        lines.append(f"  Node '{e.node}':")
        lines.append(f"    Inputs: {format_number(e.sum_inputs)}")
        lines.append(f"    Outputs: {format_number(e.sum_outputs)}")
        lines.append(f"    Difference: {format_number(e.difference)}")
    return "\n".join(lines)


def format_success(result: schemas.SolvedResult) -> str:
    return "\n".join([
        "✓ System is solvable",
        "",
        "Flow values:",
        format_flow_list(result.flows),
    ])


def format_underdetermined(result: schemas.UnderdeterminedResult) -> str:
    lines = [f"✗ {result.error}"]

    if result.defined_flows:
        lines += ["", "Defined flows:", format_flow_list(result.defined_flows)]

    if result.undetermined_flows:
        lines += ["", "Undetermined flows:"]
        lines += [f"  {flow_id}" for flow_id in result.undetermined_flows]
        lines += ["", f"Need {len(result.undetermined_flows)} more constraint(s)"]

    return "\n".join(lines)


def format_contradictory(result: schemas.ContradictoryResult) -> str:
    lines = [f"✗ {result.error}"]
    if result.balance_errors:
        lines += ["", "Balance violations:", format_balance_errors(result.balance_errors)]
    return "\n".join(lines)


def format_result(result: schemas.SolveResult) -> str:
    """Render any result variant, followed by its warnings if it has some."""
    if isinstance(result, schemas.SolvedResult):
        text = format_success(result)
    elif isinstance(result, schemas.ContradictoryResult):
        text = format_contradictory(result)
    elif isinstance(result, schemas.UnderdeterminedResult):
        text = format_underdetermined(result)
    else:
        text = f"✗ {result.error}"

    if result.warnings:
        text += "\n\nWarnings:\n" + "\n".join(f"  - {w}" for w in result.warnings)
    return text
