"""
CSV export of solved flow values and balance violations.
"""

from __future__ import annotations

import csv
import io

from . import schemas
from .flow_solver import flow_value


def export_flow_table_csv(
    config: schemas.SankeyConfig,
    result: schemas.SolveResult,
) -> str:
    """
    One row per topology flow, in topology order.

    Flows without a value in ``result`` get an empty Value cell.
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Flow", "From", "To", "Value"])
    for flow in config.flows:
        writer.writerow([
            flow.id,
            flow.source,
            flow.target,
            _fmt(flow_value(result, flow.id)),
        ])

    return output.getvalue()


def export_violations_csv(result: schemas.SolveResult) -> str:
    if not isinstance(result, schemas.ContradictoryResult):
        return ""

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Node", "Inputs", "Outputs", "Difference"])
    for v in result.balance_errors:
        writer.writerow([v.node, _fmt(v.sum_inputs), _fmt(v.sum_outputs), _fmt(v.difference)])

    return output.getvalue()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(v, decimals: int = 6) -> str:
    if v is None:
        return ""
    if isinstance(v, float):
        return f"{v:.{decimals}f}"
    return str(v)
