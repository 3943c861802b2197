"""
Sensitivity analysis: parameter sweep runner.

Sweeps a single parameter across N values, re-solves the network at each
point, and collects the requested flow values for charting.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger

from . import schemas
from .flow_solver import flow_value, solve


def run_sensitivity(
    request: schemas.SensitivityRequest,
) -> schemas.SensitivityResult:
    """
    Sweep a parameter and collect output flow values.

    `parameter` takes `n_points` linearly spaced values between `value_min`
    and `value_max`.  At each point the network is re-solved and
    `output_flows` are read from the solved (or partially solved) map.
    """
    warnings: List[str] = []

    n = max(request.n_points, 2)
    param_values = [
        request.value_min + i * (request.value_max - request.value_min) / (n - 1)
        for i in range(n)
    ]

    # flow id -> list of values, one per point
    results: Dict[str, List[Optional[float]]] = {
        flow_id: [] for flow_id in request.output_flows
    }
    statuses: List[str] = []

    if request.parameter not in request.config.parameters:
        warnings.append(f"Parameter '{request.parameter}' not found in configuration")
        for flow_id in request.output_flows:
            results[flow_id] = [None] * n
        return schemas.SensitivityResult(
            parameter_values=param_values,
            results=results,
            statuses=["error"] * n,
            warnings=warnings,
        )

    for idx, val in enumerate(param_values):
        # Fresh copy so overrides never accumulate
        config = request.config.model_copy(deep=True)
        config.parameters[request.parameter] = val

        result = solve(config)
        statuses.append(result.status)

        if isinstance(result, (schemas.ContradictoryResult, schemas.EvaluationErrorResult)):
            warnings.append(f"Point {idx} ({request.parameter}={val:.4g}): {result.error}")
            logger.debug("Sensitivity point {} not solved: {}", idx, result.error)

        for flow_id in request.output_flows:
            results[flow_id].append(flow_value(result, flow_id))

    return schemas.SensitivityResult(
        parameter_values=param_values,
        results=results,
        statuses=statuses,
        warnings=warnings,
    )
