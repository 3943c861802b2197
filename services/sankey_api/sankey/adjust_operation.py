"""
Adjust (goal seek) operation.

Varies one parameter until a target flow reaches a desired value, using
Brent's method root-finding.
"""

from __future__ import annotations

from typing import List

from loguru import logger
from scipy.optimize import brentq

from . import schemas
from .flow_solver import flow_value, solve


def run_adjust(request: schemas.AdjustRequest) -> schemas.AdjustResult:
    """
    Find `parameter` in [value_min, value_max] such that
    `target_flow == target_value`.

    Raises ValueError when the parameter is unknown or when the target flow
    has no value at some evaluated point.
    """
    if request.parameter not in request.config.parameters:
        raise ValueError(f"Parameter '{request.parameter}' not found in configuration")

    warnings: List[str] = []

    def _objective(param_value: float) -> float:
        """Objective function for root-finding: actual - target."""
        result = solve(_clone_config_with_param(request.config, request.parameter, param_value))
        actual = flow_value(result, request.target_flow)
        if actual is None:
            raise ValueError(
                f"Flow '{request.target_flow}' has no value at "
                f"{request.parameter}={param_value} ({result.status})"
            )
        return actual - request.target_value

    try:
        optimal_value = brentq(
            _objective,
            request.value_min,
            request.value_max,
            xtol=request.tolerance,
            maxiter=request.max_iterations,
        )
        converged = True
    except RuntimeError as exc:
        # brentq raises RuntimeError when maxiter is exhausted
        warnings.append(f"Adjust did not converge: {exc}")
        optimal_value = (request.value_min + request.value_max) / 2.0
        converged = False
    except ValueError as exc:
        if "different signs" not in str(exc):
            raise
        warnings.append(
            f"Adjust failed: {exc}. Target may not be achievable within "
            f"[{request.value_min}, {request.value_max}]"
        )
        optimal_value = (request.value_min + request.value_max) / 2.0
        converged = False

    if converged:
        logger.info(
            "Adjust: {} = {} gives {} = {}",
            request.parameter, optimal_value, request.target_flow, request.target_value,
        )

    final = solve(_clone_config_with_param(request.config, request.parameter, optimal_value))
    return schemas.AdjustResult(
        converged=converged,
        parameter_value=optimal_value,
        result=final,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clone_config_with_param(
    config: schemas.SankeyConfig,
    param: str,
    value: float,
) -> schemas.SankeyConfig:
    """Deep-copy a config and override one parameter."""
    data = config.model_dump(by_alias=True)
    data["parameters"][param] = value
    return schemas.SankeyConfig(**data)
