from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NodeSpec(BaseModel):
    id: str
    label: Optional[str] = None


class FlowSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str = Field(alias="from")
    target: str = Field(alias="to")


class SankeyConfig(BaseModel):
    name: str = Field(default="sankey")
    parameters: Dict[str, float] = Field(default_factory=dict)
    nodes: List[NodeSpec] = Field(default_factory=list)
    flows: List[FlowSpec] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # YAML keys left empty (``constraints:``) load as None
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class BalanceViolation(BaseModel):
    node: str
    sum_inputs: float
    sum_outputs: float
    difference: float


# ---------------------------------------------------------------------------
# Solve results
# ---------------------------------------------------------------------------


class SolvedResult(BaseModel):
    status: Literal["solved"] = "solved"
    success: bool = True
    flows: Dict[str, float] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class UnderdeterminedResult(BaseModel):
    status: Literal["underdetermined"] = "underdetermined"
    success: bool = False
    error: str = "Underdetermined system"
    defined_flows: Dict[str, float] = Field(default_factory=dict)
    undetermined_flows: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ContradictoryResult(BaseModel):
    status: Literal["contradictory"] = "contradictory"
    success: bool = False
    error: str = "Contradictory constraints"
    balance_errors: List[BalanceViolation] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class EvaluationErrorResult(BaseModel):
    status: Literal["error"] = "error"
    success: bool = False
    error: str
    warnings: List[str] = Field(default_factory=list)


SolveResult = Annotated[
    Union[SolvedResult, UnderdeterminedResult, ContradictoryResult, EvaluationErrorResult],
    Field(discriminator="status"),
]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class ScenarioCreateRequest(BaseModel):
    name: str
    config: SankeyConfig
    description: Optional[str] = None


class ScenarioRunResponse(BaseModel):
    scenario_id: str
    result: SolveResult


# ---------------------------------------------------------------------------
# Sensitivity / Adjust
# ---------------------------------------------------------------------------


class SensitivityRequest(BaseModel):
    config: SankeyConfig
    parameter: str
    value_min: float
    value_max: float
    n_points: int = Field(default=10)
    output_flows: List[str] = Field(default_factory=list)


class SensitivityResult(BaseModel):
    parameter_values: List[float]
    results: Dict[str, List[Optional[float]]]
    statuses: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class AdjustRequest(BaseModel):
    config: SankeyConfig
    parameter: str
    value_min: float
    value_max: float
    target_flow: str
    target_value: float
    tolerance: float = 1e-6
    max_iterations: int = 50


class AdjustResult(BaseModel):
    converged: bool
    parameter_value: float
    result: SolveResult
    warnings: List[str] = Field(default_factory=list)
