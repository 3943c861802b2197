from __future__ import annotations

from datetime import datetime
from typing import Dict

from . import schemas
from .adjust_operation import run_adjust
from .export_csv import export_flow_table_csv, export_violations_csv
from .flow_solver import solve
from .formatter import format_result
from .sensitivity import run_sensitivity


class SolverService:
    def __init__(self) -> None:
        self._scenario_store: Dict[str, schemas.SankeyConfig] = {}
        self._counter = 0

    def solve(self, config: schemas.SankeyConfig) -> schemas.SolveResult:
        return solve(config)

    def format(self, config: schemas.SankeyConfig) -> str:
        return format_result(self.solve(config))

    def export_csv(self, config: schemas.SankeyConfig) -> str:
        return export_flow_table_csv(config, self.solve(config))

    def export_violations_csv(self, config: schemas.SankeyConfig) -> str:
        return export_violations_csv(self.solve(config))

    def create_scenario(self, scenario: schemas.ScenarioCreateRequest) -> str:
        self._counter += 1
        scenario_id = f"scn-{int(datetime.utcnow().timestamp())}-{self._counter}"
        self._scenario_store[scenario_id] = scenario.config.model_copy(deep=True)
        return scenario_id

    def run_scenario(self, scenario_id: str) -> schemas.SolveResult:
        config = self._scenario_store.get(scenario_id)
        if not config:
            raise KeyError(f"Scenario {scenario_id} not found")
        return self.solve(config)

    def sensitivity(self, request: schemas.SensitivityRequest) -> schemas.SensitivityResult:
        return run_sensitivity(request)

    def adjust(self, request: schemas.AdjustRequest) -> schemas.AdjustResult:
        return run_adjust(request)
