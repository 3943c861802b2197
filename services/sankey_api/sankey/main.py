from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from . import schemas
from .solver_service import SolverService

app = FastAPI(title="Sankey Solver API", version="0.1.0")
service = SolverService()


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/solve", response_model=schemas.SolveResult)
def run_solve(config: schemas.SankeyConfig) -> schemas.SolveResult:
    return service.solve(config)


@app.post("/solve/text", response_class=PlainTextResponse)
def run_solve_text(config: schemas.SankeyConfig) -> str:
    return service.format(config)


@app.post("/export/csv", response_class=PlainTextResponse)
def export_csv(config: schemas.SankeyConfig) -> PlainTextResponse:
    return PlainTextResponse(service.export_csv(config), media_type="text/csv")


@app.post("/export/violations.csv", response_class=PlainTextResponse)
def export_violations_csv(config: schemas.SankeyConfig) -> PlainTextResponse:
    return PlainTextResponse(service.export_violations_csv(config), media_type="text/csv")


@app.post("/scenarios", response_model=dict)
def create_scenario(request: schemas.ScenarioCreateRequest) -> dict[str, str]:
    scenario_id = service.create_scenario(request)
    return {"scenario_id": scenario_id}


@app.post("/scenarios/{scenario_id}/run", response_model=schemas.ScenarioRunResponse)
def run_scenario(scenario_id: str) -> schemas.ScenarioRunResponse:
    try:
        result = service.run_scenario(scenario_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return schemas.ScenarioRunResponse(scenario_id=scenario_id, result=result)


@app.post("/sensitivity", response_model=schemas.SensitivityResult)
def run_sensitivity(request: schemas.SensitivityRequest) -> schemas.SensitivityResult:
    return service.sensitivity(request)


@app.post("/adjust", response_model=schemas.AdjustResult)
def run_adjust(request: schemas.AdjustRequest) -> schemas.AdjustResult:
    try:
        return service.adjust(request)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
