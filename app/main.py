# app/main.py

# Standard library
from pathlib import Path
from typing import Any, Dict, Optional
from io import BytesIO
import os
import logging

# Third-party
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool

from app.schemas import AuditView, DecisionRecord, EvaluateRequest

# Local modules
from app.services.errors import InvalidInput, UnknownScenario
from app.services.evaluator import evaluate
from app.services.pdf_renderer import render_pdf_bytes
from app.services.presenter import build_audit_view, view_context
from app.services.scenario_registry import get_scenario, list_scenarios

# --- logger ---
logger = logging.getLogger("clearcause")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("CLEARCAUSE_LOG_LEVEL", "INFO").upper())

# --- absolute paths ---
APP_DIR = Path(__file__).resolve().parent                 # .../app
UI_TEMPLATES_DIR = APP_DIR / "templates" / "ui"           # .../app/templates/ui
STATIC_DIR = APP_DIR / "static"

# --- FastAPI app ---
app = FastAPI(title="Clear-Cause", version="0.1")

# --- static files ---
STATIC_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# --- template engine ---
templates = Jinja2Templates(directory=str(UI_TEMPLATES_DIR))


# ========== Helpers ==========

def _unknown_scenario_json(e: UnknownScenario) -> JSONResponse:
    logger.warning("unknown scenario: %s", e.scenario_id)
    return JSONResponse({"error": "unknown_scenario", "scenario_id": e.scenario_id}, status_code=404)


def _invalid_input_json(e: InvalidInput) -> JSONResponse:
    logger.warning("invalid input: %s", e)
    return JSONResponse({"error": "invalid_input", "fields": e.errors}, status_code=422)


@app.exception_handler(RequestValidationError)
async def _request_validation_json(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed API bodies share the InvalidInput payload shape
    fields = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body",
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    logger.warning("invalid request body: %s", fields)
    return JSONResponse({"error": "invalid_input", "fields": fields}, status_code=422)


async def _form_inputs(request: Request) -> Dict[str, Any]:
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


def _render_form(request: Request, scenario, values: Optional[Dict[str, Any]] = None,
                 errors: Optional[Dict[str, str]] = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "scenario_form.html.j2",
        {"scenario": scenario, "values": values or {}, "errors": errors or {}},
        status_code=status_code,
    )


# ========== UI routes ==========

@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    return templates.TemplateResponse(request, "index.html.j2", {"scenarios": list_scenarios()})


@app.get("/scenarios/{scenario_id}", response_class=HTMLResponse, name="scenario_form")
async def scenario_form(request: Request, scenario_id: str):
    try:
        scenario = get_scenario(scenario_id)
    except UnknownScenario:
        return HTMLResponse(f"Unknown scenario: {scenario_id}", status_code=404)
    return _render_form(request, scenario)


@app.post("/scenarios/{scenario_id}/evaluate", response_class=HTMLResponse)
async def scenario_evaluate(request: Request, scenario_id: str):
    try:
        scenario = get_scenario(scenario_id)
    except UnknownScenario:
        return HTMLResponse(f"Unknown scenario: {scenario_id}", status_code=404)
    inputs = await _form_inputs(request)
    try:
        decision = evaluate(scenario_id, inputs)
    except InvalidInput as e:
        logger.warning("invalid input: %s", e)
        errors = {err["field"]: err["message"] for err in e.errors}
        return _render_form(request, scenario, inputs, errors, status_code=422)
    audit = build_audit_view(decision, scenario.title)
    ctx = view_context(audit)
    ctx.update({"scenario": scenario, "values": inputs})
    return templates.TemplateResponse(request, "result.html.j2", ctx)


@app.post("/scenarios/{scenario_id}/audit.pdf")
async def scenario_audit_pdf(request: Request, scenario_id: str):
    try:
        scenario = get_scenario(scenario_id)
        decision = evaluate(scenario_id, await _form_inputs(request))
    except UnknownScenario as e:
        return _unknown_scenario_json(e)
    except InvalidInput as e:
        return _invalid_input_json(e)
    audit = build_audit_view(decision, scenario.title)
    try:
        pdf_bytes = await run_in_threadpool(
            render_pdf_bytes, "pdf/audit.html.j2", view_context(audit), audit.reference_id
        )
    except Exception as e:
        logger.exception("audit pdf render failed: %s", e)
        return JSONResponse({"error": "pdf_render_failed", "detail": str(e)}, status_code=500)
    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{audit.reference_id}.pdf"'},
    )


# ========== API ==========

@app.get("/api/scenarios")
async def api_scenarios():
    return JSONResponse({"items": list_scenarios()})


@app.get("/api/scenarios/{scenario_id}/fields")
async def api_scenario_fields(scenario_id: str):
    try:
        scenario = get_scenario(scenario_id)
    except UnknownScenario as e:
        return _unknown_scenario_json(e)
    return JSONResponse({
        "scenario_id": scenario.id,
        "fields": [f.model_dump(exclude_none=True) for f in scenario.fields],
    })


@app.post("/api/evaluate", response_model=DecisionRecord)
async def api_evaluate(payload: EvaluateRequest):
    try:
        return evaluate(payload.scenario_id, payload.inputs)
    except UnknownScenario as e:
        return _unknown_scenario_json(e)
    except InvalidInput as e:
        return _invalid_input_json(e)


@app.post("/api/audit", response_model=AuditView)
async def api_audit(payload: EvaluateRequest):
    try:
        scenario = get_scenario(payload.scenario_id)
        decision = evaluate(payload.scenario_id, payload.inputs)
    except UnknownScenario as e:
        return _unknown_scenario_json(e)
    except InvalidInput as e:
        return _invalid_input_json(e)
    return build_audit_view(decision, scenario.title)
