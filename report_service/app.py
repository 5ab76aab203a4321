"""
Report Service - FastAPI application for field service reports.

Endpoints:
    POST /notification/report  render, store and reference a report
    GET  /report/pdf           download a stored report
    GET  /health               configuration and template status
"""

import json
from datetime import datetime
from io import BytesIO
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from fsr_report import __version__
from fsr_report.common.config import ReportSettings, get_settings, validate_config_on_startup
from fsr_report.common.error_handling import ErrorEnvelope
from fsr_report.common.logger import get_logger, setup_logging
from fsr_report.report.render_engine import RenderEngine
from fsr_report.report.service import ReportService
from fsr_report.report.storage import build_storage_gateway
from fsr_report.report.templates import TemplateLoader

settings = get_settings()
setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__, debug_mode=settings.debug_mode)

app = FastAPI(
    title="FSR Report Service",
    version=__version__,
    description="Field service report generation using Playwright/Chromium"
)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

REPORT_ENDPOINT = "notification.report"
PDF_ENDPOINT = "report.getpdf"

_service: Optional[ReportService] = None


def build_report_service(config: ReportSettings) -> ReportService:
    """Wire templates, storage and the render engine from one settings object."""
    templates = TemplateLoader(config.template_dir)
    storage = build_storage_gateway(config)
    engine = RenderEngine(config)
    return ReportService(config, templates, storage, engine)


def get_report_service() -> ReportService:
    """Dependency returning the process-wide service."""
    global _service
    if _service is None:
        _service = build_report_service(settings)
    return _service


# ============================================================================
# Startup Event - Validate configuration and templates
# ============================================================================

@app.on_event("startup")
async def initialize_report_service():
    """
    Validate configuration and load templates before serving traffic.

    Hosted deployments without storage credentials fail here rather than on
    the first request.
    """
    logger.info("Report service starting - validating configuration...")
    validate_config_on_startup(settings)

    service = get_report_service()
    for name, valid in service.templates.validate_all_templates().items():
        if valid:
            logger.info(f"Template ready: {name}")
        else:
            logger.warning(f"Template {name} is missing required elements")


# ============================================================================
# Response Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    stage: str
    environment: str
    s3_configured: bool
    templates_loaded: List[str]


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check(service: ReportService = Depends(get_report_service)) -> HealthResponse:
    """Health check endpoint for container orchestration."""
    summary = service.settings.summary()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        stage=summary["stage"],
        environment=summary["environment"],
        s3_configured=summary["s3_configured"],
        templates_loaded=service.templates.template_names,
    )


@app.post("/notification/report")
async def generate_report(request: Request, service: ReportService = Depends(get_report_service)):
    """
    Render a field service report and store it.

    Returns:
        200 with {success, fileName, path, storageRef}
        400 when the body is not JSON
        500 with {success: false, error, timestamp} for any other failure
    """
    trace = service.settings.debug_mode
    user_agent = request.headers.get("user-agent", "")
    raw_body = await request.body()
    if trace:
        logger.log_request_start(REPORT_ENDPOINT, "POST", raw_body.decode("utf-8", "replace"), user_agent)

    try:
        payload = json.loads(raw_body)
    except ValueError as e:
        logger.warning(f"Rejected unparseable report request: {e}")
        envelope = ErrorEnvelope(error=f"Request body is not valid JSON: {e}", kind="input")
        result = envelope.to_dict()
        status_code = 400
    else:
        result = await service.generate(payload)
        status_code = 200 if result.get("success") else 500

    if trace:
        logger.log_response(REPORT_ENDPOINT, {"statusCode": status_code, "body": result}, user_agent)
    return JSONResponse(status_code=status_code, content=result)


@app.get("/report/pdf")
async def get_report_pdf(
    request: Request,
    call_no: Optional[str] = None,
    service: ReportService = Depends(get_report_service),
):
    """
    Download the stored report for a call.

    Failures map to 400 (no call_no), 404 (not stored) or 500 (unexpected
    error).
    """
    trace = service.settings.debug_mode
    user_agent = request.headers.get("user-agent", "")
    if trace:
        logger.log_request_start(PDF_ENDPOINT, "GET", dict(request.query_params), user_agent)

    def error_response(status_code: int, error: str) -> JSONResponse:
        if trace:
            logger.log_response(PDF_ENDPOINT, {"statusCode": status_code, "body": {"error": error}}, user_agent)
        return JSONResponse(status_code=status_code, content={"error": error})

    if not call_no:
        return error_response(400, "call_no parameter is required")

    try:
        content = await service.retrieve(call_no)
    except Exception as e:
        logger.exception(f"PDF retrieval failed: {e}")
        return error_response(500, str(e))

    if not content:
        return error_response(404, "PDF not found")

    logger.info(f"PDF retrieved for call {call_no} ({len(content)} bytes)")
    if trace:
        logger.log_response(PDF_ENDPOINT, {"statusCode": 200, "contentLength": len(content)}, user_agent)
    return StreamingResponse(
        BytesIO(content),
        media_type='application/pdf',
        headers={
            'Content-Disposition': f'attachment; filename="{call_no}.pdf"'
        }
    )
