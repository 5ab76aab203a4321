"""
Report Service - generate and retrieve orchestration.

Ties the pieces together for one request:

    payload -> validation -> assembly -> render -> storage -> response envelope

Every failure is converted into an ErrorEnvelope; callers never see a stack
trace. Storage problems after a successful render are logged and do not fail
the request.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from fsr_report.common.config import ReportSettings
from fsr_report.common.error_handling import (
    ErrorEnvelope,
    InputContractError,
    ReportError,
    StorageError,
    validate_required_params,
)
from fsr_report.common.logger import ReportLogger, get_logger
from fsr_report.report.assembler import DocumentAssembler
from fsr_report.report.render_engine import RenderEngine
from fsr_report.report.storage import StorageGateway, upload_metadata
from fsr_report.report.templates import TemplateLoader
from fsr_report.report.types import PdfArtifact, ReportRequest

logger = get_logger(__name__)

REQUIRED_PARAMS = ("call_no", "product_group")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_payload(payload: Any) -> Dict[str, Any]:
    """
    Accept a dict or a JSON document (str/bytes).

    Raises:
        InputContractError: body is not JSON or not an object
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise InputContractError(f"Request body is not valid JSON: {e.msg}") from e
    if not isinstance(payload, dict):
        raise InputContractError("Request body must be a JSON object")
    return payload


def describe_validation_error(error: ValidationError) -> str:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "request"
        details.append(f"{location}: {item.get('msg')}")
    return f"Invalid request: {'; '.join(details)}"


class ReportService:
    """Generate / retrieve entry point used by the HTTP layer."""

    def __init__(
        self,
        settings: ReportSettings,
        templates: TemplateLoader,
        storage: Optional[StorageGateway],
        engine: RenderEngine,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.settings = settings
        self.templates = templates
        self.storage = storage
        self.engine = engine
        self.assembler = DocumentAssembler(templates, settings)
        self._clock = clock

    def validate_request(self, payload: Any) -> ReportRequest:
        """
        Raises:
            InputContractError: unparseable body, missing call_no/product_group,
                or fields of the wrong shape
        """
        params = parse_payload(payload)
        validate_required_params(params, REQUIRED_PARAMS)
        try:
            return ReportRequest.model_validate(params)
        except ValidationError as e:
            raise InputContractError(describe_validation_error(e)) from e

    async def generate(self, payload: Any) -> Dict[str, Any]:
        """
        Render and store the report for one service call.

        Returns:
            {"success": True, "fileName", "path", "storageRef"} or the error
            envelope {"success": False, "error", "timestamp"}
        """
        log = logger
        try:
            request = self.validate_request(payload)
            log = logger.bind(call_no=request.call_no, product_group=request.product_group)
            log.log_pdf_generation("STARTED")

            fragments = self.assembler.build_fragments(request)
            document = self.assembler.assemble(request, fragments)
            outcome = await self.engine.render(document, call_no=request.call_no)

            generated_at = self._clock()
            artifact = PdfArtifact.for_call(
                request.call_no, outcome.content, self.settings.storage_prefix, generated_at.year
            )
            log.log_pdf_generation(
                "SUCCESS", f"{len(artifact.content)} bytes, {outcome.export_attempts} export attempt(s)"
            )

            storage_ref = await self._store(artifact, request, generated_at, log)
            return {
                "success": True,
                "fileName": artifact.file_name,
                "path": artifact.path,
                "storageRef": storage_ref,
            }
        except ReportError as e:
            log.log_pdf_generation("FAILED", str(e))
            return ErrorEnvelope.from_exception(e).to_dict()
        except Exception as e:
            log.exception(f"Unexpected error during PDF generation: {e}")
            return ErrorEnvelope.from_exception(e).to_dict()

    async def _store(
        self,
        artifact: PdfArtifact,
        request: ReportRequest,
        generated_at: datetime,
        log: ReportLogger,
    ) -> str:
        if self.storage is None:
            log.warning("S3 not configured - PDF generated but not stored")
            return ""

        metadata = upload_metadata(
            request.call_no, generated_at.isoformat().replace("+00:00", "Z"), is_checklist=False
        )
        try:
            etag = await asyncio.to_thread(self.storage.put, artifact.key, artifact.content, metadata)
        except StorageError as e:
            log.log_storage_operation("upload", artifact.key, "FAILED", str(e))
            return ""
        log.log_storage_operation("upload", artifact.key, "SUCCESS", etag)

        try:
            url = await asyncio.to_thread(self.storage.sign, artifact.key, self.settings.presigned_url_expire)
        except StorageError as e:
            log.log_storage_operation("generate-url", artifact.key, "FAILED", str(e))
            return ""
        log.log_storage_operation("generate-url", artifact.key, "SUCCESS")
        return url

    async def retrieve(self, call_no: str) -> Optional[bytes]:
        """
        Fetch the stored report for a call made this year.

        Returns None when storage is not configured or the object cannot be
        read; the reason is logged.
        """
        log = logger.bind(call_no=call_no)
        if self.storage is None:
            log.warning("S3 not configured - cannot retrieve PDF")
            return None

        key = PdfArtifact.for_call(call_no, b"", self.settings.storage_prefix, self._clock().year).key
        try:
            content = await asyncio.to_thread(self.storage.get, key)
        except StorageError as e:
            log.log_storage_operation("read", key, "FAILED", str(e))
            return None
        log.log_storage_operation("read", key, "SUCCESS", f"{len(content)} bytes")
        return content
