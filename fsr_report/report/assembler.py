"""
Document assembly.

Turns a validated ReportRequest into a fully bound HTML document:

1. Resolve the report category to a template rule.
2. Build the HTML fragments (part ledgers, safety matrix, signature block).
3. Compute the element-id bindings and apply them to the template DOM.

Assembly is a pure function of the request, the loaded templates and the
settings. Nothing here reads the clock, so assembling the same request twice
yields byte-identical HTML.
"""

import html
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from fsr_report.common.config import ReportSettings
from fsr_report.common.error_handling import TemplateResolutionError
from fsr_report.common.logger import get_logger
from fsr_report.report.part_tables import PartTables, build_part_tables
from fsr_report.report.safety_matrix import build_safety_table
from fsr_report.report.signatures import SignatureBlock, build_signature_block
from fsr_report.report.templates import TemplateLoader
from fsr_report.report.types import ActivityLogEntry, ReportCategory, ReportRequest

logger = get_logger(__name__)


@dataclass(frozen=True)
class TemplateRule:
    """How a report category is laid out."""

    template_name: str
    include_safety_matrix: bool = True


CATEGORY_RULES: Dict[ReportCategory, TemplateRule] = {
    ReportCategory.DPG: TemplateRule("dpg"),
    ReportCategory.THERMAL: TemplateRule("thermal"),
    ReportCategory.AIR: TemplateRule("thermal"),
    ReportCategory.POWER: TemplateRule("thermal"),
    ReportCategory.DCPS: TemplateRule("dcps", include_safety_matrix=False),
}

# Activity buckets: element id -> label fragment matched against activity_type_value
ACTIVITY_BUCKETS: Tuple[Tuple[str, str], ...] = (
    ("observation", "observation"),
    ("workDone", "work done"),
    ("recommendation", "recommendation"),
)

DEFAULT_SERVICE_BILLABLE = "Yes"


@dataclass(frozen=True)
class Binding:
    """One element-id assignment; is_html selects markup vs text content."""

    element_id: str
    value: str
    is_html: bool = False

    def to_dict(self) -> dict:
        return {"id": self.element_id, "value": self.value, "html": self.is_html}


@dataclass(frozen=True)
class ReportFragments:
    """Pre-rendered HTML pieces for one request."""

    part_tables: PartTables
    safety_html: Optional[str]
    signatures: SignatureBlock


@dataclass(frozen=True)
class RenderedDocument:
    """A bound document ready for the render engine."""

    template_name: str
    html: str
    bindings: Tuple[Binding, ...]

    def binding_payload(self) -> List[dict]:
        return [binding.to_dict() for binding in self.bindings]


def resolve_category(product_group: str) -> Tuple[ReportCategory, TemplateRule]:
    """
    Map a request's product group to its template rule.

    Raises:
        TemplateResolutionError: unknown product group
    """
    try:
        category = ReportCategory((product_group or "").strip().lower())
    except ValueError:
        raise TemplateResolutionError(f"Invalid product group: {product_group}") from None
    return category, CATEGORY_RULES[category]


def format_address(*lines: Optional[str]) -> str:
    """Join non-blank address lines with ", "."""
    return ", ".join(line.strip() for line in lines if line and line.strip())


def bucket_activities(entries: Sequence[ActivityLogEntry]) -> Dict[str, List[ActivityLogEntry]]:
    """
    Place activity entries into the observation / work done / recommendation
    buckets, keeping input order.

    Labels match case-insensitively by substring. Entries without notes or
    with an unknown label are dropped.
    """
    buckets: Dict[str, List[ActivityLogEntry]] = {element_id: [] for element_id, _ in ACTIVITY_BUCKETS}
    for entry in entries:
        if not entry.activity_notes or not entry.activity_notes.strip():
            continue
        label = (entry.activity_type_value or "").lower()
        for element_id, fragment in ACTIVITY_BUCKETS:
            if fragment in label:
                buckets[element_id].append(entry)
                break
    return buckets


def render_activity_entries(entries: Sequence[ActivityLogEntry]) -> str:
    parts = []
    for entry in entries:
        date = f'<span class="activityDate">{html.escape(entry.activity_date)}</span>' if entry.activity_date else ""
        parts.append(f'<div class="activityEntry">{date}{html.escape(entry.activity_notes)}</div>')
    return "".join(parts)


class DocumentAssembler:
    """
    Builds fragments and binds them, plus the request's scalar fields, into
    the category's template.
    """

    def __init__(self, templates: TemplateLoader, settings: ReportSettings):
        self.templates = templates
        self.settings = settings

    def build_fragments(self, request: ReportRequest) -> ReportFragments:
        """
        Raises:
            TemplateResolutionError: unknown product group
            InvalidMovementError: a material movement has no usable direction
            InputContractError: safety form data is not a list
        """
        _, rule = resolve_category(request.product_group)

        part_tables = build_part_tables(request.material, self.settings.min_part_rows, limited=False)
        safety_html = build_safety_table(request.form_data) if rule.include_safety_matrix else None
        signatures = build_signature_block(request)

        return ReportFragments(part_tables=part_tables, safety_html=safety_html, signatures=signatures)

    def bindings_for(self, request: ReportRequest, fragments: ReportFragments) -> Tuple[Binding, ...]:
        text_fields = (
            ("customerName", request.customer_name),
            ("customerAddress", format_address(
                request.customer_address1, request.customer_address2, request.customer_address3
            )),
            ("contactPerson", request.contact),
            ("contactNumber", request.contact_no),
            ("fsrNumber", request.call_no),
            ("fsrDateAndTime", request.completion_date or request.call_actual_end_date),
            ("serviceType", request.servicetype),
            ("callType", request.call_type),
            ("callLogDate", request.call_log_date),
            ("productModel", request.product_model),
            ("productRating", request.product_rating),
            ("productSerialNo", request.product_serialno),
            ("productCoverage", request.product_coverage),
            ("problemStatement", request.problemstatement),
            ("problemCode", request.problem_code_description),
            ("resolutionCode", request.resolution_code_description),
            ("travelStartTime", request.travel_start_time),
            ("reportingDate", request.reporting_date),
            ("onSiteTime", request.on_site_time),
            ("travelTime", request.travel_time),
            ("visits", request.visits),
            ("equipmentFacetime", request.equipment_facetime_info),
            ("breakTime", request.break_time),
            ("totalTime", request.total_time),
            ("engineerName", request.engineername),
            ("engineerMobile", request.call_engineer_mobilenumber),
            ("serviceBillable", request.service_billable or DEFAULT_SERVICE_BILLABLE),
        )
        bindings = [Binding(element_id, value or "") for element_id, value in text_fields]

        activities = bucket_activities(request.workbench)
        bindings.extend(
            Binding(element_id, render_activity_entries(activities[element_id]), is_html=True)
            for element_id, _ in ACTIVITY_BUCKETS
        )

        bindings.append(Binding("partConsumed", fragments.part_tables.issued_html, is_html=True))
        bindings.append(Binding("partReturned", fragments.part_tables.returned_html, is_html=True))
        if fragments.safety_html is not None:
            bindings.append(Binding("assessment", fragments.safety_html, is_html=True))
        bindings.append(Binding("signatureHeader", fragments.signatures.header_html, is_html=True))
        bindings.append(Binding("signatureContent", fragments.signatures.content_html, is_html=True))
        return tuple(bindings)

    def assemble(self, request: ReportRequest, fragments: Optional[ReportFragments] = None) -> RenderedDocument:
        """
        Produce the bound document for a request.

        Raises:
            TemplateResolutionError: unknown product group or template not loaded
        """
        _, rule = resolve_category(request.product_group)
        template = self.templates.get_template(rule.template_name)
        if fragments is None:
            fragments = self.build_fragments(request)

        bindings = self.bindings_for(request, fragments)
        soup = BeautifulSoup(template, "html.parser")
        bound = apply_bindings(soup, bindings)
        logger.debug(
            f"Bound {bound}/{len(bindings)} elements into template {rule.template_name} "
            f"for call {request.call_no}"
        )
        return RenderedDocument(template_name=rule.template_name, html=str(soup), bindings=bindings)


def apply_bindings(soup: BeautifulSoup, bindings: Sequence[Binding]) -> int:
    """
    Apply bindings to a parsed template; ids missing from the template are
    skipped. Returns the number of elements bound.
    """
    bound = 0
    for binding in bindings:
        element = soup.find(id=binding.element_id)
        if element is None:
            continue
        element.clear()
        if binding.is_html:
            if binding.value:
                fragment = BeautifulSoup(binding.value, "html.parser")
                element.extend(list(fragment.contents))
        else:
            element.string = binding.value
        bound += 1
    return bound
