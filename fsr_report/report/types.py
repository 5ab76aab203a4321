"""
Canonical request and artifact types for report generation.

Incoming service-call payloads are loosely shaped: numbers arrive where
strings are expected, nested objects arrive JSON-encoded, and optional
sections are missing or null. These models normalize all of that once, at
the boundary, so the builders downstream only deal with explicit optional
fields.
"""

import json
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _stringify(value: Any) -> Any:
    """Coerce numeric scalars to strings; leave everything else to validation."""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _scalar_or_none(value: Any) -> Optional[str]:
    """Like _stringify, but lists, objects and other shapes become None."""
    value = _stringify(value)
    return value if isinstance(value, str) else None


def _object_or_none(value: Any) -> Any:
    """Optional nested sections: anything that is not an object counts as absent."""
    return value if isinstance(value, (dict, BaseModel)) else None


# Optional text field that also accepts numbers and booleans
Text = Annotated[Optional[str], BeforeValidator(_stringify)]
RequiredText = Annotated[str, BeforeValidator(_stringify)]

# Optional text inside loosely shaped sections; a malformed value reads as missing
LooseText = Annotated[Optional[str], BeforeValidator(_scalar_or_none)]


class ReportCategory(str, Enum):
    """Report category tags (the request's product group)."""

    DPG = "dpg"
    THERMAL = "thermal"
    AIR = "air"
    POWER = "power"
    DCPS = "dcps"


class MaterialMovement(BaseModel):
    """A single part issued to or returned from a service call."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    part_activity: Text = None
    part_code: Text = None
    part_description: Text = None
    part_serialno: Text = None
    part_qty: Text = None


class ActivityLogEntry(BaseModel):
    """Workbench activity: an observation, work-done note or recommendation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    activity_type_value: LooseText = None
    activity_notes: LooseText = None
    activity_date: LooseText = None


class CustomerRatings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    comment: LooseText = None


class ReportParams(BaseModel):
    """
    Customer-side payload (arrives as a JSON string in the ``params`` field).

    ``formdata`` is untyped here; the safety matrix builder checks its shape.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    formdata: Any = None
    signature: LooseText = None
    ratings: Annotated[Optional[CustomerRatings], BeforeValidator(_object_or_none)] = None


class CustomFields(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    engineer_signature: LooseText = Field(default=None, alias="engineerSignature")
    manager_signature: LooseText = Field(default=None, alias="managerSignature")


class Room(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    custom_fields: Annotated[Optional[CustomFields], BeforeValidator(_object_or_none)] = Field(
        default=None, alias="customFields"
    )


class ReportRequest(BaseModel):
    """
    One field service report request.

    Field names follow the upstream service-call payload; camelCase keys are
    exposed under snake_case attributes via aliases.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    call_no: RequiredText
    product_group: RequiredText

    # Customer / site
    customer_name: Text = None
    customer_address1: Text = None
    customer_address2: Text = None
    customer_address3: Text = None
    contact: Text = None
    contact_no: Text = None

    # Equipment
    product_model: Text = None
    product_rating: Text = None
    product_serialno: Text = None
    product_coverage: Text = None

    # Engineer
    engineername: Text = None
    call_engineer_mobilenumber: Text = None

    # Call details
    request_id: Text = Field(default=None, alias="id")
    completion_date: Text = None
    servicetype: Text = None
    call_log_date: Text = None
    call_actual_end_date: Text = None
    problemstatement: Text = None
    call_type: Text = None
    problem_code_description: Text = None
    resolution_code_description: Text = None

    # Timing
    travel_start_time: Text = None
    reporting_date: Text = None
    on_site_time: Text = None
    travel_time: Text = None
    visits: Text = None
    equipment_facetime_info: Text = None
    break_time: Text = None
    total_time: Text = None

    service_billable: Text = Field(default=None, alias="serviceBillable")

    material: List[MaterialMovement] = Field(default_factory=list)
    workbench: List[ActivityLogEntry] = Field(default_factory=list)
    params: Optional[ReportParams] = None

    engineer_signature: Text = Field(default=None, alias="engineerSignature")
    manager_signature: Text = Field(default=None, alias="managerSignature")
    room: Annotated[Optional[Room], BeforeValidator(_object_or_none)] = None

    @field_validator("material", mode="before")
    @classmethod
    def default_material(cls, v: Any) -> Any:
        """Null material means no movements; any other non-list is rejected by validation."""
        return [] if v is None else v

    @field_validator("workbench", mode="before")
    @classmethod
    def tolerate_workbench(cls, v: Any) -> List[Any]:
        """Non-list activity input counts as zero entries; non-object entries are dropped."""
        if not isinstance(v, list):
            return []
        return [entry for entry in v if isinstance(entry, dict)]

    @field_validator("params", mode="before")
    @classmethod
    def decode_params(cls, v: Any) -> Any:
        """The customer payload usually arrives JSON-encoded; a non-object decodes to None."""
        if isinstance(v, str):
            if not v.strip():
                return None
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"params is not valid JSON: {e.msg}")
        return _object_or_none(v)

    @property
    def form_data(self) -> Any:
        """Safety assessment records, if any."""
        return self.params.formdata if self.params else None


@dataclass(frozen=True)
class PdfArtifact:
    """Rendered PDF bytes plus their canonical storage location."""

    content: bytes
    file_name: str
    path: str

    @staticmethod
    def location_for(call_no: str, prefix: str = "fsr", year: Optional[int] = None):
        """
        Canonical (file_name, path) for a call.

        Example:
            >>> PdfArtifact.location_for("TEST001", "fsr", 2026)
            ("test001.pdf", "fsr/2026")
        """
        if year is None:
            year = date.today().year
        file_name = f"{call_no.lower()}.pdf"
        path = f"{prefix}/{year}" if prefix else str(year)
        return file_name, path

    @classmethod
    def for_call(
        cls,
        call_no: str,
        content: bytes,
        prefix: str = "fsr",
        year: Optional[int] = None,
    ) -> "PdfArtifact":
        file_name, path = cls.location_for(call_no, prefix, year)
        return cls(content=content, file_name=file_name, path=path)

    @property
    def key(self) -> str:
        """Full object key."""
        return f"{self.path}/{self.file_name}"
