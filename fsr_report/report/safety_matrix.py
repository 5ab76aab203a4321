"""
Hazard / risk assessment table.

Safety form answers arrive as flat records whose keys encode both the hazard
and the question, e.g. ``"Electrical & Mechanical - Level of Risk"``. All the
parsing of that encoding lives in ``parse_hazard_matrix``; rendering only ever
sees the resulting hazard -> question -> answer mapping.
"""

import html
from typing import Any, Dict, List, Optional

from fsr_report.common.error_handling import InputContractError

LEVEL_OF_RISK = "Level of Risk"
CAN_PROCEED = "Can work proceed safely?"
SAFETY_MEASURES = "Detail safety measures put in place?"

QUESTION_SUFFIXES = (LEVEL_OF_RISK, CAN_PROCEED, SAFETY_MEASURES)
KEY_SEPARATOR = " - "

HazardMatrix = Dict[str, Dict[str, str]]

_HEADER = (
    '<div style="display: flex; font-weight: 700; border-bottom: 1px solid black;" class="assessmentHeader">'
    '<div style="text-align: left; width: 32%;">Hazard</div>'
    '<div style="text-align: center; width: 18%;">Level of Risk</div>'
    '<div style="text-align: center; width: 18%;">Can work proceed safely?</div>'
    '<div style="text-align: left; width: 32%;">Safety measures put in place?</div>'
    "</div>"
)


def split_hazard_key(key: str) -> Optional[tuple]:
    """
    Split an encoded form key into (hazard, question).

    Matching is by known suffix, so hazard names may themselves contain
    " - " or "&". Returns None for keys that carry no known suffix or an
    empty hazard name.

    Example:
        >>> split_hazard_key("Working at Height - Ladders - Level of Risk")
        ("Working at Height - Ladders", "Level of Risk")
    """
    if not isinstance(key, str):
        return None
    for suffix in QUESTION_SUFFIXES:
        marker = f"{KEY_SEPARATOR}{suffix}"
        if key.endswith(marker):
            hazard = key[: -len(marker)].strip()
            return (hazard, suffix) if hazard else None
    return None


def parse_hazard_matrix(records: Optional[List[Any]]) -> HazardMatrix:
    """
    Build hazard -> question -> answer from flat form records.

    Hazards keep first-appearance order across all records. When two records
    answer the same question for the same hazard, the first answer is kept.

    Raises:
        InputContractError: records is neither None nor a list
    """
    if records is None:
        return {}
    if not isinstance(records, list):
        raise InputContractError(
            f"Safety form data must be a list of records, got {type(records).__name__}"
        )

    matrix: HazardMatrix = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        for key, answer in record.items():
            parsed = split_hazard_key(key)
            if parsed is None:
                continue
            hazard, question = parsed
            answers = matrix.setdefault(hazard, {})
            if question not in answers:
                answers[question] = "" if answer is None else str(answer)
    return matrix


def _answer_cell(style: str, value: str) -> str:
    content = html.escape(value) if value else "<br />"
    return f'<div style="{style}" class="assessmentValue">{content}</div>'


def render_hazard_row(hazard: str, answers: Dict[str, str]) -> str:
    return (
        '<div style="display: flex; border-bottom: 1px solid black;" class="assessmentRow">'
        f'<div style="text-align: left; width: 32%;" class="assessmentItem">{html.escape(hazard)}</div>'
        f"{_answer_cell('text-align: center; width: 18%;', answers.get(LEVEL_OF_RISK, ''))}"
        f"{_answer_cell('text-align: center; width: 18%;', answers.get(CAN_PROCEED, ''))}"
        f"{_answer_cell('text-align: left; width: 32%;', answers.get(SAFETY_MEASURES, ''))}"
        "</div>"
    )


def build_safety_table(form_responses: Optional[List[Any]]) -> str:
    """
    Render the hazard matrix.

    Absent or empty input yields the header-only table.

    Raises:
        InputContractError: form_responses is not a list
    """
    matrix = parse_hazard_matrix(form_responses)
    rows = "".join(render_hazard_row(hazard, answers) for hazard, answers in matrix.items())
    return f'<div class="assessmentTable">{_HEADER}{rows}</div>'
