"""
Parts issued / parts returned ledgers.

The report templates reserve a fixed block for each ledger, so every bucket
is rendered to a fixed number of rows regardless of how many movements the
call actually recorded. Missing data becomes empty cells, never fewer rows.
"""

import html
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from fsr_report.common.error_handling import InvalidMovementError
from fsr_report.report.types import MaterialMovement

ISSUED = "issued"
RETURNED = "returned"

_DIRECTION_ALIASES = {
    "issued": ISSUED,
    "issue": ISSUED,
    "returned": RETURNED,
    "return": RETURNED,
}

_ROW_STYLE = "display: flex; border-bottom: 1px solid black; min-height: 1.2rem;"
_NUMBER_CELL_STYLE = "width: 5.33%; border-right: 1px solid black; text-align: center;"
_TEXT_CELL_STYLE = (
    "width: 13.6%; border-right: 1px solid black; text-align: center; padding-left: 0.4rem; "
    "text-overflow: ellipsis; display: -webkit-box; -webkit-line-clamp: 1; "
    "-webkit-box-orient: vertical; overflow: hidden;"
)
_DESCRIPTION_CELL_STYLE = (
    "width: 40%; border-right: 1px solid black; text-align: left; padding-left: 0.4rem; "
    "text-overflow: ellipsis; display: -webkit-box; -webkit-line-clamp: 1; "
    "-webkit-box-orient: vertical; overflow: hidden;"
)
_QTY_CELL_STYLE = "width: 13.6%; text-align: center;"


@dataclass(frozen=True)
class PartTables:
    """Row markup for both ledgers."""

    issued_rows: Tuple[str, ...]
    returned_rows: Tuple[str, ...]

    @property
    def issued_html(self) -> str:
        return "".join(self.issued_rows)

    @property
    def returned_html(self) -> str:
        return "".join(self.returned_rows)


def classify_movement(movement: MaterialMovement) -> str:
    """
    Resolve a movement's direction to ISSUED or RETURNED.

    Raises:
        InvalidMovementError: direction missing or not recognized
    """
    raw = movement.part_activity
    direction = _DIRECTION_ALIASES.get(raw.strip().lower()) if raw else None
    if direction is None:
        raise InvalidMovementError(
            f"Unrecognized part activity {raw!r} for part {movement.part_code or '<unknown>'}"
        )
    return direction


def _cell(style: str, value: Optional[str]) -> str:
    text = html.escape(value) if value else ""
    return f'<div style="{style}">{text}</div>'


def render_part_row(number: Optional[int], movement: Optional[MaterialMovement]) -> str:
    """Render one ledger row; a None movement yields an all-empty padding row."""
    if movement is None:
        values = (None, None, None, None)
    else:
        values = (movement.part_code, movement.part_description, movement.part_serialno, movement.part_qty)
    code, description, serial, qty = values
    return (
        f'<div style="{_ROW_STYLE}">'
        f"{_cell(_NUMBER_CELL_STYLE, str(number) if number is not None else None)}"
        f"{_cell(_TEXT_CELL_STYLE, code)}"
        f"{_cell(_DESCRIPTION_CELL_STYLE, description)}"
        f"{_cell(_TEXT_CELL_STYLE, serial)}"
        f"{_cell(_QTY_CELL_STYLE, qty)}"
        "</div>"
    )


def _render_bucket(movements: List[MaterialMovement], min_rows: int, limited: bool) -> Tuple[str, ...]:
    if limited:
        movements = movements[:min_rows]
        total = min_rows
    else:
        total = max(min_rows, len(movements))

    rows = [render_part_row(index, movement) for index, movement in enumerate(movements, start=1)]
    rows.extend(render_part_row(None, None) for _ in range(total - len(rows)))
    return tuple(rows)


def build_part_tables(
    materials: Optional[Iterable[MaterialMovement]],
    min_rows: int,
    limited: bool = False,
) -> PartTables:
    """
    Build the issued and returned ledgers.

    Args:
        materials: Movements in insertion order (None means no movements)
        min_rows: Minimum rows per ledger; negative or non-numeric values count as 0
        limited: Truncate each ledger to exactly min_rows (single-page layouts)

    Returns:
        PartTables with max(min_rows, count) rows per ledger, or exactly
        min_rows when limited

    Raises:
        InvalidMovementError: a movement has no recognizable direction
    """
    try:
        min_rows = max(int(min_rows), 0)
    except (TypeError, ValueError):
        min_rows = 0
    buckets = {ISSUED: [], RETURNED: []}
    for movement in materials or ():
        buckets[classify_movement(movement)].append(movement)

    return PartTables(
        issued_rows=_render_bucket(buckets[ISSUED], min_rows, limited),
        returned_rows=_render_bucket(buckets[RETURNED], min_rows, limited),
    )
