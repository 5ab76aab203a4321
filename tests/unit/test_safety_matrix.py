"""
Unit tests for fsr_report/report/safety_matrix.py

Covers hazard key parsing, hazard discovery order and uniqueness, empty-cell
rendering and the shape checks on the form data.
"""

import pytest

from fsr_report.common.error_handling import InputContractError
from fsr_report.report.safety_matrix import (
    CAN_PROCEED,
    LEVEL_OF_RISK,
    SAFETY_MEASURES,
    build_safety_table,
    parse_hazard_matrix,
    render_hazard_row,
    split_hazard_key,
)


@pytest.fixture
def form_records():
    return [
        {
            "Electrical & Mechanical - Level of Risk": "High",
            "Electrical & Mechanical - Can work proceed safely?": "Yes",
            "Electrical & Mechanical - Detail safety measures put in place?": "LOTO applied",
            "Working at Height - Level of Risk": "Low",
        },
        {
            "Working at Height - Can work proceed safely?": "Yes",
            "Confined Space - Level of Risk": "Medium",
            "technician_notes": "unrelated field",
        },
    ]


class TestSplitHazardKey:
    """Tests for split_hazard_key."""

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("Noise - Level of Risk", ("Noise", LEVEL_OF_RISK)),
            ("Noise - Can work proceed safely?", ("Noise", CAN_PROCEED)),
            ("Noise - Detail safety measures put in place?", ("Noise", SAFETY_MEASURES)),
            ("Working at Height - Ladders - Level of Risk", ("Working at Height - Ladders", LEVEL_OF_RISK)),
            ("Electrical & Mechanical - Level of Risk", ("Electrical & Mechanical", LEVEL_OF_RISK)),
        ],
    )
    def test_known_suffixes(self, key, expected):
        assert split_hazard_key(key) == expected

    @pytest.mark.parametrize("key", ["Noise", "Noise - Severity", " - Level of Risk", "Level of Risk", 42])
    def test_malformed_keys(self, key):
        assert split_hazard_key(key) is None


class TestParseHazardMatrix:
    """Tests for parse_hazard_matrix."""

    def test_none_is_empty(self):
        assert parse_hazard_matrix(None) == {}

    def test_non_list_raises(self):
        with pytest.raises(InputContractError):
            parse_hazard_matrix({"Noise - Level of Risk": "Low"})

    def test_first_appearance_order_across_records(self, form_records):
        matrix = parse_hazard_matrix(form_records)

        assert list(matrix) == ["Electrical & Mechanical", "Working at Height", "Confined Space"]

    def test_answers_merge_across_records(self, form_records):
        matrix = parse_hazard_matrix(form_records)

        assert matrix["Working at Height"] == {LEVEL_OF_RISK: "Low", CAN_PROCEED: "Yes"}

    def test_first_answer_wins(self):
        matrix = parse_hazard_matrix([
            {"Noise - Level of Risk": "Low"},
            {"Noise - Level of Risk": "High"},
        ])

        assert matrix == {"Noise": {LEVEL_OF_RISK: "Low"}}

    def test_non_dict_records_ignored(self):
        matrix = parse_hazard_matrix(["junk", None, {"Noise - Level of Risk": "Low"}])

        assert list(matrix) == ["Noise"]


class TestBuildSafetyTable:
    """Tests for build_safety_table."""

    @pytest.mark.parametrize("records", [None, []])
    def test_absent_data_yields_header_only(self, records):
        table = build_safety_table(records)

        assert "Hazard" in table
        assert "Level of Risk" in table
        assert "Can work proceed safely?" in table
        assert "Safety measures put in place?" in table
        assert "assessmentItem" not in table

    def test_non_list_raises(self):
        with pytest.raises(InputContractError):
            build_safety_table("Noise - Level of Risk")

    def test_each_hazard_rendered_once(self, form_records):
        table = build_safety_table(form_records)

        assert table.count('class="assessmentItem"') == 3
        assert table.count("Electrical &amp; Mechanical") == 1

    def test_missing_answers_render_line_breaks(self, form_records):
        table = build_safety_table(form_records)

        # Confined Space is the last row and only has a risk level
        confined_row = table[table.index("Confined Space"):]
        assert "Medium" in confined_row
        assert confined_row.count("<br />") == 2

    def test_hazard_cell_width(self):
        row = render_hazard_row("Noise", {})

        assert 'style="text-align: left; width: 32%;" class="assessmentItem"' in row
        assert row.count("<br />") == 3

    def test_answers_are_escaped(self):
        row = render_hazard_row("Noise", {SAFETY_MEASURES: "<script>alert(1)</script>"})

        assert "<script>" not in row
        assert "&lt;script&gt;" in row
