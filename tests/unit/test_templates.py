"""
Unit tests for fsr_report/report/templates.py
"""

import pytest

from fsr_report.common.error_handling import TemplateResolutionError
from fsr_report.report.templates import COMMON_ELEMENTS, TemplateLoader, load_templates


class TestTemplateLoader:
    """Tests for the packaged templates."""

    def test_loads_all_layouts(self, templates):
        assert sorted(templates.template_names) == ["dcps", "dpg", "thermal"]

    def test_shipped_templates_are_valid(self, templates):
        assert templates.validate_all_templates() == {"dpg": True, "thermal": True, "dcps": True}

    def test_unknown_template_lists_available(self, templates):
        with pytest.raises(TemplateResolutionError) as exc_info:
            templates.get_template("ups")

        assert "Template ups not found" in str(exc_info.value)
        assert "dpg, thermal, dcps" in str(exc_info.value)

    def test_required_elements(self):
        assert TemplateLoader.get_required_elements("dpg") == COMMON_ELEMENTS
        assert TemplateLoader.get_required_elements("thermal") == COMMON_ELEMENTS + [
            "serviceType", "observation", "workDone", "recommendation"
        ]

    def test_dcps_has_no_assessment_block(self, templates):
        assert 'id="assessment"' not in templates.get_template("dcps")
        assert 'id="assessment"' in templates.get_template("thermal")

    def test_default_directory(self):
        assert load_templates().template_names == ["dpg", "thermal", "dcps"]


class TestTemplateLoaderFromDirectory:
    """Tests against a scratch template directory."""

    def test_missing_files_are_skipped(self, tmp_path):
        (tmp_path / "dpg.html").write_text('<div id="customerName"></div>')

        loader = TemplateLoader(tmp_path)

        assert loader.template_names == ["dpg"]

    def test_templates_read_once(self, tmp_path):
        path = tmp_path / "dpg.html"
        path.write_text("<p>original</p>")
        loader = TemplateLoader(tmp_path)

        path.write_text("<p>changed</p>")

        assert loader.get_template("dpg") == "<p>original</p>"

    def test_validation_reports_missing_ids(self, tmp_path):
        (tmp_path / "thermal.html").write_text(
            '<div id="customerName"></div><div id="fsrNumber"></div><div id="observation"></div>'
        )
        loader = TemplateLoader(tmp_path)

        assert loader.missing_elements("thermal") == [
            "fsrDateAndTime", "serviceType", "workDone", "recommendation"
        ]
        assert loader.validate_template("thermal") is False
