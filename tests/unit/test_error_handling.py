"""
Unit tests for fsr_report/common/error_handling.py
"""

import logging

import pytest

from fsr_report.common.error_handling import (
    BrowserLaunchError,
    EmptyContentError,
    ErrorEnvelope,
    InputContractError,
    ObjectNotFoundError,
    RasterizationError,
    ReportError,
    StorageError,
    log_on_exception,
    validate_required_params,
)


class TestErrorHierarchy:
    def test_all_rooted_at_report_error(self):
        for error_class in (InputContractError, BrowserLaunchError, RasterizationError, StorageError):
            assert issubclass(error_class, ReportError)

    def test_specializations(self):
        assert issubclass(EmptyContentError, RasterizationError)
        assert issubclass(ObjectNotFoundError, StorageError)
        assert EmptyContentError("x").kind == "rasterization"


class TestErrorEnvelope:
    def test_from_report_error(self):
        envelope = ErrorEnvelope.from_exception(BrowserLaunchError("no browser"))

        assert envelope.error == "no browser"
        assert envelope.kind == "launch"

    def test_from_unexpected_error(self):
        envelope = ErrorEnvelope.from_exception(KeyError())

        assert envelope.error == "KeyError"
        assert envelope.kind == "internal"

    def test_to_dict_contract(self):
        result = ErrorEnvelope("boom").to_dict()

        assert set(result) == {"success", "error", "timestamp"}
        assert result["success"] is False
        assert result["timestamp"].endswith("Z")


class TestValidateRequiredParams:
    def test_all_present(self):
        validate_required_params({"call_no": "A", "product_group": "dpg"}, ["call_no", "product_group"])

    def test_names_missing_fields_in_order(self):
        with pytest.raises(InputContractError) as exc_info:
            validate_required_params({}, ["call_no", "product_group"])

        assert str(exc_info.value) == "Missing required parameters: call_no, product_group"

    def test_empty_values_count_as_missing(self):
        with pytest.raises(InputContractError) as exc_info:
            validate_required_params({"call_no": "", "product_group": "dpg"}, ["call_no", "product_group"])

        assert str(exc_info.value) == "Missing required parameters: call_no"


class TestLogOnException:
    def test_propagates_by_default(self, caplog):
        logger = logging.getLogger("fsr_report.test")

        with pytest.raises(RuntimeError):
            with log_on_exception(logger, "Upload"):
                raise RuntimeError("denied")

        assert "[Upload] Failed: denied" in caplog.text

    def test_suppress(self, caplog):
        logger = logging.getLogger("fsr_report.test")

        with log_on_exception(logger, "Browser close", suppress=True):
            raise RuntimeError("already closed")

        assert "[Browser close] Failed: already closed" in caplog.text

    def test_no_exception(self, caplog):
        with log_on_exception(logging.getLogger("fsr_report.test"), "Noop"):
            pass

        assert caplog.text == ""
