"""
Global fixtures for report service tests.

Provides:
- Environment isolation (no real AWS credentials or buckets leak into tests)
- Settings and template fixtures wired the way the service wires them
- A request payload factory covering the common report fields
"""

import os
import pytest

from fsr_report.common.config import DEFAULT_TEMPLATE_DIR, ReportSettings
from fsr_report.report.templates import TemplateLoader

# Set test environment BEFORE the app module builds its settings
os.environ["ENVIRONMENT"] = "local"
for _var in ("S3_BUCKET", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "USE_EXECUTABLE_PATH"):
    os.environ.pop(_var, None)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Prevent real credentials from reaching S3 clients created in tests."""
    monkeypatch.setenv("ENVIRONMENT", "local")
    monkeypatch.delenv("S3_BUCKET", raising=False)
    monkeypatch.delenv("AWS_ACCESS_KEY_ID", raising=False)
    monkeypatch.delenv("AWS_SECRET_ACCESS_KEY", raising=False)
    monkeypatch.delenv("USE_EXECUTABLE_PATH", raising=False)
    monkeypatch.delenv("BROWSER_EXECUTABLE_PATH", raising=False)


@pytest.fixture
def settings():
    """Local-mode settings; engine tests inject their own sleep."""
    return ReportSettings(
        _env_file=None,
        environment="local",
        fsr_reattempt_timeout=5000,
        render_timeout_seconds=5,
    )


@pytest.fixture
def hosted_settings():
    return ReportSettings(
        _env_file=None,
        environment="hosted",
        s3_bucket="fsr-reports",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
        hosted_chromium_path="/opt/chromium/chromium",
    )


@pytest.fixture
def templates():
    return TemplateLoader(DEFAULT_TEMPLATE_DIR)


@pytest.fixture
def make_payload():
    """Factory for report request payloads; keyword overrides replace fields."""

    def _make(**overrides):
        payload = {
            "call_no": "TEST001",
            "product_group": "thermal",
            "customer_name": "Acme Cooling Ltd",
            "customer_address1": "12 Harbour Road",
            "customer_address2": "Unit 4",
            "customer_address3": "Port Town",
            "contact": "J. Smith",
            "contact_no": 5550100,
            "servicetype": "Preventive Maintenance",
            "engineername": "R. Patel",
            "completion_date": "2024-03-15 14:30",
            "material": [],
        }
        payload.update(overrides)
        return payload

    return _make
