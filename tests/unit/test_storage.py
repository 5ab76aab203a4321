"""
Unit tests for fsr_report/report/storage.py

The S3 gateway is tested against a mocked boto3 client; the in-memory
gateway is exercised directly.
"""

import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError

from fsr_report.common.config import ReportSettings
from fsr_report.common.error_handling import ObjectNotFoundError, StorageError
from fsr_report.report.storage import (
    InMemoryStorageGateway,
    S3StorageGateway,
    build_storage_gateway,
    upload_metadata,
)

KEY = "fsr/2024/test001.pdf"


def client_error(code, operation="GetObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.put_object.return_value = {"ETag": '"abc123"'}
    client.generate_presigned_url.return_value = "https://fsr-reports.s3.amazonaws.com/fsr/2024/test001.pdf?sig"
    return client


@pytest.fixture
def gateway(s3_client):
    return S3StorageGateway(bucket="fsr-reports", client=s3_client)


class TestUploadMetadata:
    def test_metadata_keys(self):
        assert upload_metadata("TEST001", "2024-03-15T10:00:00Z") == {
            "call-no": "TEST001",
            "generated-at": "2024-03-15T10:00:00Z",
            "is-checklist": "false",
        }


class TestS3StorageGateway:
    """Tests for S3StorageGateway."""

    def test_put_uploads_pdf(self, gateway, s3_client):
        etag = gateway.put(KEY, b"%PDF", {"call-no": "TEST001"})

        assert etag == "abc123"
        s3_client.put_object.assert_called_once_with(
            Bucket="fsr-reports",
            Key=KEY,
            Body=b"%PDF",
            ContentType="application/pdf",
            Metadata={"call-no": "TEST001"},
        )

    def test_put_failure_raises_storage_error(self, gateway, s3_client):
        s3_client.put_object.side_effect = client_error("AccessDenied", "PutObject")

        with pytest.raises(StorageError):
            gateway.put(KEY, b"%PDF")

    def test_get_reads_body(self, gateway, s3_client):
        body = MagicMock()
        body.read.return_value = b"%PDF"
        s3_client.get_object.return_value = {"Body": body}

        assert gateway.get(KEY) == b"%PDF"
        s3_client.get_object.assert_called_once_with(Bucket="fsr-reports", Key=KEY)

    @pytest.mark.parametrize("code", ["NoSuchKey", "404"])
    def test_get_missing_object(self, gateway, s3_client, code):
        s3_client.get_object.side_effect = client_error(code)

        with pytest.raises(ObjectNotFoundError):
            gateway.get(KEY)

    def test_get_other_error(self, gateway, s3_client):
        s3_client.get_object.side_effect = client_error("AccessDenied")

        with pytest.raises(StorageError) as exc_info:
            gateway.get(KEY)

        assert not isinstance(exc_info.value, ObjectNotFoundError)

    def test_sign(self, gateway, s3_client):
        url = gateway.sign(KEY, 3600)

        assert url.startswith("https://")
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "fsr-reports", "Key": KEY},
            ExpiresIn=3600,
        )

    @patch("fsr_report.report.storage.boto3")
    def test_from_settings(self, mock_boto3, hosted_settings):
        gateway = S3StorageGateway.from_settings(hosted_settings)

        assert gateway.bucket == "fsr-reports"
        kwargs = mock_boto3.client.call_args.kwargs
        assert mock_boto3.client.call_args.args == ("s3",)
        assert kwargs["aws_access_key_id"] == "AKIATEST"
        assert kwargs["endpoint_url"] is None


class TestInMemoryStorageGateway:
    """Tests for InMemoryStorageGateway."""

    def test_round_trip(self):
        storage = InMemoryStorageGateway()

        storage.put(KEY, b"%PDF-1.4 report", {"call-no": "TEST001"})

        assert storage.get(KEY) == b"%PDF-1.4 report"
        assert storage.metadata(KEY) == {"call-no": "TEST001"}

    def test_overwrite_keeps_latest(self):
        storage = InMemoryStorageGateway()

        storage.put(KEY, b"first")
        storage.put(KEY, b"second")

        assert storage.get(KEY) == b"second"

    def test_missing_object(self):
        with pytest.raises(ObjectNotFoundError):
            InMemoryStorageGateway().get(KEY)

    def test_sign(self):
        storage = InMemoryStorageGateway()
        storage.put(KEY, b"%PDF")

        assert storage.sign(KEY, 60) == f"memory://{KEY}?expires=60"


class TestBuildStorageGateway:
    """Tests for gateway selection."""

    @patch("fsr_report.report.storage.boto3")
    def test_s3_when_configured(self, mock_boto3, hosted_settings):
        assert isinstance(build_storage_gateway(hosted_settings), S3StorageGateway)

    def test_in_memory_for_local_without_s3(self, settings):
        assert isinstance(build_storage_gateway(settings), InMemoryStorageGateway)

    def test_none_for_hosted_without_s3(self):
        settings = ReportSettings(_env_file=None, environment="hosted")

        assert build_storage_gateway(settings) is None
