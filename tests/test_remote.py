"""Tests for ssmshell.remote."""

from __future__ import annotations

import os

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from ssmshell.errors import AlreadyExists, ParameterNotFound, RemoteError
from ssmshell.models import Parameter
from ssmshell.remote import SsmRemoteStore, _sanitize_error


@pytest.fixture(autouse=True)
def aws_env():
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
    os.environ.setdefault("AWS_SESSION_TOKEN", "testing")


def _store(client=None, **kwargs) -> SsmRemoteStore:
    return SsmRemoteStore(client=client or boto3.client("ssm", region_name="us-east-1"), **kwargs)


class _ErrorClient:
    """Stand-in SSM client whose every call fails with AccessDenied."""

    def _raise(self, operation: str):
        raise ClientError(
            {
                "Error": {
                    "Code": "AccessDeniedException",
                    "Message": (
                        "User: arn:aws:iam::123456789012:user/test is not authorized "
                        "to perform ssm:GetParametersByPath"
                    ),
                }
            },
            operation,
        )

    def get_parameters_by_path(self, **kwargs):
        self._raise("GetParametersByPath")

    def get_parameter(self, **kwargs):
        self._raise("GetParameter")

    def put_parameter(self, **kwargs):
        self._raise("PutParameter")


class TestListByPrefix:
    def test_basic(self, ssm_client):
        params = _store(ssm_client).list_by_prefix("/app/prod")
        assert len(params) == 6
        assert all(isinstance(p, Parameter) for p in params)

    def test_returns_sorted(self, ssm_client):
        params = _store(ssm_client).list_by_prefix("/app")
        paths = [p.path for p in params]
        assert paths == sorted(paths)
        assert len(paths) == 7

    def test_trailing_slash(self, ssm_client):
        params = _store(ssm_client).list_by_prefix("/app/staging/")
        assert [p.path for p in params] == ["/app/staging/db/host"]

    def test_fields_populated(self, ssm_client):
        params = _store(ssm_client).list_by_prefix("/app/staging")
        p = params[0]
        assert p.value == "staging-db.example.com"
        assert p.type == "String"
        assert p.version == 1
        assert p.is_fetched
        assert p.dirty is False

    def test_types(self, ssm_client):
        by_path = {p.path: p for p in _store(ssm_client).list_by_prefix("/app/prod")}
        assert by_path["/app/prod/db/password"].type == "SecureString"
        assert by_path["/app/prod/feature_flags"].type == "StringList"

    def test_decrypts_by_default(self, ssm_client):
        by_path = {p.path: p for p in _store(ssm_client).list_by_prefix("/app/prod/db")}
        assert by_path["/app/prod/db/password"].value == "FAKE-test-password"

    def test_no_decrypt(self, ssm_client):
        store = _store(ssm_client, decrypt=False)
        by_path = {p.path: p for p in store.list_by_prefix("/app/prod/db")}
        assert by_path["/app/prod/db/password"].value != "FAKE-test-password"

    def test_prefix_that_is_a_parameter(self, ssm_client):
        params = _store(ssm_client).list_by_prefix("/app/prod/db/host")
        assert [p.path for p in params] == ["/app/prod/db/host"]

    def test_nonexistent_prefix(self, ssm_client):
        assert _store(ssm_client).list_by_prefix("/does/not/exist") == []

    @mock_aws
    def test_pagination(self):
        client = boto3.client("ssm", region_name="us-east-1")
        for i in range(25):
            client.put_parameter(Name=f"/many/p{i:02d}", Value=str(i), Type="String")
        params = _store(client).list_by_prefix("/many")
        assert len(params) == 25

    def test_error_raises_remote_error(self):
        with pytest.raises(RemoteError, match="Failed to fetch parameters from SSM"):
            _store(_ErrorClient()).list_by_prefix("/app")

    def test_error_message_is_sanitized(self):
        with pytest.raises(RemoteError) as exc_info:
            _store(_ErrorClient()).list_by_prefix("/app")
        assert "123456789012" not in str(exc_info.value)


class TestGetValue:
    def test_get_existing(self, ssm_client):
        p = _store(ssm_client).get_value("/app/prod/db/port")
        assert p.value == "5432"
        assert p.is_fetched

    def test_get_missing(self, ssm_client):
        with pytest.raises(ParameterNotFound):
            _store(ssm_client).get_value("/app/prod/db/nope")

    def test_get_error(self):
        with pytest.raises(RemoteError, match="Failed to get /app/x"):
            _store(_ErrorClient()).get_value("/app/x")


class TestPutValue:
    def test_overwrites_and_bumps_version(self, ssm_client):
        store = _store(ssm_client)
        version = store.put_value("/app/prod/db/port", "6543", "String")
        assert version == 2
        assert store.get_value("/app/prod/db/port").value == "6543"

    def test_put_error(self):
        with pytest.raises(RemoteError, match="Failed to put"):
            _store(_ErrorClient()).put_value("/app/x", "v", "String")


class TestCreateValue:
    def test_creates_parameter(self, ssm_client):
        store = _store(ssm_client)
        assert store.create_value("/app/new", "hello", "String") == 1
        p = store.get_value("/app/new")
        assert p.value == "hello"
        assert p.type == "String"

    def test_creates_secure_parameter(self, ssm_client):
        store = _store(ssm_client)
        store.create_value("/app/token", "abc", "SecureString")
        p = store.get_value("/app/token")
        assert p.type == "SecureString"
        assert p.value == "abc"

    def test_existing_raises_already_exists(self, ssm_client):
        with pytest.raises(AlreadyExists):
            _store(ssm_client).create_value("/app/prod/db/host", "x", "String")

    def test_create_error(self):
        with pytest.raises(RemoteError, match="Failed to create"):
            _store(_ErrorClient()).create_value("/app/x", "v", "String")


class TestSanitizeError:
    def test_strips_arn(self):
        msg = "User: arn:aws:iam::123456789012:user/test is not authorized"
        result = _sanitize_error(msg)
        assert "arn:***" in result
        assert "123456789012" not in result

    def test_strips_account_id(self):
        assert _sanitize_error("Account 123456789012 denied") == "Account *** denied"

    def test_leaves_plain_message(self):
        assert _sanitize_error("Rate exceeded") == "Rate exceeded"
