"""Shared pytest fixtures for ssmshell tests."""

from __future__ import annotations

import json
import os
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from ssmshell.cache import ParameterCache
from ssmshell.errors import AlreadyExists, ParameterNotFound, RemoteError
from ssmshell.interpreter import CommandInterpreter
from ssmshell.models import Parameter, ParameterType, normalize_prefix
from ssmshell.sync import SyncEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeRemoteStore:
    """In-memory RemoteStore.  Operations named in ``fail`` raise RemoteError."""

    def __init__(self, params: list[Parameter] | None = None) -> None:
        self.params: dict[str, Parameter] = {p.path: p for p in params or []}
        self.fail: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _record(self, op: str, target: str) -> None:
        self.calls.append((op, target))
        if op in self.fail:
            raise RemoteError(f"Failed to {op} {target}: AccessDeniedException")

    def list_by_prefix(self, prefix: str) -> list[Parameter]:
        self._record("list", prefix)
        prefix = normalize_prefix(prefix)
        now = datetime.now(UTC)
        return sorted(
            (
                replace(p, fetched_at=now)
                for p in self.params.values()
                if prefix == "/" or p.path == prefix or p.path.startswith(prefix + "/")
            ),
            key=lambda p: p.path,
        )

    def get_value(self, path: str) -> Parameter:
        self._record("get", path)
        if path not in self.params:
            raise ParameterNotFound(path)
        return replace(self.params[path], fetched_at=datetime.now(UTC))

    def put_value(self, path: str, value: str, param_type: ParameterType | None = None) -> int:
        self._record("put", path)
        current = self.params[path]
        self.params[path] = replace(current, value=value, version=current.version + 1)
        return current.version + 1

    def create_value(self, path: str, value: str, param_type: ParameterType) -> int:
        self._record("create", path)
        if path in self.params:
            raise AlreadyExists(path)
        self.params[path] = Parameter(path=path, value=value, type=param_type, version=1)
        return 1


def make_param(path: str, value: str = "v", type_: str = "String", **kwargs) -> Parameter:
    defaults = {
        "version": 1,
        "last_modified": datetime(2024, 1, 1, tzinfo=UTC),
        "fetched_at": datetime(2024, 1, 2, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return Parameter(path=path, value=value, type=type_, **defaults)


@pytest.fixture()
def param_factory():
    """Build :class:`Parameter` objects with sensible defaults."""
    return make_param


@pytest.fixture()
def remote_factory():
    """Build a :class:`FakeRemoteStore` seeded with the given parameters."""
    return FakeRemoteStore


@pytest.fixture()
def remote() -> FakeRemoteStore:
    """A fake remote store holding a small /app namespace and an unrelated /other."""
    return FakeRemoteStore(
        [
            make_param("/app/db", "x"),
            make_param("/app/cache", "y"),
            make_param("/app/secret", "s3cr3t", "SecureString"),
            make_param("/other/key", "k"),
        ]
    )


@pytest.fixture()
def cache() -> ParameterCache:
    return ParameterCache(base_path="/app")


@pytest.fixture()
def engine(cache, remote):
    with SyncEngine(cache, remote) as sync_engine:
        yield sync_engine


@pytest.fixture()
def loaded_engine(engine):
    """An engine whose cache already holds everything under /app."""
    engine.bulk_load("/app")
    engine.remote.calls.clear()
    return engine


@pytest.fixture()
def interpreter(loaded_engine) -> CommandInterpreter:
    return CommandInterpreter(loaded_engine.cache, loaded_engine, prefetch=False)


@pytest.fixture()
def aws_credentials():
    """Ensure moto doesn't try to use real AWS credentials."""
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
    os.environ.setdefault("AWS_SESSION_TOKEN", "testing")


@pytest.fixture()
def ssm_client(aws_credentials):
    """A moto-mocked SSM client with fixture parameters pre-loaded."""
    with mock_aws():
        client = boto3.client("ssm", region_name="us-east-1")
        with open(FIXTURES_DIR / "parameters.json") as fh:
            params = json.load(fh)
        for item in params:
            client.put_parameter(Name=item["Name"], Value=item["Value"], Type=item["Type"])
        yield client
