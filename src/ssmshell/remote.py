"""AWS SSM Parameter Store client used by the sync engine."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ssmshell.errors import AlreadyExists, ParameterNotFound, RemoteError
from ssmshell.logging_config import get_logger
from ssmshell.models import Parameter, ParameterType, normalize_prefix

if TYPE_CHECKING:
    from mypy_boto3_ssm import SSMClient

logger = get_logger(__name__)

_ARN_RE = re.compile(r"arn:aws[a-zA-Z-]*:[a-zA-Z0-9-]+:\S+")
_ACCOUNT_RE = re.compile(r"\b\d{12}\b")

_RETRY_CONFIG = Config(retries={"max_attempts": 5, "mode": "adaptive"})


class RemoteStore(Protocol):
    """What the sync engine needs from a parameter store."""

    def list_by_prefix(self, prefix: str) -> list[Parameter]:
        """Every parameter under *prefix*, pagination already resolved."""
        ...

    def get_value(self, path: str) -> Parameter:
        """The parameter at *path*; raises :class:`ParameterNotFound` if absent."""
        ...

    def put_value(self, path: str, value: str, param_type: ParameterType | None = None) -> int:
        """Overwrite an existing parameter and return its new version."""
        ...

    def create_value(self, path: str, value: str, param_type: ParameterType) -> int:
        """Create a parameter; raises :class:`AlreadyExists` if it is taken."""
        ...


def _sanitize_error(msg: str) -> str:
    """Strip ARNs and AWS account IDs from error messages."""
    msg = _ARN_RE.sub("arn:***", msg)
    msg = _ACCOUNT_RE.sub("***", msg)
    return msg


def _remote_error(action: str, exc: Exception) -> RemoteError:
    return RemoteError(f"Failed to {action}: {_sanitize_error(str(exc))}")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _make_client(profile: str | None, region: str | None) -> SSMClient:
    session = boto3.Session(profile_name=profile, region_name=region)
    return session.client("ssm", config=_RETRY_CONFIG)  # type: ignore[return-value]


def _to_parameter(item: dict[str, Any], fetched_at: datetime) -> Parameter:
    return Parameter(
        path=item["Name"],
        value=item.get("Value", ""),
        type=item.get("Type", "String"),
        version=item.get("Version", 0),
        last_modified=item.get("LastModifiedDate"),
        fetched_at=fetched_at,
    )


class SsmRemoteStore:
    """:class:`RemoteStore` backed by boto3.

    Args:
        client:  A boto3 SSM client; built from *profile*/*region* when omitted.
        profile: AWS named profile to use.
        region:  AWS region override.
        decrypt: Fetch SecureString values decrypted.
    """

    def __init__(
        self,
        client: SSMClient | None = None,
        profile: str | None = None,
        region: str | None = None,
        decrypt: bool = True,
    ) -> None:
        self._client = client if client is not None else _make_client(profile, region)
        self.decrypt = decrypt

    def list_by_prefix(self, prefix: str) -> list[Parameter]:
        """Fetch all SSM parameters under *prefix* (recursive).

        ``get_parameters_by_path`` never returns a parameter AT the prefix
        itself, so a parameter stored exactly at *prefix* is looked up
        separately.

        Returns:
            List of :class:`Parameter` objects sorted by path.

        Raises:
            RemoteError: On any AWS API error.
        """
        prefix = normalize_prefix(prefix)
        now = datetime.now(UTC)
        params: list[Parameter] = []
        kwargs: dict = {
            "Path": prefix,
            "Recursive": True,
            "WithDecryption": self.decrypt,
        }

        try:
            while True:
                response = self._client.get_parameters_by_path(**kwargs)
                page = response.get("Parameters", [])
                logger.debug("Fetched page of %d parameter(s) under %s", len(page), prefix)
                params.extend(_to_parameter(item, now) for item in page)
                next_token = response.get("NextToken")
                if not next_token:
                    break
                kwargs["NextToken"] = next_token
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error("fetch parameters from SSM", exc) from exc

        if prefix != "/" and prefix not in {p.path for p in params}:
            try:
                params.append(self.get_value(prefix))
            except ParameterNotFound:
                pass

        logger.info("Listed %d parameter(s) under %s", len(params), prefix)
        return sorted(params, key=lambda p: p.path)

    def get_value(self, path: str) -> Parameter:
        try:
            response = self._client.get_parameter(Name=path, WithDecryption=self.decrypt)
        except ClientError as exc:
            if _error_code(exc) == "ParameterNotFound":
                raise ParameterNotFound(path) from exc
            raise _remote_error(f"get {path}", exc) from exc
        except BotoCoreError as exc:
            raise _remote_error(f"get {path}", exc) from exc
        return _to_parameter(response["Parameter"], datetime.now(UTC))

    def put_value(self, path: str, value: str, param_type: ParameterType | None = None) -> int:
        put_kwargs: dict[str, Any] = {"Name": path, "Value": value, "Overwrite": True}
        if param_type is not None:
            put_kwargs["Type"] = param_type
        try:
            response = self._client.put_parameter(**put_kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise _remote_error(f"put {path}", exc) from exc
        logger.info("Wrote %s (version %s)", path, response.get("Version"))
        return response.get("Version", 0)

    def create_value(self, path: str, value: str, param_type: ParameterType) -> int:
        try:
            response = self._client.put_parameter(
                Name=path, Value=value, Type=param_type, Overwrite=False
            )
        except ClientError as exc:
            if _error_code(exc) == "ParameterAlreadyExists":
                raise AlreadyExists(path) from exc
            raise _remote_error(f"create {path}", exc) from exc
        except BotoCoreError as exc:
            raise _remote_error(f"create {path}", exc) from exc
        logger.info("Created %s as %s", path, param_type)
        return response.get("Version", 1)
