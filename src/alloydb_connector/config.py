"""Environment-driven configuration for the connector."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from .schemas.connection import InstanceName

SOCKET_FACTORY = "alloydb_connector.tls.SocketFactory"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConnectorConfig(BaseModel):
    instance_name: InstanceName
    iam_user: str | None = None
    enable_iam_auth: bool = False
    max_workers: int = Field(4, ge=2, description="Executor size; both RPCs run at once")

    @field_validator("instance_name", mode="before")
    @classmethod
    def _parse_instance_name(cls, value: object) -> object:
        if isinstance(value, str):
            return InstanceName.parse(value)
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConnectorConfig":
        """
        Reads ALLOYDB_INSTANCE_NAME, ALLOYDB_IAM_USER, ALLOYDB_ENABLE_IAM_AUTH
        and ALLOYDB_MAX_WORKERS.
        """
        env = os.environ if environ is None else environ

        instance_name = env.get("ALLOYDB_INSTANCE_NAME")
        if not instance_name:
            raise ValueError("ALLOYDB_INSTANCE_NAME is not set")

        values: dict[str, object] = {
            "instance_name": instance_name,
            "iam_user": env.get("ALLOYDB_IAM_USER") or None,
            "enable_iam_auth": _parse_bool(env.get("ALLOYDB_ENABLE_IAM_AUTH", "")),
        }
        if env.get("ALLOYDB_MAX_WORKERS"):
            values["max_workers"] = env["ALLOYDB_MAX_WORKERS"]
        return cls(**values)

    def data_source_properties(self) -> dict[str, str]:
        """Opaque key/value strings handed to a connection pool front end."""
        properties = {
            "socketFactory": SOCKET_FACTORY,
            "alloydbInstanceName": str(self.instance_name),
            "alloydbEnableIAMAuth": str(self.enable_iam_auth).lower(),
        }
        if self.iam_user:
            properties["user"] = self.iam_user
        return properties


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got {value!r}")
