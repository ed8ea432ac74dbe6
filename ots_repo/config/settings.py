"""Tablestore instance settings.

Each repository is bound to a named instance. The instance's connection values
are read from environment variables prefixed with the instance name, e.g. for
``MY_INSTANCE``::

    MY_INSTANCE_NAME=my-instance
    MY_INSTANCE_ENDPOINT=https://my-instance.cn-hangzhou.ots.aliyuncs.com
    MY_INSTANCE_ACCESS_KEY_ID=...
    MY_INSTANCE_ACCESS_KEY_SECRET=...

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through a Pydantic settings object.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_INSTANCE = "OTS"
SOCKET_TIMEOUT = 50  # seconds
MAX_CONNECTION = 50

_REQUIRED = ("NAME", "ENDPOINT", "ACCESS_KEY_ID", "ACCESS_KEY_SECRET")


class InstanceSettings(BaseModel):
    """Immutable connection settings for one Tablestore instance."""

    instance_name: str = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)
    access_key_id: str = Field(..., min_length=1)
    access_key_secret: str = Field(..., min_length=1, repr=False)
    sts_token: Optional[str] = Field(default=None, repr=False)
    socket_timeout: float = Field(default=SOCKET_TIMEOUT, gt=0)
    max_connection: int = Field(default=MAX_CONNECTION, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")


def env_var(instance: str, key: str) -> str:
    """Return the environment variable name holding ``key`` for ``instance``."""

    return f"{instance.upper()}_{key}"


def build_instance_settings(
    instance: str = DEFAULT_INSTANCE,
    overrides: Optional[Mapping[str, Any]] = None,
) -> InstanceSettings:
    """Construct ``InstanceSettings`` for ``instance`` from the environment.

    ``overrides`` replaces individual values after they are read, which lets
    callers start a repository without any environment configuration.
    """

    values: dict[str, Any] = {}
    for key, field in (
        ("NAME", "instance_name"),
        ("ENDPOINT", "endpoint"),
        ("ACCESS_KEY_ID", "access_key_id"),
        ("ACCESS_KEY_SECRET", "access_key_secret"),
        ("STS_TOKEN", "sts_token"),
        ("SOCKET_TIMEOUT", "socket_timeout"),
        ("MAX_CONNECTION", "max_connection"),
    ):
        raw = os.getenv(env_var(instance, key))
        if raw:
            values[field] = raw
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    for key, field in zip(
        _REQUIRED, ("instance_name", "endpoint", "access_key_id", "access_key_secret")
    ):
        if not values.get(field):
            raise RuntimeError(
                f"{env_var(instance, key)} is required for Tablestore instance {instance!r}"
            )

    return InstanceSettings(**values)
