"""Store configuration and environment settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

DEFAULT_PAGE_SIZE = 10
DEFAULT_REGION = "us-east-1"
DEFAULT_TABLE = "test"

_TRUTHY = ("1", "true", "yes")


@dataclass
class StoreConfig:
    """Connection settings shared by the storage adapters of a model.

    Attributes:
        client: boto3 DynamoDB service resource (or any client object an
            adapter understands). Built lazily from region/endpoint when None.
        table: Table name
        region: AWS region used when building the client
        endpoint_url: Custom endpoint (DynamoDB Local, LocalStack)
    """

    client: Any = None
    table: str = DEFAULT_TABLE
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Create config from environment variables.

        Resolution order:
        1. AWS_REGION, then AWS_DEFAULT_REGION (default us-east-1)
        2. DYNAMODB_ENDPOINT for a local endpoint (optional)
        3. DYNAMODB_TABLE_NAME (default "test")
        """
        region = (
            os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )
        return cls(
            client=None,
            table=os.environ.get("DYNAMODB_TABLE_NAME") or DEFAULT_TABLE,
            region=region,
            endpoint_url=os.environ.get("DYNAMODB_ENDPOINT") or None,
        )

    def boto3_kwargs(self) -> dict[str, Any]:
        """Build kwargs suitable for boto3 resource creation."""
        kwargs: dict[str, Any] = {"region_name": self.region}
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    def resolve_client(self) -> Any:
        """Return the configured client, creating a DynamoDB resource if unset."""
        if self.client is None:
            import boto3

            self.client = boto3.resource("dynamodb", **self.boto3_kwargs())
        return self.client


def auth_disabled() -> bool:
    """Whether SKIP_AUTH is set. Read on every call so tests can toggle it."""
    return os.environ.get("SKIP_AUTH", "").lower() in _TRUTHY
