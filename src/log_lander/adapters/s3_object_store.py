from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from log_lander.domain.errors import WriteTimeout
from log_lander.ports.object_store import ObjectStore

_TIMEOUT_CODES = {"RequestTimeout", "RequestTimeoutException", "SlowDown", "ServiceUnavailable"}
_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStore(ObjectStore):
    """S3-backed object store.

    Timeouts and throttling on put are surfaced as WriteTimeout so the writer's
    retry loop treats them as ambiguous outcomes; everything else propagates.
    """

    def __init__(
        self,
        bucket: str,
        *,
        client: Any | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.bucket = bucket
        self._s3 = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    def put(self, key: str, body: bytes, *, content_type: str | None = None) -> None:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": body}
        if content_type is not None:
            kwargs["ContentType"] = content_type
        try:
            self._s3.put_object(**kwargs)
        except (ReadTimeoutError, ConnectTimeoutError, EndpointConnectionError) as exc:
            raise WriteTimeout(f"s3://{self.bucket}/{key}: {exc}") from exc
        except ClientError as exc:
            if _error_code(exc) in _TIMEOUT_CODES:
                raise WriteTimeout(f"s3://{self.bucket}/{key}: {_error_code(exc)}") from exc
            raise

    def get(self, key: str) -> bytes | None:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return None
            raise
        return resp["Body"].read()

    def list_prefix(self, prefix: str) -> list[str]:
        paginator = self._s3.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                keys.append(item["Key"])
        return sorted(keys)


def _error_code(err: ClientError) -> str:
    return str(err.response.get("Error", {}).get("Code", ""))
