"""
Storage abstraction for S3-compatible object storage and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        ...

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...

    def delete_object(self, path: str) -> None:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        return f"{self.base_url}/{path}?op=put&expires={expires_in}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = data
        return self.public_url(path)

    def delete_object(self, path: str) -> None:
        self.stored_objects.pop(path, None)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for media uploads.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def presign_put(
        self, path: str, content_type: str = "application/octet-stream", expires_in: int = 3600
    ) -> str:
        # The uploader must send the same Content-Type header it was signed with.
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self.bucket,
                "Key": path,
                "ContentType": content_type,
            },
            ExpiresIn=expires_in,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        return self.public_url(path)

    def delete_object(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

    def public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        endpoint = (self.endpoint or f"https://s3.{self.region}.amazonaws.com").rstrip("/")
        scheme, _, host = endpoint.partition("://")
        return f"{scheme}://{self.bucket}.{host}/{path}"
