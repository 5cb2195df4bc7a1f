from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from feed_pipeline.common.errors import StoreError
from feed_pipeline.stores.base import IMMUTABLE_CACHE_CONTROL, ObjectStore

logger = logging.getLogger(__name__)

_NOT_FOUND = {"404", "NotFound", "NoSuchKey"}


class S3ObjectStore(ObjectStore):
    """S3-compatible bucket (Cloudflare R2 in production).

    boto3 clients are thread-safe, so one instance is shared by all workers.
    """

    def __init__(self, bucket: str, client: Any) -> None:
        self.bucket = bucket
        self.client = client

    @classmethod
    def connect(
        cls,
        bucket: str,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "auto",
        max_pool_connections: int = 10,
    ) -> "S3ObjectStore":
        logger.info("Connecting to bucket %s at %s", bucket, endpoint_url)
        session = boto3.session.Session()
        client = session.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(max_pool_connections=max_pool_connections),
        )
        return cls(bucket, client)

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if code in _NOT_FOUND or status == 404:
                return False
            raise StoreError(f"HEAD {key} failed: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"HEAD {key} failed: {e}") from e
        return True

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str = IMMUTABLE_CACHE_CONTROL,
    ) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=cache_control,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"PUT {key} failed: {e}") from e
