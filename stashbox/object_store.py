"""Object store client for StashBox."""

import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import NotFound, StoreUnavailable
from .logging_config import get_logger
from .models import ObjectInfo, StoredObject


logger = get_logger(__name__)

_MISSING_CODES = {'404', 'NoSuchKey', 'NotFound'}


class ObjectStoreClient:
    """Thin wrapper over an S3-compatible bucket (S3, R2, MinIO).

    Exposes put/get/head/delete/list-by-prefix and nothing else. Transport
    failures surface as ``StoreUnavailable`` and missing keys as ``NotFound``;
    there is no retry here.
    """

    def __init__(self, config: Dict[str, Any], client: Any = None):
        """Initialize the object store client.

        Args:
            config: Store configuration dictionary (see ``Config.get_store_config``)
            client: Pre-built boto3 S3 client, mainly for tests
        """
        self.config = config
        self.bucket_name = config['bucket_name']
        self.public_endpoint = config.get('public_endpoint') or ''

        if client is None:
            client = boto3.client(
                's3',
                endpoint_url=config.get('endpoint_url'),
                aws_access_key_id=config.get('access_key_id'),
                aws_secret_access_key=config.get('secret_access_key'),
                region_name=config.get('region', 'auto'),
                config=BotoConfig(
                    retries={
                        'total_max_attempts': int(config.get('max_attempts', 1)),
                        'mode': 'standard',
                    },
                    connect_timeout=config.get('connect_timeout', 5),
                    read_timeout=config.get('read_timeout', 30),
                ),
            )
        self.client = client

    def check_connection(self):
        """Check that the configured bucket is reachable.

        Raises:
            NotFound: If the bucket does not exist
            StoreUnavailable: On credential or transport problems
        """
        try:
            self.client.head_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, f"bucket {self.bucket_name}") from e
        logger.info(f"Connected to bucket: {self.bucket_name}")

    def put(self, key: str, data: bytes, content_type: str,
            metadata: Optional[Dict[str, str]] = None,
            content_disposition: Optional[str] = None):
        """Write an object.

        Args:
            key: Storage key
            data: Object body
            content_type: MIME type stored with the object
            metadata: Additional user metadata (ASCII values)
            content_disposition: Optional Content-Disposition header
        """
        upload_metadata = {
            'upload-time': datetime.now(timezone.utc).isoformat(),
            'content-sha256': hashlib.sha256(data).hexdigest(),
        }
        if metadata:
            upload_metadata.update(metadata)

        params = {
            'Bucket': self.bucket_name,
            'Key': key,
            'Body': data,
            'ContentType': content_type,
            'Metadata': upload_metadata,
        }
        if content_disposition:
            params['ContentDisposition'] = content_disposition

        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key) from e
        logger.debug(f"Put object: {key} ({len(data)} bytes)")

    def get(self, key: str) -> StoredObject:
        """Fetch an object with its body."""
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
            body = response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key) from e

        return StoredObject(
            key=key,
            body=body,
            content_type=response.get('ContentType') or 'application/octet-stream',
            size=response.get('ContentLength', len(body)),
            last_modified=response.get('LastModified'),
            metadata=response.get('Metadata', {}),
        )

    def head(self, key: str) -> ObjectInfo:
        """Fetch object attributes without transferring the body."""
        try:
            response = self.client.head_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key) from e

        return ObjectInfo(
            key=key,
            size=response.get('ContentLength', 0),
            last_modified=response.get('LastModified'),
            content_type=response.get('ContentType'),
            metadata=response.get('Metadata', {}),
        )

    def exists(self, key: str) -> bool:
        try:
            self.head(key)
        except NotFound:
            return False
        return True

    def delete(self, key: str):
        """Delete an object. Deleting a missing key is a no-op on S3."""
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, key) from e
        logger.debug(f"Deleted object: {key}")

    def list_by_prefix(self, prefix: str) -> Iterator[ObjectInfo]:
        """Yield every object under a prefix, draining all result pages."""
        paginator = self.client.get_paginator('list_objects_v2')
        try:
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get('Contents', []):
                    yield ObjectInfo(
                        key=obj['Key'],
                        size=obj.get('Size', 0),
                        last_modified=obj.get('LastModified'),
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, f"prefix {prefix}") from e

    def public_url(self, key: str) -> str:
        """Public address of an object, or '' when no public endpoint is configured."""
        if not self.public_endpoint:
            return ''
        return f"https://{self.bucket_name}.{self.public_endpoint}/{quote(key)}"

    def _translate(self, error: Exception, target: str) -> Exception:
        if isinstance(error, ClientError):
            code = str(error.response.get('Error', {}).get('Code', ''))
            if code in _MISSING_CODES:
                logger.debug(f"Not found in store: {target}")
                return NotFound(f"Object not found: {target}")
        logger.debug(f"Store failure for {target}: {error}")
        return StoreUnavailable(f"Object store unavailable: {error}")
