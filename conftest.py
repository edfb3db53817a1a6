"""Shared pytest fixtures for StashBox tests."""

import io
from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from stashbox.filesystem import FilesystemService
from stashbox.object_store import ObjectStoreClient
from stashbox.quota import QuotaLedger
from stashbox.share_index import ShareTokenIndex


BUCKET = 'stashbox'


def _client_error(code, operation):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


class FakePaginator:
    def __init__(self, client):
        self.client = client

    def paginate(self, Bucket, Prefix='', **kwargs):
        self.client._check(Bucket, 'ListObjectsV2')
        keys = sorted(k for k in self.client.objects if k.startswith(Prefix))
        size = self.client.page_size
        if not keys:
            yield {'KeyCount': 0, 'IsTruncated': False}
            return
        for start in range(0, len(keys), size):
            chunk = keys[start:start + size]
            yield {
                'KeyCount': len(chunk),
                'IsTruncated': start + size < len(keys),
                'Contents': [
                    {
                        'Key': key,
                        'Size': len(self.client.objects[key]['body']),
                        'LastModified': self.client.objects[key]['last_modified'],
                        'ETag': '"etag"',
                    }
                    for key in chunk
                ],
            }


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls StashBox makes."""

    def __init__(self, bucket=BUCKET, page_size=2):
        self.bucket = bucket
        self.page_size = page_size
        self.objects = {}
        self.offline = False
        self.fail_delete = set()
        self.deleted = []
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _check(self, bucket, operation):
        if self.offline:
            raise EndpointConnectionError(endpoint_url='https://fake-s3.invalid')
        if bucket != self.bucket:
            raise _client_error('NoSuchBucket', operation)

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def head_bucket(self, Bucket):
        if self.offline:
            raise EndpointConnectionError(endpoint_url='https://fake-s3.invalid')
        if Bucket != self.bucket:
            raise _client_error('404', 'HeadBucket')
        return {}

    def put_object(self, Bucket, Key, Body=b'', ContentType='binary/octet-stream',
                   Metadata=None, **kwargs):
        self._check(Bucket, 'PutObject')
        if isinstance(Body, str):
            Body = Body.encode('utf-8')
        self.objects[Key] = {
            'body': bytes(Body),
            'content_type': ContentType,
            'metadata': {k.lower(): v for k, v in (Metadata or {}).items()},
            'last_modified': self._tick(),
            'extra': kwargs,
        }
        return {'ETag': '"etag"'}

    def get_object(self, Bucket, Key):
        self._check(Bucket, 'GetObject')
        if Key not in self.objects:
            raise _client_error('NoSuchKey', 'GetObject')
        obj = self.objects[Key]
        return {
            'Body': io.BytesIO(obj['body']),
            'ContentType': obj['content_type'],
            'ContentLength': len(obj['body']),
            'LastModified': obj['last_modified'],
            'Metadata': dict(obj['metadata']),
        }

    def head_object(self, Bucket, Key):
        self._check(Bucket, 'HeadObject')
        if Key not in self.objects:
            raise _client_error('404', 'HeadObject')
        obj = self.objects[Key]
        return {
            'ContentType': obj['content_type'],
            'ContentLength': len(obj['body']),
            'LastModified': obj['last_modified'],
            'Metadata': dict(obj['metadata']),
        }

    def delete_object(self, Bucket, Key):
        self._check(Bucket, 'DeleteObject')
        if Key in self.fail_delete:
            raise _client_error('InternalError', 'DeleteObject')
        self.objects.pop(Key, None)
        self.deleted.append(Key)
        return {}

    def get_paginator(self, operation):
        assert operation == 'list_objects_v2'
        return FakePaginator(self)


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def store(fake_s3):
    return ObjectStoreClient(
        {'bucket_name': BUCKET, 'public_endpoint': 'r2.example.com'},
        client=fake_s3,
    )


@pytest.fixture
def ledger(store):
    return QuotaLedger(store, {'default_limit_bytes': 10_000_000, 'limits': {'u1': 1_000_000}})


@pytest.fixture
def share_index(store):
    return ShareTokenIndex(store)


@pytest.fixture
def service(store, ledger, share_index):
    return FilesystemService(store, ledger, share_index, {'max_file_size': 800_000})
