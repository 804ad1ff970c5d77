"""S3 backed file transfer using federation credentials."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ...exceptions import ObjectStorageError
from ...utils.common import ManifestEntry

logger = logging.getLogger(__name__)


class S3FileClient:
    """Reads and writes Storage API file objects stored in S3."""

    scheme = "s3"

    def __init__(self, bucket: str, credentials: Dict[str, str], region: Optional[str] = None, client: Any = None):
        self.bucket = bucket
        self.client = client or boto3.client(
            's3',
            region_name=region,
            aws_access_key_id=credentials['AccessKeyId'],
            aws_secret_access_key=credentials['SecretAccessKey'],
            aws_session_token=credentials.get('SessionToken'),
        )

    def entry_url(self, key: str) -> str:
        return f"{self.scheme}://{self.bucket}/{key}"

    def object_key(self, url: str) -> str:
        """Turn a manifest entry url into a key inside this bucket."""
        return url.split(f"/{self.bucket}/", 1)[-1]

    @contextmanager
    def _errors(self, action: str, key: str):
        try:
            yield
        except (ClientError, BotoCoreError) as e:
            raise ObjectStorageError(f"S3 {action} of {self.entry_url(key)} failed: {e}") from e

    def read_manifest(self, key: str) -> List[ManifestEntry]:
        with self._errors('read', key):
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            payload = response['Body'].read()
        return json.loads(payload.decode('utf-8')).get('entries', [])

    def download_entry(self, url: str, destination: str) -> None:
        key = self.object_key(url)
        with self._errors('download', key):
            self.client.download_file(self.bucket, key, destination)

    def upload_file(self, key: str, path: str) -> None:
        with self._errors('upload', key):
            self.client.upload_file(path, self.bucket, key)
        logger.debug(f"📤 Uploaded {path} to {self.entry_url(key)}")

    def upload_bytes(self, key: str, payload: bytes) -> None:
        with self._errors('upload', key):
            self.client.put_object(Bucket=self.bucket, Key=key, Body=payload)
