"""Google Cloud Storage backed file transfer using federation tokens."""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage
from google.oauth2.credentials import Credentials

from ...exceptions import ObjectStorageError
from ...utils.common import ManifestEntry

logger = logging.getLogger(__name__)


class GcsFileClient:
    """Reads and writes Storage API file objects stored in GCS.

    The access token handed out by the Storage API is short lived, so callers
    that work through many slices build a fresh client per batch. Library
    errors surface as ``ObjectStorageError``.
    """

    scheme = "gs"

    def __init__(self, bucket: str, credentials: Dict[str, Any], client: Any = None):
        self.bucket = bucket
        if client is None:
            token = credentials.get('access_token') or credentials.get('accessToken')
            client = storage.Client(
                project=credentials.get('projectId'),
                credentials=Credentials(token=token),
            )
        self.client = client
        self._bucket = client.bucket(bucket)

    def entry_url(self, key: str) -> str:
        return f"{self.scheme}://{self.bucket}/{key}"

    def object_key(self, url: str) -> str:
        """Turn a manifest entry url into a blob path inside this bucket."""
        return url.split(f"/{self.bucket}/", 1)[-1]

    @contextmanager
    def _errors(self, action: str, key: str):
        try:
            yield
        except (GoogleAPIError, GoogleAuthError) as e:
            raise ObjectStorageError(f"GCS {action} of {self.entry_url(key)} failed: {e}") from e

    def read_manifest(self, key: str) -> List[ManifestEntry]:
        with self._errors('read', key):
            payload = self._bucket.blob(key).download_as_bytes()
        return json.loads(payload.decode('utf-8')).get('entries', [])

    def download_entry(self, url: str, destination: str) -> None:
        key = self.object_key(url)
        with self._errors('download', key):
            self._bucket.blob(key).download_to_filename(destination)

    def upload_file(self, key: str, path: str) -> None:
        with self._errors('upload', key):
            self._bucket.blob(key).upload_from_filename(path)
        logger.debug(f"📤 Uploaded {path} to {self.entry_url(key)}")

    def upload_bytes(self, key: str, payload: bytes) -> None:
        with self._errors('upload', key):
            self._bucket.blob(key).upload_from_string(payload)
