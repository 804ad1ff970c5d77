"""Main Storage API handler - one project, one token."""

import logging
from typing import Any, Dict, List, Optional

from .auth import StorageAuth
from .bucket_manager import StorageBucketManager
from .file_manager import StorageFileManager
from ...utils.common import BucketInfo, FileInfo, MetadataEntry, TableInfo

logger = logging.getLogger(__name__)


class StorageHandler:
    """Simple handler for all Storage API operations of one project."""

    def __init__(self, url: str, token: str):
        self._auth = StorageAuth(url, token)
        self._bucket_manager: Optional[StorageBucketManager] = None
        self._file_manager: Optional[StorageFileManager] = None
        self._authenticated = False

    def authenticate(self):
        """Verify the token and initialize components."""
        self._auth.authenticate()
        self._bucket_manager = StorageBucketManager(self._auth)
        self._file_manager = StorageFileManager(self._auth)
        self._authenticated = True
        logger.info(f"✅ StorageHandler ready for {self._auth.url}")

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def url(self) -> str:
        return self._auth.url

    # Token
    def verify_token(self) -> Dict[str, Any]:
        """Return the token detail (owner, features, ...)."""
        self._ensure_authenticated()
        return self._auth.token_info

    @property
    def project_id(self) -> int:
        return self.verify_token()['owner']['id']

    @property
    def project_features(self) -> List[str]:
        return self.verify_token()['owner'].get('features', [])

    # Buckets
    def list_buckets(self) -> List[BucketInfo]:
        self._ensure_authenticated()
        return self._bucket_manager.list_buckets()

    def bucket_exists(self, bucket_id: str) -> bool:
        self._ensure_authenticated()
        return self._bucket_manager.bucket_exists(bucket_id)

    def create_bucket(self, name: str, stage: str, backend: Optional[str] = None) -> BucketInfo:
        self._ensure_authenticated()
        return self._bucket_manager.create_bucket(name, stage, backend)

    def refresh_table_information_in_bucket(self, bucket_id: str) -> None:
        self._ensure_authenticated()
        self._bucket_manager.refresh_table_information_in_bucket(bucket_id)

    # Tables
    def list_tables(self, bucket_id: str) -> List[TableInfo]:
        self._ensure_authenticated()
        return self._bucket_manager.list_tables(bucket_id)

    def get_table(self, table_id: str) -> TableInfo:
        self._ensure_authenticated()
        return self._bucket_manager.get_table(table_id)

    def table_exists(self, table_id: str) -> bool:
        self._ensure_authenticated()
        return self._bucket_manager.table_exists(table_id)

    def create_table_async(self, bucket_id: str, name: str, data_file_id: int,
                           primary_key: Optional[List[str]] = None) -> str:
        self._ensure_authenticated()
        return self._bucket_manager.create_table_async(bucket_id, name, data_file_id, primary_key)

    def create_table_definition(self, bucket_id: str, definition: Dict[str, Any]) -> str:
        self._ensure_authenticated()
        return self._bucket_manager.create_table_definition(bucket_id, definition)

    def post_table_metadata_with_columns(self, table_id: str, provider: str,
                                         table_metadata: List[MetadataEntry],
                                         columns_metadata: Dict[str, List[MetadataEntry]]) -> None:
        self._ensure_authenticated()
        self._bucket_manager.post_table_metadata_with_columns(table_id, provider, table_metadata, columns_metadata)

    # Files
    def export_table_async(self, table_id: str, gzip: bool = True, include_internal_timestamp: bool = False) -> int:
        self._ensure_authenticated()
        return self._file_manager.export_table_async(table_id, gzip, include_internal_timestamp)

    def get_file(self, file_id: int, federation_token: bool = True) -> FileInfo:
        self._ensure_authenticated()
        return self._file_manager.get_file(file_id, federation_token)

    def download_file(self, file_id: int, destination: str) -> str:
        self._ensure_authenticated()
        return self._file_manager.download_file(file_id, destination)

    def download_sliced_file(self, file_id: int, destination_dir: str) -> List[str]:
        self._ensure_authenticated()
        return self._file_manager.download_sliced_file(file_id, destination_dir)

    def upload_file(self, path: str, name: Optional[str] = None) -> int:
        self._ensure_authenticated()
        return self._file_manager.upload_file(path, name)

    def upload_sliced_file(self, paths: List[str], name: str) -> int:
        self._ensure_authenticated()
        return self._file_manager.upload_sliced_file(paths, name)

    def write_table_async_direct(self, table_id: str, data_file_id: int,
                                 columns: Optional[List[str]] = None,
                                 incremental: bool = False,
                                 use_timestamp_from_data_file: bool = False) -> dict:
        self._ensure_authenticated()
        return self._file_manager.write_table_async_direct(
            table_id, data_file_id, columns, incremental, use_timestamp_from_data_file
        )

    def close(self):
        self._auth.close()

    def __enter__(self):
        self.authenticate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _ensure_authenticated(self):
        if not self._authenticated:
            raise ValueError("❌ Not authenticated. Call authenticate() first.")
