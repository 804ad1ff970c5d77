"""Storage API bucket and table management module."""

import logging
from typing import Any, Dict, List, Optional

from .auth import StorageAuth
from .jobs import wait_for_job
from ...exceptions import StorageApiError
from ...utils.common import BucketInfo, MetadataEntry, TableInfo

logger = logging.getLogger(__name__)


class StorageBucketManager:
    """Handles bucket, table and metadata operations."""

    def __init__(self, auth: StorageAuth):
        self.auth = auth

    # Buckets
    def list_buckets(self) -> List[BucketInfo]:
        """List all buckets of the project."""
        buckets = self.auth.request('GET', 'buckets') or []
        logger.info(f"🔍 Found {len(buckets)} buckets")
        return buckets

    def bucket_exists(self, bucket_id: str) -> bool:
        try:
            self.auth.request('GET', f"buckets/{bucket_id}")
        except StorageApiError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    def create_bucket(self, name: str, stage: str, backend: Optional[str] = None) -> BucketInfo:
        """
        Create a bucket.

        Args:
            name: Bucket name without the 'c-' prefix
            stage: 'in' or 'out'
            backend: Optional backend override

        Returns:
            BucketInfo: The created bucket
        """
        data = {'name': name, 'stage': stage}
        if backend:
            data['backend'] = backend
        bucket = self.auth.request('POST', 'buckets', data=data)
        logger.info(f"📁 Created bucket {bucket.get('id', f'{stage}.c-{name}')}")
        return bucket

    def refresh_table_information_in_bucket(self, bucket_id: str) -> None:
        """Ask the platform to re-read table sizes and row counts of a bucket."""
        job = self.auth.request('POST', f"buckets/{bucket_id}/refresh")
        if job and 'id' in job:
            wait_for_job(self.auth, job)
        logger.info(f"🔄 Refreshed table information in bucket {bucket_id}")

    # Tables
    def list_tables(self, bucket_id: str) -> List[TableInfo]:
        return self.auth.request('GET', f"buckets/{bucket_id}/tables") or []

    def get_table(self, table_id: str) -> TableInfo:
        return self.auth.request('GET', f"tables/{table_id}", params={'include': 'columns,metadata,columnMetadata'})

    def table_exists(self, table_id: str) -> bool:
        try:
            self.auth.request('GET', f"tables/{table_id}")
        except StorageApiError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    def create_table_async(self, bucket_id: str, name: str, data_file_id: int,
                           primary_key: Optional[List[str]] = None) -> str:
        """
        Create an untyped table from an uploaded CSV file.

        Returns:
            str: The id of the new table
        """
        data = {
            'name': name,
            'dataFileId': data_file_id,
            'primaryKey': ','.join(primary_key or []),
        }
        job = self.auth.request('POST', f"buckets/{bucket_id}/tables-async", data=data)
        results = wait_for_job(self.auth, job)
        table_id = results.get('id', f"{bucket_id}.{name}")
        logger.info(f"📋 Created table {table_id}")
        return table_id

    def create_table_definition(self, bucket_id: str, definition: Dict[str, Any]) -> str:
        """
        Create a typed table from a column definition.

        Args:
            bucket_id: Target bucket
            definition: ``{name, primaryKeysNames, columns[, distribution, index]}``

        Returns:
            str: The id of the new table
        """
        job = self.auth.request('POST', f"buckets/{bucket_id}/tables-definition", json=definition)
        results = wait_for_job(self.auth, job)
        table_id = results.get('id', f"{bucket_id}.{definition['name']}")
        logger.info(f"📋 Created typed table {table_id}")
        return table_id

    # Metadata
    def post_table_metadata_with_columns(self, table_id: str, provider: str,
                                         table_metadata: List[MetadataEntry],
                                         columns_metadata: Dict[str, List[MetadataEntry]]) -> None:
        """Write table and column metadata of one provider in a single call."""
        payload = {
            'provider': provider,
            'metadata': [{'key': m['key'], 'value': m['value']} for m in table_metadata],
            'columnsMetadata': {
                column: [{'key': m['key'], 'value': m['value']} for m in entries]
                for column, entries in columns_metadata.items()
            },
        }
        self.auth.request('POST', f"tables/{table_id}/metadata", json=payload)
        logger.debug(f"Restored '{provider}' metadata of {table_id}")
