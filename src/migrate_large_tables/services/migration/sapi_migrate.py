"""File based migration: export, download, upload and import through the Storage API."""

import logging
import os
import tempfile
from typing import Dict, Optional, Set

from .large_table_transfer import LargeTableTransfer
from .storage_modifier import StorageModifier
from .strategy import (
    RESULT_DRY_RUN,
    RESULT_FAILED,
    RESULT_IMPORTED,
    RESULT_SKIPPED,
)
from .table_selector import TableSelector
from ...api.object_storage import PROVIDER_GCP
from ...exceptions import MigrationError, SkipTableException, StorageApiError
from ...utils.common import FileInfo, TableInfo
from ...utils.config import DEFAULT_CHUNK_SIZE, DEFAULT_LARGE_TABLE_THRESHOLD_BYTES, MigrationConfig

logger = logging.getLogger(__name__)

SYS_STAGE = "sys"


class SapiMigrate:
    """Migrates tables by moving their exported files between projects."""

    def __init__(self, source, target, dry_run: bool = False,
                 large_table_threshold_bytes: int = DEFAULT_LARGE_TABLE_THRESHOLD_BYTES,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 large_table_transfer: Optional[LargeTableTransfer] = None):
        """
        Args:
            source: Storage handler of the source project
            target: Storage handler of the destination project
            dry_run: Log mutating steps instead of running them
            large_table_threshold_bytes: Sliced GCS exports above this size are chunked
            chunk_size: Manifest entries per chunk on the large table path
            large_table_transfer: Chunked transfer to use instead of the default one
        """
        self.source = source
        self.target = target
        self.dry_run = dry_run
        self.large_table_threshold_bytes = large_table_threshold_bytes
        self.storage_modifier = StorageModifier(target)
        self.table_selector = TableSelector(source, target)
        self.large_table_transfer = large_table_transfer or LargeTableTransfer(
            source, target, dry_run=dry_run, chunk_size=chunk_size
        )
        self.buckets_exist: Set[str] = set()

    def migrate(self, config: MigrationConfig) -> Dict[str, str]:
        """
        Migrate the configured (or discovered) tables one by one.

        Returns:
            Dict[str, str]: Table id -> outcome
        """
        results: Dict[str, str] = {}
        table_ids = self.table_selector.select_tables(config.migrate_tables)
        total = len(table_ids)
        logger.info(f"🚀 Starting file based migration of {total} tables{' (dry-run)' if self.dry_run else ''}")

        for i, table_id in enumerate(table_ids, 1):
            logger.info(f"📊 Processing table {i}/{total}: {table_id}")
            try:
                results[table_id] = self.migrate_table(table_id, config)
            except SkipTableException as e:
                logger.warning(f"⚠️ Skipping table {table_id}: {e}")
                results[table_id] = RESULT_SKIPPED
            except (MigrationError, OSError) as e:
                logger.error(f"❌ Migration of table {table_id} failed: {e}")
                results[table_id] = RESULT_FAILED

        return results

    def migrate_table(self, table_id: str, config: MigrationConfig) -> str:
        """Run guard, schema ensure and data transfer for one table."""
        try:
            table_info = self.source.get_table(table_id)
        except StorageApiError as e:
            logger.warning(f'⚠️ Skipping migration Table ID "{table_id}". Reason: "{e}".')
            return RESULT_SKIPPED

        if table_info['bucket']['stage'] == SYS_STAGE:
            logger.warning(f"⚠️ Skipping table {table_id} (sys bucket)")
            return RESULT_SKIPPED

        if table_info.get('isAlias'):
            logger.warning(f"⚠️ Skipping table {table_id} (alias)")
            return RESULT_SKIPPED

        self._ensure_bucket(table_info['bucket']['id'])
        self._ensure_table(table_info)
        self._transfer_data(table_info, config.preserve_timestamp)

        return RESULT_DRY_RUN if self.dry_run else RESULT_IMPORTED

    def _ensure_bucket(self, bucket_id: str) -> None:
        if bucket_id in self.buckets_exist:
            return

        if self.target.bucket_exists(bucket_id):
            self.buckets_exist.add(bucket_id)
            return

        if self.dry_run:
            logger.info(f"[dry-run] Creating bucket {bucket_id}")
            return

        logger.info(f"📁 Creating bucket {bucket_id}")
        self.storage_modifier.create_bucket(bucket_id)
        self.buckets_exist.add(bucket_id)

    def _ensure_table(self, table_info: TableInfo) -> None:
        if self.target.table_exists(table_info['id']):
            return

        if self.dry_run:
            logger.info(f"[dry-run] Creating table {table_info['id']}")
            return

        logger.info(f"📋 Creating table {table_info['id']}")
        self.storage_modifier.create_table(table_info)

    def _transfer_data(self, table_info: TableInfo, preserve_timestamp: bool) -> None:
        table_id = table_info['id']
        logger.info(f"📤 Exporting table {table_id}")
        file_id = self.source.export_table_async(
            table_id, gzip=True, include_internal_timestamp=preserve_timestamp
        )
        file_info = self.source.get_file(file_id)

        with tempfile.TemporaryDirectory(prefix='migrate-') as tmp_dir:
            if self.is_large_sliced_file(file_info):
                logger.info(f"📦 Table {table_id} export is {file_info.get('sizeBytes')} bytes, using chunked transfer")
                self.large_table_transfer.migrate(file_id, table_info, preserve_timestamp, tmp_dir)
                return

            logger.info(f"📥 Downloading table {table_id}")
            if file_info.get('isSliced'):
                slices = self.source.download_sliced_file(file_id, tmp_dir)
                if self.dry_run:
                    logger.info(f"[dry-run] Uploading table {table_id}")
                    destination_file_id = None
                else:
                    logger.info(f"📤 Uploading table {table_id}")
                    destination_file_id = self.target.upload_sliced_file(slices, table_id)
            else:
                path = os.path.join(tmp_dir, file_info['name'])
                self.source.download_file(file_id, path)
                if self.dry_run:
                    logger.info(f"[dry-run] Uploading table {table_id}")
                    destination_file_id = None
                else:
                    logger.info(f"📤 Uploading table {table_id}")
                    destination_file_id = self.target.upload_file(path, table_id)

        if self.dry_run:
            logger.info(f'[dry-run] Import data to table "{table_info["name"]}"')
            return

        self.target.write_table_async_direct(
            table_id,
            destination_file_id,
            columns=table_info['columns'],
            use_timestamp_from_data_file=preserve_timestamp,
        )
        logger.info(f"✅ Table {table_id} imported")

    def is_large_sliced_file(self, file_info: FileInfo) -> bool:
        return (
            bool(file_info.get('isSliced'))
            and file_info.get('provider') == PROVIDER_GCP
            and (file_info.get('sizeBytes') or 0) > self.large_table_threshold_bytes
        )
