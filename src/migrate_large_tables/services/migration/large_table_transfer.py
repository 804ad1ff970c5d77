"""Chunked transfer of very large sliced exports."""

import logging
import os
from typing import Callable, List, Optional

from ...api.object_storage import client_for_file
from ...utils.common import ManifestEntry, TableInfo
from ...utils.config import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


class LargeTableTransfer:
    """
    Streams a sliced export through bounded local storage.

    The manifest is split into chunks. Each chunk gets fresh object storage
    credentials, is downloaded, uploaded as its own sliced file, appended to
    the destination table with an incremental import and removed from disk
    before the next chunk starts. Progress is not persisted; a failed run
    starts again from the first chunk.
    """

    def __init__(self, source, target, dry_run: bool = False,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 client_factory: Optional[Callable] = None):
        """
        Args:
            source: Storage handler of the source project
            target: Storage handler of the destination project
            dry_run: Only log what would be transferred
            chunk_size: Manifest entries per chunk
            client_factory: Builds ``(client, key)`` from a file detail
        """
        self.source = source
        self.target = target
        self.dry_run = dry_run
        self.chunk_size = chunk_size
        self.client_factory = client_factory or client_for_file

    def migrate(self, file_id: int, table_info: TableInfo, preserve_timestamp: bool, tmp_dir: str) -> int:
        """
        Transfer an exported file chunk by chunk.

        Args:
            file_id: Sliced source file produced by the table export
            table_info: Source table detail
            preserve_timestamp: Import ``_timestamp`` from the data files
            tmp_dir: Scratch directory, emptied after every chunk

        Returns:
            int: Number of incremental imports issued
        """
        if self.dry_run:
            logger.info(f"[dry-run] Migrate table {table_info['id']}")
            return 0

        entries = self._read_manifest(file_id)
        chunks = [entries[i:i + self.chunk_size] for i in range(0, len(entries), self.chunk_size)]
        logger.info(
            f"📦 Transferring {len(entries)} slices of {table_info['id']} "
            f"in {len(chunks)} chunks of up to {self.chunk_size}"
        )

        for index, chunk in enumerate(chunks, 1):
            logger.info(f"📦 Processing chunk {index}/{len(chunks)} of {table_info['id']}")
            slices = self._download_chunk(file_id, chunk, tmp_dir)
            try:
                destination_file_id = self.target.upload_sliced_file(slices, table_info['id'])
                self.target.write_table_async_direct(
                    table_info['id'],
                    destination_file_id,
                    columns=table_info['columns'],
                    incremental=True,
                    use_timestamp_from_data_file=preserve_timestamp,
                )
            finally:
                _remove_files(slices)

        logger.info(f"✅ Large table {table_info['id']} transferred in {len(chunks)} chunks")
        return len(chunks)

    def _read_manifest(self, file_id: int) -> List[ManifestEntry]:
        client, prefix = self.client_factory(self.source.get_file(file_id))
        return client.read_manifest(prefix + 'manifest')

    def _download_chunk(self, file_id: int, chunk: List[ManifestEntry], tmp_dir: str) -> List[str]:
        # Credentials are short lived, so every chunk asks for new ones
        client, _ = self.client_factory(self.source.get_file(file_id))

        slices: List[str] = []
        try:
            for entry in chunk:
                destination = os.path.join(tmp_dir, os.path.basename(entry['url']))
                slices.append(destination)
                client.download_entry(entry['url'], destination)
        except Exception:
            _remove_files(slices)
            raise
        return slices


def _remove_files(paths: List[str]) -> None:
    for path in paths:
        if os.path.exists(path):
            os.remove(path)
