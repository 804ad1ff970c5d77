"""Storage API file export, transfer and import module."""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import requests

from .auth import StorageAuth
from .jobs import wait_for_job
from ..object_storage import client_for_file, client_for_upload
from ...exceptions import StorageApiError
from ...utils.common import FileInfo

logger = logging.getLogger(__name__)

_DOWNLOAD_CHUNK_BYTES = 8 * 1024 * 1024


class StorageFileManager:
    """Handles table exports, file transfers and table imports."""

    def __init__(self, auth: StorageAuth):
        self.auth = auth

    def export_table_async(self, table_id: str, gzip: bool = True,
                           include_internal_timestamp: bool = False) -> int:
        """
        Export a table into a Storage API file.

        Args:
            table_id: Table to export
            gzip: Compress the exported file
            include_internal_timestamp: Add the ``_timestamp`` column to the export

        Returns:
            int: Id of the exported file
        """
        logger.info(f"📤 Exporting table {table_id}")
        job = self.auth.request('POST', f"tables/{table_id}/export-async", data={
            'gzip': int(gzip),
            'includeInternalTimestamp': int(include_internal_timestamp),
        })
        results = wait_for_job(self.auth, job)
        file_id = results['file']['id']
        logger.info(f"✅ Table {table_id} exported to file {file_id}")
        return file_id

    def get_file(self, file_id: int, federation_token: bool = True) -> FileInfo:
        """Get file detail, with object storage credentials when ``federation_token`` is set."""
        params = {'federationToken': 1} if federation_token else None
        return self.auth.request('GET', f"files/{file_id}", params=params)

    def download_file(self, file_id: int, destination: str) -> str:
        """Download a single (non-sliced) file to ``destination``."""
        file_info = self.get_file(file_id, federation_token=False)
        try:
            with requests.get(file_info['url'], stream=True, timeout=self.auth.timeout) as response:
                response.raise_for_status()
                with open(destination, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_BYTES):
                        f.write(chunk)
        except requests.RequestException as e:
            raise StorageApiError(f"Download of file {file_id} failed: {e}") from e

        logger.info(f"📥 Downloaded file {file_id} to {destination}")
        return destination

    def download_sliced_file(self, file_id: int, destination_dir: str) -> List[str]:
        """
        Download every slice of a sliced file.

        Returns:
            List[str]: Local paths of the downloaded slices, in manifest order
        """
        file_info = self.get_file(file_id)
        client, prefix = client_for_file(file_info)
        entries = client.read_manifest(prefix + 'manifest')

        Path(destination_dir).mkdir(parents=True, exist_ok=True)
        paths = []
        for entry in entries:
            destination = os.path.join(destination_dir, os.path.basename(entry['url']))
            client.download_entry(entry['url'], destination)
            paths.append(destination)

        logger.info(f"📥 Downloaded {len(paths)} slices of file {file_id} to {destination_dir}")
        return paths

    def prepare_file(self, name: str, size_bytes: int = 0, is_sliced: bool = False) -> dict:
        """Register a new file and obtain upload credentials for it."""
        return self.auth.request('POST', 'files/prepare', data={
            'name': name,
            'sizeBytes': size_bytes,
            'isSliced': int(is_sliced),
            'federationToken': 1,
        })

    def upload_file(self, path: str, name: Optional[str] = None) -> int:
        """
        Upload a local file.

        Returns:
            int: Id of the new Storage API file
        """
        name = name or os.path.basename(path)
        prepared = self.prepare_file(name, size_bytes=os.path.getsize(path))
        client, key = client_for_upload(prepared)
        client.upload_file(key, path)
        logger.info(f"📤 Uploaded {path} as file {prepared['id']}")
        return prepared['id']

    def upload_sliced_file(self, paths: List[str], name: str) -> int:
        """
        Upload slices and a manifest referencing all of them.

        Returns:
            int: Id of the new sliced Storage API file
        """
        total_size = sum(os.path.getsize(p) for p in paths)
        prepared = self.prepare_file(name, size_bytes=total_size, is_sliced=True)
        client, prefix = client_for_upload(prepared)

        entries = []
        for path in paths:
            key = prefix + os.path.basename(path)
            client.upload_file(key, path)
            entries.append({'url': client.entry_url(key), 'mandatory': True})

        client.upload_bytes(prefix + 'manifest', json.dumps({'entries': entries}).encode('utf-8'))
        logger.info(f"📤 Uploaded {len(paths)} slices as file {prepared['id']}")
        return prepared['id']

    def write_table_async_direct(self, table_id: str, data_file_id: int,
                                 columns: Optional[List[str]] = None,
                                 incremental: bool = False,
                                 use_timestamp_from_data_file: bool = False) -> dict:
        """
        Load an uploaded file into an existing table.

        Args:
            table_id: Target table
            data_file_id: File previously uploaded or exported
            columns: Column order of the file when it has no header
            incremental: Append instead of replacing the table content
            use_timestamp_from_data_file: Take ``_timestamp`` from the file

        Returns:
            dict: Results of the import job
        """
        data = {
            'dataFileId': data_file_id,
            'incremental': int(incremental),
            'useTimestampFromDataFile': int(use_timestamp_from_data_file),
        }
        if columns:
            data['columns[]'] = columns

        job = self.auth.request('POST', f"tables/{table_id}/import-async", data=data)
        results = wait_for_job(self.auth, job)
        logger.info(f"📥 Imported file {data_file_id} into {table_id}{' (incremental)' if incremental else ''}")
        return results
