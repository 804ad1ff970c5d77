"""
Object storage clients for Storage API files.

Exported and prepared files live in the stack's own object storage. The
Storage API hands out short lived credentials for them; these helpers turn
a file detail (or an upload preparation) into a client for that storage.

Usage:
    from migrate_large_tables.api.object_storage import client_for_file

    client, key = client_for_file(file_info)
    entries = client.read_manifest(key + 'manifest')
"""

from typing import Any, Dict, Tuple

from .gcs import GcsFileClient
from .s3 import S3FileClient
from ...exceptions import UnsupportedFileProviderError
from ...utils.common import FileInfo

PROVIDER_AWS = "aws"
PROVIDER_GCP = "gcp"


def client_for_file(file_info: FileInfo) -> Tuple[Any, str]:
    """
    Build a client for a file fetched with ``federationToken``.

    Returns:
        Tuple: (client, object key or slice prefix of the file)
    """
    provider = file_info.get('provider', PROVIDER_AWS)
    if provider == PROVIDER_AWS:
        path = file_info['s3Path']
        client = S3FileClient(path['bucket'], file_info['credentials'], region=file_info.get('region'))
        return client, path['key']
    if provider == PROVIDER_GCP:
        path = file_info['gcsPath']
        return GcsFileClient(path['bucket'], file_info['gcsCredentials']), path['key']
    raise UnsupportedFileProviderError(provider)


def client_for_upload(prepared: Dict[str, Any]) -> Tuple[Any, str]:
    """
    Build a client for a file created by ``files/prepare``.

    Returns:
        Tuple: (client, object key the content must be written to)
    """
    provider = prepared.get('provider', PROVIDER_AWS)
    if provider == PROVIDER_AWS:
        params = prepared['uploadParams']
        client = S3FileClient(params['bucket'], params['credentials'], region=prepared.get('region'))
        return client, params['key']
    if provider == PROVIDER_GCP:
        params = prepared['gcsUploadParams']
        return GcsFileClient(params['bucket'], params), params['key']
    raise UnsupportedFileProviderError(provider)


__all__ = [
    'GcsFileClient',
    'S3FileClient',
    'client_for_file',
    'client_for_upload',
    'PROVIDER_AWS',
    'PROVIDER_GCP',
]
