"""
Storage API module.

Usage:
    from migrate_large_tables.api.storage import StorageHandler

    # Initialize and authenticate
    storage = StorageHandler("https://connection.keboola.com", token)
    storage.authenticate()

    # Inspect a table
    table = storage.get_table("in.c-sales.orders")

    # Export it into a file
    file_id = storage.export_table_async(table["id"])
"""

# Main interface
from .handler import StorageHandler

# Individual modules for advanced usage
from .auth import StorageAuth
from .bucket_manager import StorageBucketManager
from .file_manager import StorageFileManager
from .jobs import wait_for_job
from .utils import write_header_csv

__all__ = [
    'StorageHandler',
    'StorageAuth',
    'StorageBucketManager',
    'StorageFileManager',
    'wait_for_job',
    'write_header_csv',
]
