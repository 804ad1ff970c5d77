"""
Table migration service.

This module moves tables between two projects including:
- Table selection (explicit list or discovery of empty destination tables)
- Bucket, table and metadata recreation on the destination
- File based transfer with chunked handling of very large exports
- Replica database based copy with owning-role negotiation

Usage:
    from migrate_large_tables.api.storage import StorageHandler
    from migrate_large_tables.services.migration import MigrationOrchestrator, create_strategy
    from migrate_large_tables.utils import MigrationConfig

    config = MigrationConfig.from_data_dir()
    with StorageHandler(config.source_kbc_url, config.source_kbc_token) as source, \\
            StorageHandler(kbc_url, kbc_token) as target:
        strategy = create_strategy(config, source, target)
        results = MigrationOrchestrator(strategy).run(config)
"""

# Main interface
from .migration_orchestrator import MigrationOrchestrator, create_strategy, resolve_database_names
from .strategy import (
    MigrationStrategy,
    RESULT_DRY_RUN,
    RESULT_FAILED,
    RESULT_IMPORTED,
    RESULT_SKIPPED,
    RESULT_UP_TO_DATE,
)

# Components
from .database_migrate import DatabaseMigrate
from .database_replication import DatabaseReplication
from .large_table_transfer import LargeTableTransfer
from .role_resolver import RoleResolver
from .sapi_migrate import SapiMigrate
from .storage_modifier import StorageModifier
from .table_selector import TableSelector

__all__ = [
    'MigrationOrchestrator',
    'MigrationStrategy',
    'create_strategy',
    'resolve_database_names',
    'DatabaseMigrate',
    'DatabaseReplication',
    'LargeTableTransfer',
    'RoleResolver',
    'SapiMigrate',
    'StorageModifier',
    'TableSelector',
    'RESULT_DRY_RUN',
    'RESULT_FAILED',
    'RESULT_IMPORTED',
    'RESULT_SKIPPED',
    'RESULT_UP_TO_DATE',
]
