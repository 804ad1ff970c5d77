"""
Snowflake API module for warehouse level migration.

This module provides:
- Authentication and connection management
- Query execution with dictionary rows
- Role switching, grants and account introspection

Usage:
    from migrate_large_tables.api.snowflake import SnowflakeHandler

    with SnowflakeHandler(config.db_params) as sf:
        with sf.role_scope("ACCOUNTADMIN"):
            sf.execute('ALTER DATABASE "KEBOOLA_1_REPLICA" REFRESH')
"""

# Main interface
from .handler import SnowflakeHandler, ACCOUNTADMIN

# Individual modules for advanced usage
from .auth import SnowflakeAuth, account_from_host
from .data_handler import SnowflakeDataHandler, quote_identifier

__all__ = [
    'SnowflakeHandler',
    'SnowflakeAuth',
    'SnowflakeDataHandler',
    'ACCOUNTADMIN',
    'account_from_host',
    'quote_identifier',
]
