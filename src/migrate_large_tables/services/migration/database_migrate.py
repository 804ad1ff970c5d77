"""Warehouse level migration through a cross-account replica database."""

import logging
from typing import Dict, List, Optional

from snowflake.connector.errors import Error as SnowflakeError

from .role_resolver import RoleResolver
from .storage_modifier import StorageModifier
from .strategy import (
    RESULT_DRY_RUN,
    RESULT_FAILED,
    RESULT_IMPORTED,
    RESULT_UP_TO_DATE,
)
from ...api.snowflake import ACCOUNTADMIN, quote_identifier
from ...exceptions import MigrationError
from ...utils.config import MigrationConfig

logger = logging.getLogger(__name__)

SKIP_CLONE_SCHEMAS = ('INFORMATION_SCHEMA', 'PUBLIC')
WORKSPACE_SCHEMA_PREFIX = 'WORKSPACE'
DYNAMIC_BACKEND_FEATURE = 'workspace-snowflake-dynamic-backend-size'
SMALL_WAREHOUSE_SUFFIX = '_SMALL'
TIMESTAMP_COLUMN = '_timestamp'


class DatabaseMigrate:
    """
    Copies tables from a replica of the source project database.

    The replica is created (or reused) and refreshed under ACCOUNTADMIN,
    every table is copied under the role that owns it on the destination,
    and the replica is dropped once the run completes. Tables whose newest
    ``_timestamp`` already matches the replica are left untouched.
    """

    def __init__(self, connection, source, target, source_database: str,
                 target_database: str, replica_database: Optional[str] = None,
                 dry_run: bool = False):
        """
        Args:
            connection: Connected ``SnowflakeHandler`` of the destination account
            source: Storage handler of the source project
            target: Storage handler of the destination project
            source_database: Source project database (or BYODB database)
            target_database: Destination project database
            replica_database: Name of the replica, ``<target_database>_REPLICA`` by default
            dry_run: Log table level mutations instead of running them
        """
        self.connection = connection
        self.source = source
        self.target = target
        self.source_database = source_database
        self.target_database = target_database
        self.replica_database = replica_database or f"{target_database}_REPLICA"
        self.dry_run = dry_run
        self.role_resolver = RoleResolver(connection)
        self.storage_modifier = StorageModifier(target)

    def migrate(self, config: MigrationConfig) -> Dict[str, str]:
        """
        Run the replica based migration.

        Returns:
            Dict[str, str]: ``schema.table`` -> outcome
        """
        region, account = config.get_source_database_location()
        logger.info(
            f"🚀 Starting database migration {region}.{account}.{self.source_database} -> "
            f"{self.target_database}{' (dry-run)' if self.dry_run else ''}"
        )

        if self.dry_run:
            logger.info(f"[dry-run] Creating and refreshing replica database {self.replica_database}")
        else:
            with self.connection.role_scope(ACCOUNTADMIN):
                self.create_replica_database(region, account)
                self.refresh_replica_database(config.target_warehouse)

        database_role = self.role_resolver.get_owner_role('DATABASE', quote_identifier(self.target_database))
        logger.info(f"🔑 Destination database {self.target_database} is owned by {database_role}")

        results: Dict[str, str] = {}
        with self.role_resolver.adopt_role(database_role, grant_first=True, dry_run=self.dry_run):
            if DYNAMIC_BACKEND_FEATURE in self.target.project_features:
                self.connection.use_warehouse(config.target_warehouse + SMALL_WAREHOUSE_SUFFIX)
            self.connection.use_database(self.target_database)

            for schema_name in self._list_schemas():
                if not self._should_migrate_schema(schema_name, config):
                    continue

                if not self.target.bucket_exists(schema_name):
                    if self.dry_run:
                        logger.info(f'[dry-run] Creating bucket "{schema_name}".')
                    else:
                        logger.info(f'📁 Creating bucket "{schema_name}".')
                        self.storage_modifier.create_bucket(schema_name)

                results.update(self.migrate_schema(config.migrate_tables, schema_name))

        if not self.dry_run:
            self.drop_replica_database()

        return results

    # Replica lifecycle
    def create_replica_database(self, region: str, account: str) -> None:
        logger.info(f"🧬 Creating replica database {self.replica_database}")
        self.connection.execute(
            f"CREATE DATABASE IF NOT EXISTS {quote_identifier(self.replica_database)} "
            f"AS REPLICA OF {region}.{account}.{quote_identifier(self.source_database)}"
        )
        logger.info(f"✅ Replica database {self.replica_database} created")

    def refresh_replica_database(self, warehouse: str) -> None:
        self.connection.use_database(self.replica_database)
        self.connection.use_schema('PUBLIC')
        self.connection.use_warehouse(warehouse)

        logger.info(f"🔄 Refreshing replica database {self.replica_database}")
        self.connection.execute(f"ALTER DATABASE {quote_identifier(self.replica_database)} REFRESH")

    def drop_replica_database(self) -> None:
        logger.info(f"🗑️ Dropping replica database {self.replica_database}")
        with self.connection.role_scope(ACCOUNTADMIN):
            self.connection.execute(f"DROP DATABASE {quote_identifier(self.replica_database)}")

    # Schemas
    def _list_schemas(self) -> List[str]:
        if self.dry_run:
            # The replica is not created in dry-run; its schemas mirror the source buckets
            return [bucket['id'] for bucket in self.source.list_buckets()]

        with self.connection.role_scope(ACCOUNTADMIN):
            rows = self.connection.fetch_all(f"SHOW SCHEMAS IN DATABASE {quote_identifier(self.replica_database)}")
        return [row['name'] for row in rows]

    def _should_migrate_schema(self, schema_name: str, config: MigrationConfig) -> bool:
        if schema_name in SKIP_CLONE_SCHEMAS:
            return False

        if schema_name.startswith(WORKSPACE_SCHEMA_PREFIX) and schema_name not in config.include_workspace_schemas:
            logger.info(f"⏭️ Skipping workspace schema {schema_name}")
            return False

        if schema_name not in config.include_external_schemas and not self.source.bucket_exists(schema_name):
            logger.info(f"⏭️ Skipping schema {schema_name} (no source bucket)")
            return False

        return True

    def _list_tables(self, schema_name: str) -> List[str]:
        if self.dry_run:
            return [table['name'] for table in self.source.list_tables(schema_name)]

        with self.connection.role_scope(ACCOUNTADMIN):
            rows = self.connection.fetch_all(
                f"SHOW TABLES IN SCHEMA {quote_identifier(self.replica_database)}.{quote_identifier(schema_name)}"
            )
        return [row['name'] for row in rows]

    def migrate_schema(self, tables_whitelist: List[str], schema_name: str) -> Dict[str, str]:
        """Migrate the tables of one schema and refresh the bucket's table information."""
        logger.info(f"📂 Migrating schema {schema_name}")
        results: Dict[str, str] = {}

        for table_name in self._list_tables(schema_name):
            table_id = f"{schema_name}.{table_name}"
            if tables_whitelist and table_id not in tables_whitelist:
                continue

            if self.dry_run:
                logger.info(f"[dry-run] Migrating table {table_id}")
                results[table_id] = RESULT_DRY_RUN
                continue

            try:
                if not self.target.table_exists(table_id):
                    logger.info(f'📋 Creating table "{table_id}".')
                    self.storage_modifier.create_table(self.source.get_table(table_id))

                results[table_id] = self.migrate_table(schema_name, table_name)
            except (MigrationError, SnowflakeError, OSError) as e:
                logger.warning(f"⚠️ Skipping table {table_id}: {e}")
                results[table_id] = RESULT_FAILED

        if self.dry_run:
            logger.info(f"[dry-run] Refreshing table information in bucket {schema_name}")
        else:
            logger.info(f"🔄 Refreshing table information in bucket {schema_name}")
            self.target.refresh_table_information_in_bucket(schema_name)

        return results

    # Tables
    def migrate_table(self, schema_name: str, table_name: str) -> str:
        """
        Copy one table from the replica unless it already converged.

        Returns:
            str: ``up_to_date``, ``imported`` or ``failed``
        """
        logger.info(f"📊 Migrating table {schema_name}.{table_name}")
        table_role = self.role_resolver.get_owner_role(
            'TABLE', self._qualified(self.target_database, schema_name, table_name)
        )

        with self.role_resolver.adopt_role(table_role):
            self.role_resolver.grant_replica_privileges(self.replica_database, table_role)
            columns = self.connection.get_table_columns(self.target_database, schema_name, table_name)

            if self.is_converged(table_role, schema_name, table_name):
                logger.info(f"✅ Table {schema_name}.{table_name} is up to date")
                return RESULT_UP_TO_DATE

            target_table = self._qualified(self.target_database, schema_name, table_name)
            replica_table = self._qualified(self.replica_database, schema_name, table_name)
            column_list = ', '.join(quote_identifier(c) for c in columns)
            try:
                logger.info(f"🗑️ Truncating table {target_table}")
                self.connection.execute(f"TRUNCATE TABLE {target_table}")

                logger.info(f"📥 Copying {len(columns)} columns from {replica_table} into {target_table}")
                self.connection.execute(
                    f"INSERT INTO {target_table} ({column_list}) SELECT {column_list} FROM {replica_table}"
                )
            except SnowflakeError as e:
                logger.warning(f"⚠️ Error while migrating table {schema_name}.{table_name}: {e}")
                return RESULT_FAILED

        logger.info(f"✅ Table {schema_name}.{table_name} migrated")
        return RESULT_IMPORTED

    def is_converged(self, table_role: str, schema_name: str, table_name: str) -> bool:
        """
        Compare the newest ``_timestamp`` of the replica and the destination copy.

        Any warehouse error (e.g. the destination table is not readable yet)
        means the table is not converged.
        """
        try:
            with self.connection.role_scope(ACCOUNTADMIN):
                replica_timestamp = self._max_timestamp(self.replica_database, schema_name, table_name)
            with self.connection.role_scope(table_role):
                target_timestamp = self._max_timestamp(self.target_database, schema_name, table_name)
        except SnowflakeError as e:
            logger.info(f"🔍 Cannot compare timestamps of {schema_name}.{table_name}, copying it ({e})")
            return False

        return replica_timestamp == target_timestamp

    def _max_timestamp(self, database: str, schema_name: str, table_name: str):
        rows = self.connection.fetch_all(
            f'SELECT max({quote_identifier(TIMESTAMP_COLUMN)}) AS "maxTimestamp" '
            f'FROM {self._qualified(database, schema_name, table_name)}'
        )
        return rows[0]['maxTimestamp']

    @staticmethod
    def _qualified(database: str, schema_name: str, table_name: str) -> str:
        return '.'.join(quote_identifier(part) for part in (database, schema_name, table_name))
