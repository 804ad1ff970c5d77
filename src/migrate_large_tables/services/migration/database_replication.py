"""Bulk setup of cross-account replicas for a range of projects."""

import logging
import time
from typing import List, Tuple

from ...api.snowflake import ACCOUNTADMIN, quote_identifier
from ...exceptions import StackMappingError
from ...utils.common import is_safe_account_token
from ...utils.config import MigrationConfig

logger = logging.getLogger(__name__)

# Time for the source account to propagate the replication grant
REPLICATION_PROPAGATION_SECONDS = 5


class DatabaseReplication:
    """Enables replication on source databases and creates their replicas on the target account."""

    def __init__(self, source_connection, target_connection, wait_seconds: float = REPLICATION_PROPAGATION_SECONDS):
        self.source_connection = source_connection
        self.target_connection = target_connection
        self.wait_seconds = wait_seconds

    def create_replications(self, config: MigrationConfig) -> List[str]:
        """
        Create replicas for every existing project database in the configured id range.

        Returns:
            List[str]: Names of the replica databases created (or already present)
        """
        with self.source_connection.role_scope(ACCOUNTADMIN):
            databases = {row['name'] for row in self.source_connection.fetch_all('SHOW DATABASES')}

        replicas = []
        for project_id in range(config.project_id_from, config.project_id_to + 1):
            source_database = f"{config.source_database_prefix}_{project_id}"
            if source_database not in databases:
                logger.debug(f"Database {source_database} does not exist on the source account")
                continue

            replica_database = f"{config.replica_database_prefix}_{project_id}_REPLICA"
            self.create_replication(source_database, replica_database)
            replicas.append(replica_database)

        logger.info(f"🎉 Created {len(replicas)} replica databases")
        return replicas

    def create_replication(self, source_database: str, replica_database: str) -> None:
        target_region, target_account = _location(self.target_connection)
        source_region, source_account = _location(self.source_connection)

        logger.info(f"🔓 Enabling replication on database {source_database}")
        with self.source_connection.role_scope(ACCOUNTADMIN):
            self.source_connection.execute(
                f"ALTER DATABASE {quote_identifier(source_database)} "
                f"ENABLE REPLICATION TO ACCOUNTS {target_region}.{target_account}"
            )

        time.sleep(self.wait_seconds)

        logger.info(f"🧬 Creating replica database {replica_database}")
        with self.target_connection.role_scope(ACCOUNTADMIN):
            self.target_connection.execute(
                f"CREATE DATABASE IF NOT EXISTS {quote_identifier(replica_database)} "
                f"AS REPLICA OF {source_region}.{source_account}.{quote_identifier(source_database)}"
            )
        logger.info(f"✅ Replica database {replica_database} created")


def _location(connection) -> Tuple[str, str]:
    region, account = connection.get_region(), connection.get_account()
    for value in (region, account):
        if not is_safe_account_token(value or ''):
            raise StackMappingError(f"Invalid warehouse region/account value: '{value}'")
    return region, account
