"""Main Snowflake handler - orchestrates all Snowflake operations."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .auth import SnowflakeAuth
from .data_handler import SnowflakeDataHandler, quote_identifier

logger = logging.getLogger(__name__)

ACCOUNTADMIN = "ACCOUNTADMIN"


class SnowflakeHandler:
    """Main handler for all Snowflake operations on one account."""

    def __init__(self, params: Dict[str, str]):
        """
        Args:
            params: ``{host, user, password, warehouse}`` connection parameters
        """
        self._auth = SnowflakeAuth(params)
        self._data_handler: Optional[SnowflakeDataHandler] = None
        self._connected = False
        self._region: Optional[str] = None
        self._account: Optional[str] = None
        self.user = params['user']

    def setup_connection(self) -> bool:
        """Setup Snowflake connection and initialize components."""
        if self._auth.setup_connection():
            self._data_handler = SnowflakeDataHandler(self._auth.get_connection())
            self._connected = True
            logger.info("✅ SnowflakeHandler ready")
            return True

        logger.error("❌ Failed to setup Snowflake connection")
        return False

    # Queries
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> None:
        self._ensure_connected()
        self._data_handler.execute(query, params)

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        self._ensure_connected()
        return self._data_handler.fetch_all(query, params)

    def get_table_columns(self, database: str, schema: str, table_name: str) -> List[str]:
        """Get column names of a table in ordinal order."""
        self._ensure_connected()
        return self._data_handler.get_table_columns(database, schema, table_name)

    # Session context
    def use_role(self, role: str) -> None:
        self.execute(f"USE ROLE {quote_identifier(role)}")

    def use_database(self, database: str) -> None:
        self.execute(f"USE DATABASE {quote_identifier(database)}")

    def use_schema(self, schema: str) -> None:
        self.execute(f"USE SCHEMA {quote_identifier(schema)}")

    def use_warehouse(self, warehouse: str) -> None:
        self.execute(f"USE WAREHOUSE {quote_identifier(warehouse)}")

    def get_current_role(self) -> str:
        return self.fetch_all('SELECT CURRENT_ROLE() AS "role"')[0]['role']

    @contextmanager
    def role_scope(self, role: str) -> Iterator[None]:
        """Run the block under ``role`` and switch back to the previous role afterwards."""
        previous_role = self.get_current_role()
        self.use_role(role)
        try:
            yield
        finally:
            self.use_role(previous_role)

    def get_region(self) -> str:
        if self._region is None:
            self._region = self.fetch_all('SELECT CURRENT_REGION() AS "region"')[0]['region']
        return self._region

    def get_account(self) -> str:
        if self._account is None:
            self._account = self.fetch_all('SELECT CURRENT_ACCOUNT() AS "account"')[0]['account']
        return self._account

    # Grants
    def show_grants_on(self, object_kind: str, object_name: str) -> List[Dict[str, Any]]:
        """
        List grants on an object.

        Args:
            object_kind: ``DATABASE``, ``SCHEMA`` or ``TABLE``
            object_name: Already quoted object name
        """
        return self.fetch_all(f"SHOW GRANTS ON {object_kind} {object_name}")

    def grant_role_to_user(self, role: str, user: Optional[str] = None) -> None:
        """Grant ``role`` to the connected (or given) user, as ACCOUNTADMIN."""
        user = user or self.user
        with self.role_scope(ACCOUNTADMIN):
            self.execute(f"GRANT ROLE {quote_identifier(role)} TO USER {quote_identifier(user)}")
        logger.info(f"🔑 Granted role {role} to user {user}")

    def grant_privileges_to_replica_database(self, role: str, database: str) -> None:
        """Let ``role`` read every table of the replica database."""
        role_q = quote_identifier(role)
        database_q = quote_identifier(database)
        with self.role_scope(ACCOUNTADMIN):
            self.execute(f"GRANT USAGE ON DATABASE {database_q} TO ROLE {role_q}")
            self.execute(f"GRANT USAGE ON ALL SCHEMAS IN DATABASE {database_q} TO ROLE {role_q}")
            self.execute(f"GRANT SELECT ON ALL TABLES IN DATABASE {database_q} TO ROLE {role_q}")
        logger.debug(f"Granted read access on {database} to role {role}")

    # Connection Management
    def cleanup(self):
        """Close connection and cleanup resources."""
        self._auth.close_connection()
        self._connected = False

    def _ensure_connected(self):
        if not self._connected:
            raise ValueError("❌ Not connected to Snowflake. Call setup_connection() first.")

    def __enter__(self):
        if not self.setup_connection():
            raise ConnectionError("Failed to setup Snowflake connection")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
