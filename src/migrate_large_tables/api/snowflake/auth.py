"""Snowflake authentication module."""

import logging
from typing import Any, Dict

import snowflake.connector
from snowflake.connector.errors import Error as SnowflakeError

from ...utils.common import mask_sensitive_value

logger = logging.getLogger(__name__)

_HOST_SUFFIX = ".snowflakecomputing.com"


def account_from_host(host: str) -> str:
    """
    Derive the connector account identifier from a warehouse host.

    Examples:
        >>> account_from_host("xy12345.eu-central-1.snowflakecomputing.com")
        'xy12345.eu-central-1'
    """
    host = host.strip().lower()
    if host.startswith('https://'):
        host = host[len('https://'):]
    host = host.split('/', 1)[0].split(':', 1)[0]
    if host.endswith(_HOST_SUFFIX):
        host = host[:-len(_HOST_SUFFIX)]
    return host


class SnowflakeAuth:
    """Handles Snowflake authentication operations."""

    def __init__(self, params: Dict[str, str]):
        """
        Args:
            params: ``{host, user, password, warehouse}`` of one warehouse account
        """
        self.connection = None
        self.connection_params = self._get_connection_params(params)

    def setup_connection(self) -> bool:
        """Open the connection and run a test query."""
        try:
            self.connection = snowflake.connector.connect(**self.connection_params)

            cursor = self.connection.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()

            logger.info(
                f"✅ Snowflake connection established to {self.connection_params['account']} "
                f"as {mask_sensitive_value(self.connection_params['user'], 3)}"
            )
            return True

        except SnowflakeError as e:
            logger.error(f"❌ Failed to connect to Snowflake: {e}")
            return False

    @staticmethod
    def _get_connection_params(params: Dict[str, str]) -> Dict[str, Any]:
        missing = [k for k in ('host', 'user', 'password', 'warehouse') if not params.get(k)]
        if missing:
            raise ValueError(f"Missing required Snowflake connection parameters: {missing}")

        return {
            'account': account_from_host(params['host']),
            'host': params['host'],
            'user': params['user'],
            'password': params['password'],
            'warehouse': params['warehouse'],
            'autocommit': True,
            'login_timeout': 300,
        }

    def get_connection(self):
        """Get the active Snowflake connection."""
        return self.connection

    def close_connection(self):
        """Close the Snowflake connection."""
        if self.connection:
            try:
                self.connection.close()
                logger.info("✅ Snowflake connection closed")
            except SnowflakeError as e:
                logger.error(f"❌ Error closing connection: {e}")
            finally:
                self.connection = None
