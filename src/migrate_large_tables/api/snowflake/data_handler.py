"""Snowflake query execution module."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from snowflake.connector import DictCursor
from snowflake.connector.errors import Error as SnowflakeError

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a Snowflake identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


class SnowflakeDataHandler:
    """Runs statements on an open connection and shapes their results."""

    def __init__(self, connection):
        self.connection = connection

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> None:
        """Run a statement that returns nothing of interest."""
        cursor = self.connection.cursor()
        try:
            logger.debug(f"Executing: {query}")
            cursor.execute(query, params)
        except SnowflakeError as e:
            logger.error(f"❌ Query failed: {query} ({e})")
            raise
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return its rows as dictionaries keyed by column name."""
        cursor = self.connection.cursor(DictCursor)
        try:
            logger.debug(f"Fetching: {query}")
            cursor.execute(query, params)
            return cursor.fetchall()
        except SnowflakeError as e:
            logger.error(f"❌ Query failed: {query} ({e})")
            raise
        finally:
            cursor.close()

    def get_table_columns(self, database: str, schema: str, table_name: str) -> List[str]:
        """Get column names of a table in ordinal order."""
        query = (
            f"SELECT COLUMN_NAME FROM {quote_identifier(database)}.INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s ORDER BY ORDINAL_POSITION"
        )
        rows = self.fetch_all(query, (schema, table_name))
        columns = [row['COLUMN_NAME'] for row in rows]
        logger.debug(f"Found {len(columns)} columns in {database}.{schema}.{table_name}")
        return columns
