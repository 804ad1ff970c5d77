"""Selection of the tables a run works on."""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class TableSelector:
    """Decides which source tables to migrate."""

    def __init__(self, source, target):
        """
        Args:
            source: Storage handler of the source project
            target: Storage handler of the destination project
        """
        self.source = source
        self.target = target

    def select_tables(self, explicit_list: Optional[List[str]] = None) -> List[str]:
        """
        Return the table ids to migrate.

        A non-empty ``explicit_list`` is returned as is. Otherwise every source
        table whose destination copy is missing or has no rows is selected;
        populated destination tables are never picked up implicitly.

        Args:
            explicit_list: Table ids configured by the user

        Returns:
            List[str]: Table ids in bucket enumeration order
        """
        if explicit_list:
            logger.info(f"📋 Using {len(explicit_list)} explicitly configured tables")
            return list(explicit_list)

        logger.info("🔍 No tables configured, discovering empty or missing destination tables")
        selected: List[str] = []
        for bucket in self.source.list_buckets():
            source_tables = self.source.list_tables(bucket['id'])
            target_tables = self._target_tables_by_id(bucket['id'])

            for table in source_tables:
                target_table = target_tables.get(table['id'])
                if target_table is None or not target_table.get('rowsCount'):
                    selected.append(table['id'])
                else:
                    logger.info(
                        f"⏭️ Skipping {table['id']}: destination already has {target_table['rowsCount']} rows"
                    )

        logger.info(f"✅ Selected {len(selected)} tables for migration")
        return selected

    def _target_tables_by_id(self, bucket_id: str) -> Dict[str, dict]:
        if not self.target.bucket_exists(bucket_id):
            return {}
        return {table['id']: table for table in self.target.list_tables(bucket_id)}
