"""Recreates buckets, tables and metadata on the destination project."""

import logging
import os
import tempfile
from collections import defaultdict
from typing import Any, Dict, List

from ...api.storage.utils import write_header_csv
from ...exceptions import MissingColumnDatatypeError, PrimaryKeyNullableError, StorageApiError
from ...utils.common import STORAGE_PROVIDER, MetadataEntry, TableInfo, split_bucket_id

logger = logging.getLogger(__name__)

SYNAPSE_BACKEND = "synapse"
PK_NULLABLE_MESSAGE = "Primary keys columns must be set nullable false"


class StorageModifier:
    """Creates destination buckets and tables from source table details."""

    def __init__(self, target):
        """
        Args:
            target: Storage handler of the destination project
        """
        self.target = target

    def create_bucket(self, bucket_id: str) -> None:
        """
        Create a bucket from its id, e.g. ``in.c-sales`` becomes stage ``in``, name ``sales``.

        The caller checks existence first; creating an existing bucket raises
        the platform's conflict error.
        """
        stage, name = split_bucket_id(bucket_id)
        self.target.create_bucket(name, stage)

    def create_table(self, table_info: TableInfo) -> None:
        """Create the table (typed or untyped) and replay its non-system metadata."""
        if table_info.get('isTyped'):
            self._create_typed_table(table_info)
        else:
            self._create_untyped_table(table_info)

        self._restore_table_columns_metadata(table_info)

    def _create_untyped_table(self, table_info: TableInfo) -> None:
        with tempfile.TemporaryDirectory(prefix='header-') as tmp_dir:
            header_path = write_header_csv(
                table_info['columns'],
                os.path.join(tmp_dir, f"{table_info['id']}.header.csv"),
            )
            file_id = self.target.upload_file(header_path)

        self.target.create_table_async(
            table_info['bucket']['id'],
            table_info['name'],
            file_id,
            primary_key=table_info.get('primaryKey', []),
        )

    def _create_typed_table(self, table_info: TableInfo) -> None:
        definition = self.build_table_definition(table_info)
        try:
            self.target.create_table_definition(table_info['bucket']['id'], definition)
        except StorageApiError as e:
            if e.status_code == 400 and PK_NULLABLE_MESSAGE in str(e):
                raise PrimaryKeyNullableError(table_info['name']) from e
            raise

    @staticmethod
    def build_table_definition(table_info: TableInfo) -> Dict[str, Any]:
        """
        Build the typed table definition from ``storage`` provider column metadata.

        Returns:
            Dict: ``{name, primaryKeysNames, columns[, distribution, index]}``

        Raises:
            MissingColumnDatatypeError: A column has no type or basetype metadata
        """
        columns: Dict[str, Dict[str, Any]] = {column: {} for column in table_info['columns']}

        for column_name, entries in (table_info.get('columnMetadata') or {}).items():
            datatype = {m['key']: m['value'] for m in entries if m['provider'] == STORAGE_PROVIDER}
            if 'KBC.datatype.type' not in datatype or 'KBC.datatype.basetype' not in datatype:
                continue

            definition: Dict[str, Any] = {
                'type': datatype['KBC.datatype.type'],
                'nullable': datatype.get('KBC.datatype.nullable') == '1',
            }
            if 'KBC.datatype.length' in datatype:
                definition['length'] = datatype['KBC.datatype.length']
            if 'KBC.datatype.default' in datatype:
                definition['default'] = datatype['KBC.datatype.default']

            columns[str(column_name)] = {
                'name': str(column_name),
                'definition': definition,
                'basetype': datatype['KBC.datatype.basetype'],
            }

        undefined = [name for name, column in columns.items() if not column]
        if undefined:
            raise MissingColumnDatatypeError(table_info['id'], undefined)

        data: Dict[str, Any] = {
            'name': table_info['name'],
            'primaryKeysNames': table_info.get('primaryKey', []),
            'columns': list(columns.values()),
        }

        if table_info['bucket'].get('backend') == SYNAPSE_BACKEND:
            data['distribution'] = {
                'type': table_info.get('distributionType'),
                'distributionColumnsNames': table_info.get('distributionKey', []),
            }
            data['index'] = {
                'type': table_info.get('indexType'),
                'indexColumnsNames': table_info.get('indexKey', []),
            }

        return data

    def _restore_table_columns_metadata(self, table_info: TableInfo) -> None:
        table_metadata = _group_by_provider(table_info.get('metadata') or [])
        columns_metadata: Dict[str, Dict[str, List[MetadataEntry]]] = defaultdict(dict)
        for column, entries in (table_info.get('columnMetadata') or {}).items():
            for provider, provider_entries in _group_by_provider(entries).items():
                columns_metadata[provider][column] = provider_entries

        providers = list(dict.fromkeys(list(table_metadata) + list(columns_metadata)))
        for provider in providers:
            if provider == STORAGE_PROVIDER:
                continue
            self.target.post_table_metadata_with_columns(
                table_info['id'],
                provider,
                table_metadata.get(provider, []),
                columns_metadata.get(provider, {}),
            )
            logger.debug(f"Restored '{provider}' metadata on {table_info['id']}")


def _group_by_provider(entries: List[MetadataEntry]) -> Dict[str, List[MetadataEntry]]:
    grouped: Dict[str, List[MetadataEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry['provider'], []).append(entry)
    return grouped
