"""Tests for StorageModifier."""

import pytest

from migrate_large_tables.exceptions import (
    MigrationError,
    MissingColumnDatatypeError,
    PrimaryKeyNullableError,
    StorageApiError,
)
from migrate_large_tables.services.migration import StorageModifier


def _datatype(type_, basetype, nullable='1', **extra):
    entries = [
        {'provider': 'storage', 'key': 'KBC.datatype.type', 'value': type_},
        {'provider': 'storage', 'key': 'KBC.datatype.basetype', 'value': basetype},
        {'provider': 'storage', 'key': 'KBC.datatype.nullable', 'value': nullable},
    ]
    for key, value in extra.items():
        entries.append({'provider': 'storage', 'key': f'KBC.datatype.{key}', 'value': value})
    return entries


@pytest.fixture
def typed_table(source_project):
    return source_project.add_table(
        'in.c-sales.customers',
        ['id', 'email'],
        primary_key=['id'],
        isTyped=True,
        columnMetadata={
            'id': _datatype('NUMBER', 'NUMERIC', nullable='0', length='38,0'),
            'email': _datatype('VARCHAR', 'STRING', default=''),
        },
    )


class TestCreateBucket:
    def test_splits_bucket_id_into_stage_and_name(self, target_project):
        StorageModifier(target_project).create_bucket('in.c-sales')

        assert target_project.calls == [('create_bucket', ('sales', 'in'))]
        assert target_project.bucket_exists('in.c-sales')

    def test_creating_existing_bucket_surfaces_conflict(self, target_project):
        target_project.add_bucket('in.c-sales')

        with pytest.raises(StorageApiError):
            StorageModifier(target_project).create_bucket('in.c-sales')


class TestCreateUntypedTable:
    def test_creates_table_from_header_with_primary_key(self, target_project, orders_table):
        StorageModifier(target_project).create_table(orders_table)

        created = target_project.get_table('in.c-sales.orders')
        assert created['columns'] == ['id', 'name', 'amount']
        assert created['primaryKey'] == ['id']
        assert created['rowsCount'] == 0
        assert target_project.mutating_calls() == ['upload_file', 'create_table_async']

    def test_table_without_primary_key(self, source_project, target_project):
        table = source_project.add_table('in.c-sales.events', ['at', 'what'])

        StorageModifier(target_project).create_table(table)

        assert target_project.get_table('in.c-sales.events')['primaryKey'] == []


class TestCreateTypedTable:
    def test_builds_definition_from_storage_metadata(self, typed_table):
        definition = StorageModifier.build_table_definition(typed_table)

        assert definition == {
            'name': 'customers',
            'primaryKeysNames': ['id'],
            'columns': [
                {
                    'name': 'id',
                    'definition': {'type': 'NUMBER', 'nullable': False, 'length': '38,0'},
                    'basetype': 'NUMERIC',
                },
                {
                    'name': 'email',
                    'definition': {'type': 'VARCHAR', 'nullable': True, 'default': ''},
                    'basetype': 'STRING',
                },
            ],
        }

    def test_synapse_backend_adds_distribution_and_index(self, typed_table):
        typed_table['bucket'] = dict(typed_table['bucket'], backend='synapse')
        typed_table.update(
            distributionType='HASH', distributionKey=['id'], indexType='CLUSTERED INDEX', indexKey=['id']
        )

        definition = StorageModifier.build_table_definition(typed_table)

        assert definition['distribution'] == {'type': 'HASH', 'distributionColumnsNames': ['id']}
        assert definition['index'] == {'type': 'CLUSTERED INDEX', 'indexColumnsNames': ['id']}

    def test_snowflake_backend_has_no_distribution(self, typed_table):
        definition = StorageModifier.build_table_definition(typed_table)

        assert 'distribution' not in definition
        assert 'index' not in definition

    def test_creates_typed_table_through_definition(self, target_project, typed_table):
        StorageModifier(target_project).create_table(typed_table)

        assert target_project.get_table('in.c-sales.customers')['isTyped'] is True
        assert target_project.mutating_calls() == ['create_table_definition']

    def test_nullable_primary_key_raises_named_error(self, target_project, typed_table):
        target_project.create_table_definition_error = StorageApiError(
            'Primary keys columns must be set nullable false', status_code=400
        )

        with pytest.raises(PrimaryKeyNullableError) as exc_info:
            StorageModifier(target_project).create_table(typed_table)

        assert exc_info.value.table_name == 'customers'
        assert 'customers' in str(exc_info.value)

    def test_other_definition_errors_propagate(self, target_project, typed_table):
        target_project.create_table_definition_error = StorageApiError('Internal error', status_code=500)

        with pytest.raises(StorageApiError) as exc_info:
            StorageModifier(target_project).create_table(typed_table)

        assert not isinstance(exc_info.value, PrimaryKeyNullableError)

    def test_column_with_only_user_metadata_is_rejected(self, target_project, typed_table):
        typed_table['columns'] = ['id', 'email', 'note']
        typed_table['columnMetadata']['note'] = [
            {'provider': 'user', 'key': 'KBC.description', 'value': 'Free text note'},
        ]

        with pytest.raises(MissingColumnDatatypeError) as exc_info:
            StorageModifier(target_project).create_table(typed_table)

        assert isinstance(exc_info.value, MigrationError)
        assert exc_info.value.columns == ['note']
        assert 'in.c-sales.customers' in str(exc_info.value)
        assert target_project.mutating_calls() == []

    def test_column_without_metadata_is_rejected(self, typed_table):
        typed_table['columns'] = ['id', 'email', 'created']

        with pytest.raises(MissingColumnDatatypeError, match='created'):
            StorageModifier.build_table_definition(typed_table)


class TestMetadataReplay:
    def test_replays_non_storage_metadata_per_provider(self, target_project, orders_table):
        orders_table['metadata'] = [
            {'provider': 'user', 'key': 'description', 'value': 'Orders'},
            {'provider': 'storage', 'key': 'KBC.createdBy', 'value': 'x'},
            {'provider': 'keboola.ex-db', 'key': 'source', 'value': 'orders'},
        ]
        orders_table['columnMetadata'] = {
            'amount': [
                {'provider': 'user', 'key': 'unit', 'value': 'EUR'},
                {'provider': 'storage', 'key': 'KBC.datatype.type', 'value': 'NUMBER'},
            ],
        }

        StorageModifier(target_project).create_table(orders_table)

        posted = [args for name, args in target_project.calls if name == 'post_table_metadata_with_columns']
        assert [args[1] for args in posted] == ['user', 'keboola.ex-db']
        table_id, provider, table_metadata, columns_metadata = posted[0]
        assert table_id == 'in.c-sales.orders'
        assert table_metadata == [{'provider': 'user', 'key': 'description', 'value': 'Orders'}]
        assert columns_metadata == {'amount': [{'provider': 'user', 'key': 'unit', 'value': 'EUR'}]}
        assert posted[1][3] == {}

    def test_storage_only_metadata_is_not_replayed(self, target_project, orders_table):
        orders_table['metadata'] = [{'provider': 'storage', 'key': 'KBC.createdBy', 'value': 'x'}]

        StorageModifier(target_project).create_table(orders_table)

        assert 'post_table_metadata_with_columns' not in target_project.mutating_calls()
