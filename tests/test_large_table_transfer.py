"""Tests for LargeTableTransfer (chunked transfer of sliced exports)."""

import os

import pytest

from fakes import FakeObjectStorage
from migrate_large_tables.exceptions import ObjectStorageError
from migrate_large_tables.services.migration import (
    RESULT_FAILED,
    RESULT_IMPORTED,
    LargeTableTransfer,
    SapiMigrate,
)


@pytest.fixture
def exported_file(source_project, orders_table):
    source_project.export_overrides['in.c-sales.orders'] = {
        'isSliced': True, 'provider': 'gcp', 'sizeBytes': 60 * 1024 ** 3,
    }
    return source_project.export_table_async('in.c-sales.orders')


@pytest.fixture
def prepared_target(target_project):
    target_project.add_table('in.c-sales.orders', ['id', 'name', 'amount'], rows=0)
    return target_project


def _transfer(source, target, storage, chunk_size, dry_run=False):
    return LargeTableTransfer(
        source, target, dry_run=dry_run, chunk_size=chunk_size, client_factory=storage.client_factory
    )


class TestChunking:
    @pytest.mark.parametrize('entries, chunk_size, expected_chunks', [
        (10, 3, 4),
        (9, 3, 3),
        (1, 500, 1),
        (1200, 500, 3),
    ])
    def test_one_incremental_import_per_chunk(self, source_project, prepared_target, orders_table, exported_file,
                                              tmp_path, entries, chunk_size, expected_chunks):
        storage = FakeObjectStorage(entries)

        chunks = _transfer(source_project, prepared_target, storage, chunk_size).migrate(
            exported_file, orders_table, False, str(tmp_path)
        )

        assert chunks == expected_chunks
        imports = [args for name, args in prepared_target.calls if name == 'write_table_async_direct']
        assert len(imports) == expected_chunks
        assert all(args[2] is True for args in imports)
        assert prepared_target.get_table('in.c-sales.orders')['rowsCount'] == entries
        assert len(storage.downloads) == entries

    def test_slices_are_uploaded_under_table_id(self, source_project, prepared_target, orders_table, exported_file,
                                                tmp_path):
        storage = FakeObjectStorage(5)

        _transfer(source_project, prepared_target, storage, 2).migrate(exported_file, orders_table, True, str(tmp_path))

        uploads = [args for name, args in prepared_target.calls if name == 'upload_sliced_file']
        assert uploads == [('in.c-sales.orders', 2), ('in.c-sales.orders', 2), ('in.c-sales.orders', 1)]
        imports = [args for name, args in prepared_target.calls if name == 'write_table_async_direct']
        assert all(args[3] is True for args in imports)


class TestLocalStorage:
    def test_scratch_directory_is_empty_after_every_chunk(self, source_project, prepared_target, orders_table,
                                                          exported_file, tmp_path):
        storage = FakeObjectStorage(7)
        seen_at_import = []
        original_write = prepared_target.write_table_async_direct

        def write_and_inspect(*args, **kwargs):
            seen_at_import.append(len(os.listdir(tmp_path)))
            return original_write(*args, **kwargs)

        prepared_target.write_table_async_direct = write_and_inspect

        _transfer(source_project, prepared_target, storage, 3).migrate(exported_file, orders_table, False, str(tmp_path))

        # Only the current chunk is on disk while it is being imported
        assert seen_at_import == [3, 3, 1]
        assert os.listdir(tmp_path) == []

    def test_slices_are_removed_when_import_fails(self, source_project, prepared_target, orders_table,
                                                  exported_file, tmp_path):
        storage = FakeObjectStorage(4)

        def failing_write(*args, **kwargs):
            raise RuntimeError('import failed')

        prepared_target.write_table_async_direct = failing_write

        with pytest.raises(RuntimeError):
            _transfer(source_project, prepared_target, storage, 2).migrate(
                exported_file, orders_table, False, str(tmp_path)
            )

        assert os.listdir(tmp_path) == []


class TestCredentials:
    def test_each_chunk_uses_fresh_credentials(self, source_project, prepared_target, orders_table, exported_file,
                                               tmp_path):
        storage = FakeObjectStorage(6)

        _transfer(source_project, prepared_target, storage, 2).migrate(exported_file, orders_table, False, str(tmp_path))

        # One client for the manifest, then one per chunk
        assert storage.clients_built == 4
        assert len(set(storage.tokens)) == 4


class TestDryRun:
    def test_no_transfer_in_dry_run(self, source_project, prepared_target, orders_table, exported_file, tmp_path):
        storage = FakeObjectStorage(6)
        calls_before = list(prepared_target.calls)

        chunks = _transfer(source_project, prepared_target, storage, 2, dry_run=True).migrate(
            exported_file, orders_table, False, str(tmp_path)
        )

        assert chunks == 0
        assert storage.clients_built == 0
        assert storage.downloads == []
        assert prepared_target.calls == calls_before


class TestFailures:
    @pytest.fixture
    def expired_storage(self):
        storage = FakeObjectStorage(6)
        storage.fail_after = 2
        storage.download_error = ObjectStorageError('GCS download failed: 403 token expired')
        return storage

    def test_download_error_stops_the_table_and_clears_scratch(self, source_project, prepared_target, orders_table,
                                                               exported_file, expired_storage, tmp_path):
        with pytest.raises(ObjectStorageError):
            _transfer(source_project, prepared_target, expired_storage, 2).migrate(
                exported_file, orders_table, False, str(tmp_path)
            )

        imports = [args for name, args in prepared_target.calls if name == 'write_table_async_direct']
        assert len(imports) == 1
        assert os.listdir(tmp_path) == []

    def test_failed_large_table_does_not_stop_the_run(self, source_project, target_project, orders_table,
                                                      expired_storage, make_config):
        source_project.export_overrides['in.c-sales.orders'] = {
            'isSliced': True, 'provider': 'gcp', 'sizeBytes': 60 * 1024 ** 3,
        }
        source_project.add_table('in.c-sales.customers', ['id', 'email'], rows=10)
        migrate = SapiMigrate(
            source_project, target_project, large_table_threshold_bytes=1000,
            large_table_transfer=_transfer(source_project, target_project, expired_storage, 2),
        )

        results = migrate.migrate(make_config(tables=['in.c-sales.orders', 'in.c-sales.customers']))

        assert results == {'in.c-sales.orders': RESULT_FAILED, 'in.c-sales.customers': RESULT_IMPORTED}
        assert target_project.get_table('in.c-sales.customers')['rowsCount'] == 10
