"""Tests for the command line entrypoint."""

import json
from unittest.mock import MagicMock, patch

import pytest

from migrate_large_tables import cli
from migrate_large_tables.exceptions import StorageApiError


def _context(value):
    manager = MagicMock()
    manager.__enter__.return_value = value
    manager.__exit__.return_value = False
    return manager


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / 'config.json').write_text(json.dumps({
        'action': 'run',
        'parameters': {
            'mode': 'sapi',
            'sourceKbcUrl': 'https://connection.keboola.com',
            '#sourceKbcToken': 'source-token',
            'tables': ['in.c-sales.orders'],
        },
    }))
    return tmp_path


@pytest.fixture
def environment(monkeypatch, tmp_path):
    monkeypatch.setenv('KBC_URL', 'https://connection.europe-west3.gcp.keboola.com')
    monkeypatch.setenv('KBC_TOKEN', 'target-token')
    monkeypatch.setenv('MIGRATION_RESULTS_DIR', str(tmp_path / 'results'))
    return tmp_path / 'results'


def test_missing_config_file_exits_with_error(tmp_path):
    assert cli.main(['--config', str(tmp_path / 'missing.json')]) == 1


def test_missing_destination_credentials(data_dir, monkeypatch):
    monkeypatch.delenv('KBC_URL', raising=False)
    monkeypatch.delenv('KBC_TOKEN', raising=False)

    assert cli.main(['--data-dir', str(data_dir), 'run']) == 1


def test_sapi_run_writes_report(data_dir, environment, source_project, target_project, orders_table):
    handlers = iter([_context(source_project), _context(target_project)])

    with patch.object(cli, 'StorageHandler', side_effect=lambda url, token: next(handlers)):
        exit_code = cli.main(['--data-dir', str(data_dir)])

    assert exit_code == 0
    assert target_project.get_table('in.c-sales.orders')['rowsCount'] == 1000
    reports = list(environment.glob('migration_sapi_*.csv'))
    assert len(reports) == 1
    assert 'in.c-sales.orders,imported' in reports[0].read_text()


def test_failed_table_gives_non_zero_exit(data_dir, environment, source_project, target_project, orders_table):
    handlers = iter([_context(source_project), _context(target_project)])
    target_project.add_bucket('in.c-sales')
    target_project.add_table('in.c-sales.orders', ['id', 'name', 'amount'])

    def failing_import(*args, **kwargs):
        raise StorageApiError('Import failed', status_code=400)

    target_project.write_table_async_direct = failing_import

    with patch.object(cli, 'StorageHandler', side_effect=lambda url, token: next(handlers)):
        assert cli.main(['--data-dir', str(data_dir), 'run']) == 1
