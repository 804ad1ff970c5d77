"""
Shared pytest fixtures for migration tests.

Fixtures:
- source_project: In-memory source storage project
- target_project: In-memory destination storage project
- warehouse: In-memory destination warehouse account
- make_config: Factory building a MigrationConfig from parameters
- orders_table: ``in.c-sales.orders`` with 1000 rows in the source project
- clean_environment: Removes SNOWFLAKE_* variables (autouse)
"""

import pytest

from fakes import FakeStorageProject, FakeWarehouse
from migrate_large_tables.utils.config import MigrationConfig


# =============================================================================
# Storage projects
# =============================================================================


@pytest.fixture
def source_project():
    return FakeStorageProject(project_id=1)


@pytest.fixture
def target_project():
    return FakeStorageProject(project_id=2)


@pytest.fixture
def orders_table(source_project):
    return source_project.add_table(
        'in.c-sales.orders', ['id', 'name', 'amount'], rows=1000, primary_key=['id']
    )


# =============================================================================
# Warehouse
# =============================================================================


@pytest.fixture
def warehouse():
    return FakeWarehouse(replica_database='KEBOOLA_2_REPLICA', target_database='KEBOOLA_2')


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def make_config():
    def _make(action='run', **parameters):
        parameters.setdefault('sourceKbcUrl', 'https://connection.keboola.com')
        parameters.setdefault('#sourceKbcToken', 'source-token')
        return MigrationConfig({'action': action, 'parameters': parameters})

    return _make


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep warehouse credentials of the developer's shell out of the tests."""
    for name in ('SNOWFLAKE_HOST', 'SNOWFLAKE_USER', 'SNOWFLAKE_PASSWORD', 'SNOWFLAKE_WAREHOUSE'):
        monkeypatch.delenv(name, raising=False)
