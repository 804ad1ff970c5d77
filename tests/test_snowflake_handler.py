"""Tests for the Snowflake handler session helpers (connection is mocked)."""

from unittest.mock import MagicMock

import pytest
from snowflake.connector.errors import ProgrammingError

from migrate_large_tables.api.snowflake import (
    ACCOUNTADMIN,
    SnowflakeHandler,
    account_from_host,
    quote_identifier,
)

PARAMS = {'host': 'xy12345.eu-central-1.snowflakecomputing.com', 'user': 'MIGRATE', 'password': 'p',
          'warehouse': 'WH'}


@pytest.fixture
def handler():
    """Handler with a mocked data handler whose session role is tracked."""
    handler = SnowflakeHandler(PARAMS)
    data_handler = MagicMock()
    state = {'role': 'MIGRATE_ROLE'}

    def execute(query, params=None):
        if query.startswith('USE ROLE '):
            state['role'] = query[len('USE ROLE '):].strip('"')

    def fetch_all(query, params=None):
        if 'CURRENT_ROLE()' in query:
            return [{'role': state['role']}]
        return [{'region': 'AWS_EU_CENTRAL_1', 'account': 'XY12345'}]

    data_handler.execute.side_effect = execute
    data_handler.fetch_all.side_effect = fetch_all
    handler._data_handler = data_handler
    handler._connected = True
    return handler


def _executed(handler):
    return [c[0][0] for c in handler._data_handler.execute.call_args_list]


class TestHelpers:
    @pytest.mark.parametrize('host, expected', [
        ('xy12345.eu-central-1.snowflakecomputing.com', 'xy12345.eu-central-1'),
        ('https://XY12345.snowflakecomputing.com/', 'xy12345'),
        ('xy12345.snowflakecomputing.com:443', 'xy12345'),
    ])
    def test_account_from_host(self, host, expected):
        assert account_from_host(host) == expected

    def test_quote_identifier_escapes_quotes(self):
        assert quote_identifier('in.c-sales') == '"in.c-sales"'
        assert quote_identifier('we"ird') == '"we""ird"'


class TestRoleScope:
    def test_restores_previous_role(self, handler):
        with handler.role_scope(ACCOUNTADMIN):
            assert handler.get_current_role() == ACCOUNTADMIN

        assert handler.get_current_role() == 'MIGRATE_ROLE'

    def test_restores_previous_role_on_error(self, handler):
        with pytest.raises(ProgrammingError):
            with handler.role_scope(ACCOUNTADMIN):
                raise ProgrammingError('insufficient privileges')

        assert _executed(handler)[-1] == 'USE ROLE "MIGRATE_ROLE"'

    def test_grant_role_runs_as_accountadmin(self, handler):
        handler.grant_role_to_user('OWNER_ROLE')

        assert _executed(handler) == [
            'USE ROLE "ACCOUNTADMIN"',
            'GRANT ROLE "OWNER_ROLE" TO USER "MIGRATE"',
            'USE ROLE "MIGRATE_ROLE"',
        ]

    def test_replica_privileges(self, handler):
        handler.grant_privileges_to_replica_database('OWNER_ROLE', 'KEBOOLA_2_REPLICA')

        assert _executed(handler)[1:4] == [
            'GRANT USAGE ON DATABASE "KEBOOLA_2_REPLICA" TO ROLE "OWNER_ROLE"',
            'GRANT USAGE ON ALL SCHEMAS IN DATABASE "KEBOOLA_2_REPLICA" TO ROLE "OWNER_ROLE"',
            'GRANT SELECT ON ALL TABLES IN DATABASE "KEBOOLA_2_REPLICA" TO ROLE "OWNER_ROLE"',
        ]


class TestLookups:
    def test_region_and_account_are_cached(self, handler):
        assert handler.get_region() == 'AWS_EU_CENTRAL_1'
        assert handler.get_account() == 'XY12345'
        handler.get_region()
        handler.get_account()

        assert handler._data_handler.fetch_all.call_count == 2

    def test_requires_connection(self):
        with pytest.raises(ValueError):
            SnowflakeHandler(PARAMS).execute('SELECT 1')
