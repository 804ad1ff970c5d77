"""
Component configuration.

The component reads ``config.json`` from the data directory. All migration
settings live under ``parameters``; secrets are prefixed with ``#``.

Example:
    {
        "action": "run",
        "parameters": {
            "mode": "database",
            "sourceKbcUrl": "https://connection.keboola.com",
            "#sourceKbcToken": "...",
            "tables": ["in.c-sales.orders"],
            "db": {"host": "...", "username": "...", "#password": "...", "warehouse": "..."}
        }
    }
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, Field, PositiveInt, ValidationError, field_validator

from .common import get_env_config, is_safe_account_token
from ..exceptions import ConfigError, StackMappingError

logger = logging.getLogger(__name__)

MODE_SAPI = "sapi"
MODE_DATABASE = "database"

ACTION_RUN = "run"
ACTION_CREATE_REPLICATIONS = "create-replications"

# Sliced exports above this size go through the chunked transfer
DEFAULT_LARGE_TABLE_THRESHOLD_BYTES = 50 * 1024 ** 3
DEFAULT_CHUNK_SIZE = 500

# db.* connection keys by field name
_DB_KEYS = {
    'host': 'host',
    'username': 'username',
    'password': '#password',
    'warehouse': 'warehouse',
}

# Environment variables filling in connection fields the config omits
_DB_ENV_FALLBACKS = {
    'host': 'SNOWFLAKE_HOST',
    'username': 'SNOWFLAKE_USER',
    'password': 'SNOWFLAKE_PASSWORD',
    'warehouse': 'SNOWFLAKE_WAREHOUSE',
}


class StackLocation(BaseModel):
    """Warehouse region and account serving a stack."""

    region: Optional[str] = None
    account: Optional[str] = None

    model_config = {"extra": "ignore"}


class DbSettings(BaseModel):
    """The ``parameters.db`` section: target warehouse connection and database names."""

    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, alias='#password')
    warehouse: Optional[str] = None
    source_database: Optional[str] = Field(default=None, alias='sourceDatabase')
    target_database: Optional[str] = Field(default=None, alias='targetDatabase')
    database_prefix: str = Field(default='KEBOOLA', alias='databasePrefix')
    source_database_region: Optional[str] = Field(default=None, alias='sourceDatabaseRegion')
    source_database_account: Optional[str] = Field(default=None, alias='sourceDatabaseAccount')

    model_config = {
        "validate_default": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator('host', 'username', 'password', 'warehouse', mode='before')
    def fall_back_to_environment(cls, value: Any, info) -> Optional[str]:
        if value in (None, ''):
            return get_env_config()[_DB_ENV_FALLBACKS[info.field_name]] or None
        return value


class MigrationParameters(BaseModel):
    """The ``parameters`` section of ``config.json``."""

    mode: str = MODE_SAPI
    dry_run: bool = Field(default=False, alias='dryRun')
    source_kbc_url: Optional[str] = Field(default=None, alias='sourceKbcUrl')
    source_kbc_token: Optional[str] = Field(default=None, alias='#sourceKbcToken')
    tables: List[str] = Field(default_factory=list)
    preserve_timestamp: bool = Field(default=False, alias='preserveTimestamp')

    # File transfer
    large_table_threshold_bytes: PositiveInt = Field(
        default=DEFAULT_LARGE_TABLE_THRESHOLD_BYTES, alias='largeTableThresholdBytes'
    )
    chunk_size: PositiveInt = Field(default=DEFAULT_CHUNK_SIZE, alias='chunkSize')

    # Database replication
    include_workspace_schemas: List[str] = Field(default_factory=list, alias='includeWorkspaceSchemas')
    include_external_schemas: List[str] = Field(default_factory=list, alias='includeExternalSchemas')
    is_source_byodb: bool = Field(default=False, alias='isSourceByodb')
    source_byodb: Optional[str] = Field(default=None, alias='sourceByodb')
    db: DbSettings = Field(default_factory=DbSettings)
    stacks: Dict[str, StackLocation] = Field(default_factory=dict)

    # create-replications action
    source_host: Optional[str] = Field(default=None, alias='sourceHost')
    source_username: Optional[str] = Field(default=None, alias='sourceUsername')
    source_password: Optional[str] = Field(default=None, alias='#sourcePassword')
    source_warehouse: Optional[str] = Field(default=None, alias='sourceWarehouse')
    project_id_from: Optional[int] = Field(default=None, alias='projectIdFrom')
    project_id_to: Optional[int] = Field(default=None, alias='projectIdTo')
    source_database_prefix: Optional[str] = Field(default=None, alias='sourceDatabasePrefix')
    replica_database_prefix: Optional[str] = Field(default=None, alias='replicaDatabasePrefix')

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator('tables', 'include_workspace_schemas', 'include_external_schemas', mode='before')
    def list_when_null(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator('db', 'stacks', mode='before')
    def mapping_when_null(cls, value: Any) -> Any:
        return {} if value is None else value


class ComponentConfig(BaseModel):
    """Root of ``config.json``."""

    action: str = ACTION_RUN
    parameters: MigrationParameters = Field(default_factory=MigrationParameters)

    model_config = {"extra": "ignore"}

    @field_validator('action', mode='before')
    def default_action(cls, value: Any) -> Any:
        return value or ACTION_RUN

    @field_validator('parameters', mode='before')
    def parameters_when_null(cls, value: Any) -> Any:
        return value if value is not None else {}


def _required(value: Any, name: str) -> Any:
    if value is None or value == '':
        raise ConfigError(f"Missing required configuration parameter: {name}")
    return value


class MigrationConfig:
    """Typed accessors over the validated component configuration."""

    def __init__(self, raw: Dict[str, Any]):
        try:
            self.model = ComponentConfig.model_validate(raw or {})
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
        self.parameters = self.model.parameters

    @classmethod
    def from_file(cls, path: str) -> "MigrationConfig":
        """Load configuration from a JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Configuration file {config_path} is not valid JSON: {e}") from e

        logger.info(f"📄 Loaded configuration from {config_path}")
        return cls(raw)

    @classmethod
    def from_data_dir(cls, data_dir: Optional[str] = None) -> "MigrationConfig":
        """Load ``config.json`` from the data directory (``KBC_DATADIR``)."""
        data_dir = data_dir or get_env_config()['KBC_DATADIR']
        return cls.from_file(str(Path(data_dir) / 'config.json'))

    def _db_setting(self, field: str) -> str:
        return _required(getattr(self.parameters.db, field), f"db.{_DB_KEYS[field]}")

    def validate(self) -> None:
        """Fail fast on configuration the selected action cannot start with."""
        parameters = self.parameters
        if self.action == ACTION_CREATE_REPLICATIONS:
            _required(parameters.source_host, 'sourceHost')
            _required(parameters.source_username, 'sourceUsername')
            _required(parameters.source_password, '#sourcePassword')
            _required(parameters.project_id_from, 'projectIdFrom')
            _required(parameters.project_id_to, 'projectIdTo')
            for field in _DB_KEYS:
                self._db_setting(field)
            return

        if self.action != ACTION_RUN:
            raise ConfigError(f"Unknown action '{self.action}'")

        _required(parameters.source_kbc_url, 'sourceKbcUrl')
        _required(parameters.source_kbc_token, '#sourceKbcToken')

        if self.mode == MODE_DATABASE:
            for field in _DB_KEYS:
                self._db_setting(field)
            if self.is_source_byodb and not self.source_byodb:
                raise ConfigError("Parameter 'sourceByodb' is required when 'isSourceByodb' is enabled")

    # General
    @property
    def action(self) -> str:
        return self.model.action

    @property
    def mode(self) -> str:
        return self.parameters.mode

    @property
    def dry_run(self) -> bool:
        return self.parameters.dry_run

    @property
    def source_kbc_url(self) -> str:
        return _required(self.parameters.source_kbc_url, 'sourceKbcUrl')

    @property
    def source_kbc_token(self) -> str:
        return _required(self.parameters.source_kbc_token, '#sourceKbcToken')

    @property
    def migrate_tables(self) -> List[str]:
        return list(self.parameters.tables)

    @property
    def preserve_timestamp(self) -> bool:
        return self.parameters.preserve_timestamp

    # File transfer
    @property
    def large_table_threshold_bytes(self) -> int:
        return self.parameters.large_table_threshold_bytes

    @property
    def chunk_size(self) -> int:
        return self.parameters.chunk_size

    # Database replication
    @property
    def include_workspace_schemas(self) -> List[str]:
        return list(self.parameters.include_workspace_schemas)

    @property
    def include_external_schemas(self) -> List[str]:
        return list(self.parameters.include_external_schemas)

    @property
    def is_source_byodb(self) -> bool:
        return self.parameters.is_source_byodb

    @property
    def source_byodb(self) -> Optional[str]:
        return self.parameters.source_byodb

    @property
    def db_params(self) -> Dict[str, str]:
        """Warehouse connection parameters for the target account, ``SNOWFLAKE_*`` variables as fallback."""
        return {
            'host': self._db_setting('host'),
            'user': self._db_setting('username'),
            'password': self._db_setting('password'),
            'warehouse': self._db_setting('warehouse'),
        }

    @property
    def target_warehouse(self) -> str:
        return self._db_setting('warehouse')

    @property
    def source_database(self) -> Optional[str]:
        if self.is_source_byodb:
            return self.source_byodb
        return self.parameters.db.source_database

    @property
    def target_database(self) -> Optional[str]:
        return self.parameters.db.target_database

    @property
    def database_prefix(self) -> str:
        return self.parameters.db.database_prefix

    def get_source_database_location(self) -> Tuple[str, str]:
        """
        Resolve (region, account) of the source warehouse.

        Explicit ``db.sourceDatabaseRegion``/``db.sourceDatabaseAccount`` win;
        otherwise the source stack host is looked up in ``stacks``.
        """
        region = self.parameters.db.source_database_region
        account = self.parameters.db.source_database_account

        if not (region and account):
            host = urlparse(self.source_kbc_url).netloc or self.source_kbc_url
            stack = self.parameters.stacks.get(host)
            if not stack:
                raise StackMappingError(
                    f"Cannot resolve warehouse region/account for source stack '{host}'. "
                    "Set db.sourceDatabaseRegion and db.sourceDatabaseAccount or add the stack to 'stacks'."
                )
            region, account = stack.region, stack.account

        for value in (region, account):
            if not is_safe_account_token(value or ''):
                raise StackMappingError(f"Invalid warehouse region/account value: '{value}'")

        return region, account

    # create-replications action
    @property
    def source_db_params(self) -> Dict[str, str]:
        """Warehouse connection parameters for the source account."""
        return {
            'host': _required(self.parameters.source_host, 'sourceHost'),
            'user': _required(self.parameters.source_username, 'sourceUsername'),
            'password': _required(self.parameters.source_password, '#sourcePassword'),
            'warehouse': self.parameters.source_warehouse or self._db_setting('warehouse'),
        }

    @property
    def project_id_from(self) -> int:
        return _required(self.parameters.project_id_from, 'projectIdFrom')

    @property
    def project_id_to(self) -> int:
        return _required(self.parameters.project_id_to, 'projectIdTo')

    @property
    def source_database_prefix(self) -> str:
        return self.parameters.source_database_prefix or self.database_prefix

    @property
    def replica_database_prefix(self) -> str:
        return self.parameters.replica_database_prefix or self.database_prefix
