"""Exceptions raised by the migration engine and its API clients."""

from typing import Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConfigError(MigrationError):
    """Invalid or incomplete component configuration."""


class UnknownModeError(ConfigError):
    """Configured migration mode has no strategy."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Unknown migration mode '{mode}'. Expected 'sapi' or 'database'.")


class StackMappingError(ConfigError):
    """Source or target stack cannot be mapped to a warehouse region/account."""


class OwnershipResolutionError(MigrationError):
    """An object does not have exactly one OWNERSHIP grant."""

    def __init__(self, object_kind: str, object_name: str, owners: list):
        self.object_kind = object_kind
        self.object_name = object_name
        self.owners = owners
        super().__init__(
            f"Expected exactly one OWNERSHIP grant on {object_kind} {object_name}, found {len(owners)}: {owners}"
        )


class StorageApiError(MigrationError):
    """Storage API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class ObjectStorageError(MigrationError):
    """Reading or writing a file object in cloud storage failed."""


class SkipTableException(MigrationError):
    """The current table cannot be migrated and is skipped."""


class UnsupportedFileProviderError(SkipTableException):
    """Exported file is hosted on an object storage we cannot read or write."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported file storage provider '{provider}'")


class MissingColumnDatatypeError(MigrationError):
    """Typed table has columns without a storage datatype to define them from."""

    def __init__(self, table_id: str, columns: list):
        self.table_id = table_id
        self.columns = columns
        super().__init__(f'Table "{table_id}" has no storage datatype for columns: {", ".join(columns)}')


class PrimaryKeyNullableError(MigrationError):
    """Typed table cannot be created because a primary key column is nullable."""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(
            f'Table "{table_name}" cannot be restored because the primary key cannot be set on a nullable column.'
        )
