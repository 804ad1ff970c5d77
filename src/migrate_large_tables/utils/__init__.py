"""
Utility modules for the table migration project.

This package contains:
- Common payload types and environment helpers
- Component configuration loading
- File operations and session logging

Usage:
    from migrate_large_tables.utils import MigrationConfig
    from migrate_large_tables.utils.file_logger import start_logging_session
"""

from .common import check_env_vars, get_env_config, mask_sensitive_value
from .config import MigrationConfig
from .file_utils import save_results_report

__all__ = [
    'check_env_vars',
    'get_env_config',
    'mask_sensitive_value',
    'MigrationConfig',
    'save_results_report',
]
