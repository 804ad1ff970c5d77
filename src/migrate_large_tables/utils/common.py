"""
Common utilities and shared types for the table migration tools.

This module contains the shapes of Storage API payloads and environment helpers
used across the API clients and the migration services.
"""

import os
import re
import logging
from typing import TypedDict, List, Optional, Dict, Tuple
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logger
logger = logging.getLogger(__name__)

# Metadata provider managed by the platform itself
STORAGE_PROVIDER = "storage"

_BUCKET_PREFIX = "c-"


class MetadataEntry(TypedDict):
    """A single provider-tagged metadata item."""
    key: str
    value: str
    provider: str


class BucketInfo(TypedDict, total=False):
    """Bucket summary embedded in a table detail."""
    id: str
    name: str
    stage: str  # in | out | sys
    backend: str  # snowflake | synapse | ...


class TableInfo(TypedDict, total=False):
    """Table detail as returned by the Storage API."""
    id: str
    name: str
    columns: List[str]
    primaryKey: List[str]
    isAlias: bool
    isTyped: bool
    rowsCount: Optional[int]
    bucket: BucketInfo
    metadata: List[MetadataEntry]
    columnMetadata: Dict[str, List[MetadataEntry]]
    distributionType: Optional[str]
    distributionKey: List[str]
    indexType: Optional[str]
    indexKey: List[str]


class FileInfo(TypedDict, total=False):
    """File detail, optionally with federation token credentials."""
    id: int
    name: str
    url: str
    isSliced: bool
    sizeBytes: int
    provider: str  # aws | azure | gcp
    region: str
    s3Path: Dict[str, str]
    credentials: Dict[str, str]
    gcsPath: Dict[str, str]
    gcsCredentials: Dict[str, str]


class ManifestEntry(TypedDict):
    """Single slice reference of a sliced file manifest."""
    url: str


def split_bucket_id(bucket_id: str) -> Tuple[str, str]:
    """
    Split a bucket id into stage and bucket name.

    Examples:
        >>> split_bucket_id("in.c-sales")
        ('in', 'sales')
        >>> split_bucket_id("out.reports")
        ('out', 'reports')
    """
    if "." not in bucket_id:
        raise ValueError(f"Invalid bucket id '{bucket_id}', expected '<stage>.<name>'")

    stage, name = bucket_id.split(".", 1)
    if name.startswith(_BUCKET_PREFIX):
        name = name[len(_BUCKET_PREFIX):]
    return stage, name


def mask_sensitive_value(value: str, visible_chars: int = 2) -> str:
    """
    Mask sensitive values for logging.

    Args:
        value: The sensitive value to mask
        visible_chars: Number of characters to show at the beginning

    Returns:
        Masked string
    """
    if not value or len(value) <= visible_chars:
        return '***'

    return value[:visible_chars] + '*' * (len(value) - visible_chars)


def check_env_vars(required_vars: Optional[List[str]] = None) -> bool:
    """
    Check if required environment variables are set.

    Args:
        required_vars: List of required variable names. If None, uses default set.

    Returns:
        True if all required variables are set, False otherwise
    """
    if required_vars is None:
        required_vars = ['KBC_URL', 'KBC_TOKEN']

    missing_vars = []
    for var in required_vars:
        if not os.getenv(var):
            missing_vars.append(var)
            logger.warning(f"❌ {var}: NOT FOUND")
        else:
            logger.info(f"✅ {var}: {mask_sensitive_value(os.getenv(var), 3)}")

    if missing_vars:
        logger.error(f"Missing required variables: {', '.join(missing_vars)}")
        return False

    logger.info("✅ All required environment variables are configured")
    return True


def get_env_config() -> Dict[str, Optional[str]]:
    """
    Get all environment configuration in one place.

    Returns:
        Dictionary with all environment variables
    """
    return {
        # Destination project (the project the component runs in)
        'KBC_URL': os.getenv('KBC_URL'),
        'KBC_TOKEN': os.getenv('KBC_TOKEN'),
        'KBC_RUNID': os.getenv('KBC_RUNID'),
        'KBC_DATADIR': os.getenv('KBC_DATADIR', '/data'),

        # Warehouse credentials used when the config db section omits them
        'SNOWFLAKE_HOST': os.getenv('SNOWFLAKE_HOST'),
        'SNOWFLAKE_USER': os.getenv('SNOWFLAKE_USER'),
        'SNOWFLAKE_PASSWORD': os.getenv('SNOWFLAKE_PASSWORD'),
        'SNOWFLAKE_WAREHOUSE': os.getenv('SNOWFLAKE_WAREHOUSE'),

        # Local output
        'MIGRATION_RESULTS_DIR': os.getenv('MIGRATION_RESULTS_DIR', 'results'),
    }


def is_safe_account_token(value: str) -> bool:
    """Region and account locators are interpolated unquoted; allow only dotted [A-Za-z0-9_] parts."""
    return bool(value) and re.match(r'^[A-Za-z0-9_]+(\.[A-Za-z0-9_]+)*$', value) is not None
