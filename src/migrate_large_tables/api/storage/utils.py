"""Storage API helpers for table files."""

import logging
from typing import List

import pandas as pd

logger = logging.getLogger(__name__)


def write_header_csv(columns: List[str], path: str) -> str:
    """Write a CSV holding only the header row, used to create empty untyped tables."""
    pd.DataFrame(columns=columns).to_csv(path, index=False)
    logger.debug(f"Wrote header-only CSV with {len(columns)} columns to {path}")
    return path
