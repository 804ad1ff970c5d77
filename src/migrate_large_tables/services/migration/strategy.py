"""Migration strategy contract and per-table outcomes."""

from typing import Dict, Protocol

from ...utils.config import MigrationConfig

RESULT_SKIPPED = "skipped"
RESULT_IMPORTED = "imported"
RESULT_DRY_RUN = "dry_run"
RESULT_UP_TO_DATE = "up_to_date"
RESULT_FAILED = "failed"

# Outcomes that count as a successful table in the run summary
SUCCESS_RESULTS = (RESULT_IMPORTED, RESULT_DRY_RUN, RESULT_UP_TO_DATE)


class MigrationStrategy(Protocol):
    """One way of moving tables between two projects."""

    def migrate(self, config: MigrationConfig) -> Dict[str, str]:
        """
        Migrate the configured tables.

        Returns:
            Dict[str, str]: Table id -> outcome (one of the ``RESULT_*`` values)
        """
        ...
