"""Migration orchestrator: strategy selection, run and summary."""

import logging
from typing import Any, Dict, Optional, Tuple

from .database_migrate import DatabaseMigrate
from .sapi_migrate import SapiMigrate
from .strategy import RESULT_FAILED, RESULT_SKIPPED, SUCCESS_RESULTS, MigrationStrategy
from ...exceptions import ConfigError, UnknownModeError
from ...utils.config import MODE_DATABASE, MODE_SAPI, MigrationConfig
from ...utils.file_logger import FileLogger

logger = logging.getLogger(__name__)


def resolve_database_names(config: MigrationConfig, source, target) -> Tuple[str, str]:
    """
    Resolve (source database, target database) of a database mode run.

    Explicit ``db.sourceDatabase``/``db.targetDatabase`` (or ``sourceByodb``)
    win; otherwise the project database ``<prefix>_<project id>`` is used.
    """
    source_database = config.source_database or f"{config.database_prefix}_{source.project_id}"
    target_database = config.target_database or f"{config.database_prefix}_{target.project_id}"
    return source_database, target_database


def create_strategy(config: MigrationConfig, source, target, connection=None) -> MigrationStrategy:
    """
    Build the strategy for the configured mode.

    Args:
        config: Validated component configuration
        source: Authenticated storage handler of the source project
        target: Authenticated storage handler of the destination project
        connection: Connected warehouse handler, required in database mode

    Raises:
        UnknownModeError: Mode is neither ``sapi`` nor ``database``
    """
    if config.mode == MODE_SAPI:
        return SapiMigrate(
            source,
            target,
            dry_run=config.dry_run,
            large_table_threshold_bytes=config.large_table_threshold_bytes,
            chunk_size=config.chunk_size,
        )

    if config.mode == MODE_DATABASE:
        if connection is None:
            raise ConfigError("Database mode needs a warehouse connection")
        source_database, target_database = resolve_database_names(config, source, target)
        return DatabaseMigrate(
            connection,
            source,
            target,
            source_database=source_database,
            target_database=target_database,
            dry_run=config.dry_run,
        )

    raise UnknownModeError(config.mode)


class MigrationOrchestrator:
    """Runs one migration strategy and reports on its outcome."""

    def __init__(self, strategy: MigrationStrategy, file_logger: Optional[FileLogger] = None):
        """
        Args:
            strategy: Strategy built by ``create_strategy``
            file_logger: Session file logger for the per-table audit trail
        """
        self.strategy = strategy
        self.file_logger = file_logger

    def run(self, config: MigrationConfig) -> Dict[str, str]:
        """
        Run the migration and log a summary.

        Returns:
            Dict[str, str]: Table id -> outcome
        """
        if self.file_logger:
            self.file_logger.log_run_start(config.mode, config.dry_run, len(config.migrate_tables))

        results = self.strategy.migrate(config)

        summary = self.get_migration_summary(results)
        logger.info("📊 Migration summary:")
        for result, count in summary['counts'].items():
            logger.info(f"   {result}: {count}")
        logger.info(f"   📈 Success rate: {summary['success_rate_percent']}%")

        if self.file_logger:
            for table_id, result in results.items():
                self.file_logger.log_table_result(
                    table_id, result, problem=result in (RESULT_FAILED, RESULT_SKIPPED)
                )
            self.file_logger.log_summary(summary)

        if summary['failed_tables']:
            logger.error(f"❌ {len(summary['failed_tables'])} tables failed: {', '.join(summary['failed_tables'])}")
        else:
            logger.info("🎉 Migration finished without failures")

        return results

    @staticmethod
    def get_migration_summary(results: Dict[str, str]) -> Dict[str, Any]:
        """
        Generate a summary of migration results.

        Args:
            results: Dictionary of table_id -> outcome

        Returns:
            Dict: Summary statistics
        """
        total = len(results)
        counts: Dict[str, int] = {}
        for result in results.values():
            counts[result] = counts.get(result, 0) + 1

        successful = sum(1 for result in results.values() if result in SUCCESS_RESULTS)
        success_rate = (successful / total * 100) if total > 0 else 0

        return {
            'total_tables': total,
            'counts': counts,
            'successful_count': successful,
            'success_rate_percent': round(success_rate, 1),
            'failed_tables': [table_id for table_id, result in results.items() if result == RESULT_FAILED],
            'skipped_tables': [table_id for table_id, result in results.items() if result == RESULT_SKIPPED],
        }
