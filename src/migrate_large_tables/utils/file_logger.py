"""
File logging utilities for table migration runs.
Provides structured logging to files with different levels and purposes.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


class FileLogger:
    """File logging for one migration session."""

    def __init__(self, base_dir: str = "results/logs", session_timestamp: Optional[str] = None):
        """
        Initialize file logger.

        Args:
            base_dir: Base directory for log files (default: results/logs)
            session_timestamp: Fixed timestamp for session (if None, generates new one)
        """
        self.base_dir = Path(base_dir)
        self.session_timestamp = session_timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.session_dir = self.base_dir / self.session_timestamp
        self.session_dir.mkdir(parents=True, exist_ok=True)

        self.general_logger: Optional[logging.Logger] = None
        self.error_logger: Optional[logging.Logger] = None

    def _setup_logger(self, name: str, level: int, fmt: str) -> logging.Logger:
        log_file = self.session_dir / f"{name}.log"

        logger = logging.getLogger(f"file_{name}")
        logger.setLevel(level)

        # Remove existing handlers to avoid duplicates
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))

        logger.addHandler(file_handler)
        logger.propagate = False
        return logger

    def setup_general_logger(self, name: str = "general_execution") -> logging.Logger:
        """
        Setup general execution logger.

        Args:
            name: Logger name

        Returns:
            Configured logger instance
        """
        if self.general_logger:
            return self.general_logger

        self.general_logger = self._setup_logger(name, logging.INFO, '%(asctime)s - %(levelname)s - %(message)s')
        self.general_logger.info("=" * 80)
        self.general_logger.info(f"🚀 Migration session started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self.general_logger.info(f"📁 Log file: {self.session_dir / f'{name}.log'}")
        self.general_logger.info("=" * 80)
        return self.general_logger

    def setup_error_logger(self, name: str = "errors_and_warnings") -> logging.Logger:
        """
        Setup error-specific logger.

        Args:
            name: Logger name

        Returns:
            Configured error logger instance
        """
        if self.error_logger:
            return self.error_logger

        self.error_logger = self._setup_logger(
            name, logging.WARNING, '%(asctime)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'
        )
        self.error_logger.warning("=" * 80)
        self.error_logger.warning(f"❌ Error tracking started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self.error_logger.warning("=" * 80)
        return self.error_logger

    def log_run_start(self, mode: str, dry_run: bool, table_count: Optional[int] = None):
        if self.general_logger:
            self.general_logger.info("-" * 60)
            self.general_logger.info("📊 MIGRATION STARTED")
            self.general_logger.info(f"   Mode: {mode}")
            self.general_logger.info(f"   Dry run: {dry_run}")
            if table_count is not None:
                self.general_logger.info(f"   Configured tables: {table_count or 'auto-discovery'}")
            self.general_logger.info("-" * 60)

    def log_table_result(self, table_id: str, result: str, problem: bool = False):
        """Log the outcome of one table; problems also go to the error log."""
        if self.general_logger:
            self.general_logger.info(f"   {table_id}: {result}")

        if self.error_logger and problem:
            self.error_logger.warning(f"TABLE_{result.upper()} - {table_id}")

    def log_summary(self, summary: Dict[str, Any]):
        if self.general_logger:
            self.general_logger.info("-" * 60)
            self.general_logger.info("📈 MIGRATION COMPLETED")
            self.general_logger.info(f"   Total tables: {summary.get('total_tables')}")
            for result, count in summary.get('counts', {}).items():
                self.general_logger.info(f"   {result}: {count}")
            self.general_logger.info(f"   Success rate: {summary.get('success_rate_percent')}%")
            self.general_logger.info("-" * 60)

    def log_error(self, error_type: str, context: str, error_message: str):
        """Log error to both general and error logs."""
        error_msg = f"[{error_type}] {context}: {error_message}"

        if self.general_logger:
            self.general_logger.error(error_msg)

        if self.error_logger:
            self.error_logger.error(error_msg)

    def close_loggers(self):
        """Close all file handlers."""
        if self.general_logger:
            self.general_logger.info("=" * 80)
            self.general_logger.info(f"📝 Migration session ended: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            self.general_logger.info(f"📁 Session logs saved in: {self.session_dir}")
            self.general_logger.info("=" * 80)

            for handler in self.general_logger.handlers[:]:
                handler.close()
                self.general_logger.removeHandler(handler)

        if self.error_logger:
            self.error_logger.warning("=" * 80)
            self.error_logger.warning(f"❌ Error tracking ended: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            self.error_logger.warning("=" * 80)

            for handler in self.error_logger.handlers[:]:
                handler.close()
                self.error_logger.removeHandler(handler)


# Global file logger instance
_file_logger_instance: Optional[FileLogger] = None


def start_logging_session(results_dir: str = "results", session_name: Optional[str] = None) -> FileLogger:
    """
    Start a new logging session under ``<results_dir>/logs/<timestamp>``.

    Args:
        results_dir: Base results directory
        session_name: Optional session name written to the general log

    Returns:
        The session's FileLogger
    """
    global _file_logger_instance

    if _file_logger_instance:
        _file_logger_instance.close_loggers()

    _file_logger_instance = FileLogger(base_dir=f"{results_dir}/logs")
    _file_logger_instance.setup_general_logger()
    _file_logger_instance.setup_error_logger()
    _file_logger_instance.general_logger.info(f"🎬 LOGGING SESSION STARTED: {session_name or 'Default'}")
    return _file_logger_instance


def end_logging_session():
    """End the current logging session."""
    global _file_logger_instance

    if _file_logger_instance:
        _file_logger_instance.close_loggers()
        _file_logger_instance = None
