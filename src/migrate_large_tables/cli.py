#!/usr/bin/env python3
"""
CLI and container entrypoint for the table migration tool.

The destination project is the one the component runs in (``KBC_URL`` /
``KBC_TOKEN``); everything else comes from ``<data dir>/config.json``.
"""

import sys
import argparse
import logging
from typing import Optional, Tuple

from snowflake.connector.errors import Error as SnowflakeError

from .api.snowflake import SnowflakeHandler
from .api.storage import StorageHandler
from .exceptions import ConfigError, MigrationError
from .services.migration import DatabaseReplication, MigrationOrchestrator, create_strategy
from .utils.common import check_env_vars, get_env_config
from .utils.config import ACTION_CREATE_REPLICATIONS, MODE_DATABASE, MigrationConfig
from .utils.file_logger import end_logging_session, start_logging_session
from .utils.file_utils import save_results_report

logger = logging.getLogger(__name__)


def load_config(data_dir: Optional[str] = None, config_path: Optional[str] = None) -> MigrationConfig:
    """Load and validate the component configuration."""
    if config_path:
        config = MigrationConfig.from_file(config_path)
    else:
        config = MigrationConfig.from_data_dir(data_dir)
    config.validate()
    return config


def target_credentials() -> Tuple[str, str]:
    """Destination project url and token from the environment."""
    if not check_env_vars(['KBC_URL', 'KBC_TOKEN']):
        raise ConfigError("KBC_URL and KBC_TOKEN must be set for the destination project")
    env = get_env_config()
    return env['KBC_URL'], env['KBC_TOKEN']


def run_migration(config: MigrationConfig) -> bool:
    """Migrate tables with the configured strategy. Returns False when any table failed."""
    env = get_env_config()
    target_url, target_token = target_credentials()
    session_name = f"migrate-{config.mode}"
    if env['KBC_RUNID']:
        session_name += f" (run {env['KBC_RUNID']})"
    file_logger = start_logging_session(env['MIGRATION_RESULTS_DIR'], session_name)

    try:
        with StorageHandler(config.source_kbc_url, config.source_kbc_token) as source, \
                StorageHandler(target_url, target_token) as target:
            if config.mode == MODE_DATABASE:
                with SnowflakeHandler(config.db_params) as connection:
                    strategy = create_strategy(config, source, target, connection)
                    results = MigrationOrchestrator(strategy, file_logger).run(config)
            else:
                strategy = create_strategy(config, source, target)
                results = MigrationOrchestrator(strategy, file_logger).run(config)

        report = save_results_report(results, env['MIGRATION_RESULTS_DIR'], config.mode)
        logger.info(f"📁 Results saved to: {report}")

        summary = MigrationOrchestrator.get_migration_summary(results)
        return not summary['failed_tables']
    except (MigrationError, SnowflakeError) as e:
        file_logger.log_error(type(e).__name__, 'migration run', str(e))
        raise
    finally:
        end_logging_session()


def create_replications(config: MigrationConfig) -> bool:
    """Enable replication for a range of project databases and create their replicas."""
    with SnowflakeHandler(config.source_db_params) as source_connection, \
            SnowflakeHandler(config.db_params) as target_connection:
        replicas = DatabaseReplication(source_connection, target_connection).create_replications(config)

    logger.info(f"✅ Replicas ready: {', '.join(replicas) if replicas else 'none'}")
    return True


def test_connections(config: MigrationConfig) -> bool:
    """Test the Storage API of both projects and, in database mode, the warehouse."""
    target_url, target_token = target_credentials()
    success = True

    for label, url, token in (
        ('source', config.source_kbc_url, config.source_kbc_token),
        ('destination', target_url, target_token),
    ):
        logger.info(f"🧪 Testing {label} Storage API connection...")
        try:
            with StorageHandler(url, token) as storage:
                logger.info(f"✅ {label.capitalize()} project {storage.project_id} reachable")
        except MigrationError as e:
            logger.error(f"❌ {label.capitalize()} Storage API connection failed: {e}")
            success = False

    if config.mode == MODE_DATABASE:
        logger.info("🧪 Testing Snowflake connection...")
        handler = SnowflakeHandler(config.db_params)
        if handler.setup_connection():
            logger.info(f"✅ Snowflake connection successful (role {handler.get_current_role()})")
            handler.cleanup()
        else:
            success = False

    return success


def main(argv=None):
    """Main CLI function."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(
        description="Migrate tables between two storage projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run the action from <KBC_DATADIR>/config.json (default command)
    migrate-large-tables run
    migrate-large-tables run --config ./config.json

    # Create replicas for a range of project databases
    migrate-large-tables create-replications

    # Test connections
    migrate-large-tables test-connections

Environment Variables Required:
    KBC_URL: Destination Storage API url
    KBC_TOKEN: Destination Storage API token
    KBC_DATADIR: Data directory with config.json (default: /data)
        """
    )
    parser.add_argument('--data-dir', help='Directory holding config.json (default: $KBC_DATADIR)')
    parser.add_argument('--config', help='Explicit path to the configuration file')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.add_parser('run', help='Run the action configured in config.json')
    subparsers.add_parser('create-replications', help='Create replica databases for a project id range')
    subparsers.add_parser('test-connections', help='Test all connections')

    args = parser.parse_args(argv)
    command = args.command or 'run'

    logger.info("🚀 Table migration tool")

    try:
        config = load_config(args.data_dir, args.config)

        if command == 'test-connections':
            success = test_connections(config)
        elif command == 'create-replications' or config.action == ACTION_CREATE_REPLICATIONS:
            success = create_replications(config)
        else:
            success = run_migration(config)

        return 0 if success else 1

    except KeyboardInterrupt:
        logger.info("⚠️  Operation cancelled by user")
        return 1
    except ConfigError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 1
    except (MigrationError, SnowflakeError, ConnectionError) as e:
        logger.error(f"❌ Migration failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
