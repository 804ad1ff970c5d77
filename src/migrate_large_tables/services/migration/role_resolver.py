"""Discovery and adoption of the roles that own warehouse objects."""

import logging
from contextlib import contextmanager
from typing import Iterator

from snowflake.connector.errors import Error as SnowflakeError

from ...exceptions import OwnershipResolutionError

logger = logging.getLogger(__name__)

OWNERSHIP = "OWNERSHIP"


class RoleResolver:
    """Finds owning roles and switches the session into them safely."""

    def __init__(self, connection):
        """
        Args:
            connection: Connected ``SnowflakeHandler`` of the destination account
        """
        self.connection = connection

    def get_owner_role(self, object_kind: str, object_name: str) -> str:
        """
        Return the role holding OWNERSHIP on an object.

        Args:
            object_kind: ``DATABASE`` or ``TABLE``
            object_name: Quoted, possibly qualified object name

        Raises:
            OwnershipResolutionError: Zero or several ownership grants exist
        """
        grants = self.connection.show_grants_on(object_kind, object_name)
        owners = [grant['grantee_name'] for grant in grants if grant['privilege'] == OWNERSHIP]
        if len(owners) != 1:
            raise OwnershipResolutionError(object_kind, object_name, owners)
        return owners[0]

    @contextmanager
    def adopt_role(self, role: str, grant_first: bool = False, dry_run: bool = False) -> Iterator[str]:
        """
        Switch into ``role`` for the duration of the block.

        The role is granted to the migrate user when switching fails (or up
        front with ``grant_first``) and the switch is retried once. The role
        active before the block is restored on every exit path. With
        ``dry_run`` nothing is granted: a role the user does not hold is only
        logged and the block runs under the current role.
        """
        previous_role = self.connection.get_current_role()
        if dry_run:
            try:
                self.connection.use_role(role)
            except SnowflakeError as e:
                logger.info(f"[dry-run] Granting role {role} to the migrate user ({e})")
        elif grant_first:
            self.connection.grant_role_to_user(role)
            self.connection.use_role(role)
        else:
            try:
                self.connection.use_role(role)
            except SnowflakeError as e:
                logger.warning(f"⚠️ Cannot use role {role} ({e}), granting it to the migrate user and retrying")
                self.connection.grant_role_to_user(role)
                self.connection.use_role(role)

        try:
            yield role
        finally:
            self.connection.use_role(previous_role)

    def grant_replica_privileges(self, replica_database: str, role: str) -> None:
        """Let ``role`` read the replica database."""
        self.connection.grant_privileges_to_replica_database(role, replica_database)
