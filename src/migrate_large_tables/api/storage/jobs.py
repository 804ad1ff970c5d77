"""Waiting for asynchronous Storage API jobs."""

import logging
import time
from typing import Any, Dict

from .auth import StorageAuth
from ...exceptions import StorageApiError

logger = logging.getLogger(__name__)

_FINISHED_STATES = ('success', 'error', 'cancelled', 'terminated')


def wait_for_job(auth: StorageAuth, job: Dict[str, Any], max_delay: float = 20.0) -> Dict[str, Any]:
    """
    Poll an async job until it finishes.

    Args:
        auth: Authenticated Storage API session
        job: Job payload returned by the async endpoint
        max_delay: Upper bound of the polling interval in seconds

    Returns:
        Dict: The job's ``results`` payload

    Raises:
        StorageApiError: The job finished in any state other than success
    """
    job_id = job['id']
    delay = 1.0
    while job.get('status') not in _FINISHED_STATES:
        time.sleep(delay)
        delay = min(delay * 2, max_delay)
        job = auth.request('GET', f"jobs/{job_id}")

    if job['status'] != 'success':
        error = job.get('error') or {}
        message = error.get('message') or f"Job {job_id} finished with status {job['status']}"
        # Failed jobs surface as client errors, same as the synchronous endpoints
        raise StorageApiError(message, status_code=400, code=error.get('code'))

    logger.debug(f"Job {job_id} finished successfully")
    return job.get('results') or {}
