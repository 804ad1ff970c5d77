"""Storage API authentication and raw request handling."""

import logging
from typing import Any, Dict, Optional

import requests

from ...exceptions import StorageApiError
from ...utils.common import mask_sensitive_value

logger = logging.getLogger(__name__)

API_PREFIX = "/v2/storage/"


class StorageAuth:
    """Token authenticated session against one Storage API stack."""

    def __init__(self, url: str, token: str, timeout: float = 120.0):
        if not url or not token:
            raise ValueError("❌ Storage API url and token are required")
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.token_info: Optional[Dict[str, Any]] = None
        self.session = requests.Session()
        self.session.headers.update({
            'X-StorageApi-Token': token,
            'User-Agent': 'migrate-large-tables',
        })
        self._masked_token = mask_sensitive_value(token, 4)

    def authenticate(self):
        """Verify the token and remember its owner details."""
        self.token_info = self.request('GET', 'tokens/verify')
        owner = self.token_info.get('owner', {})
        logger.info(
            f"✅ Authenticated to {self.url} as project {owner.get('id')} "
            f"({owner.get('name', 'unknown')}) with token {self._masked_token}"
        )

    @property
    def is_authenticated(self) -> bool:
        return self.token_info is not None

    def build_url(self, path: str) -> str:
        if path.startswith('http://') or path.startswith('https://'):
            return path
        return f"{self.url}{API_PREFIX}{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        url = self.build_url(path)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StorageApiError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(method, url, response)

        if not response.content:
            return None
        return response.json()

    def close(self):
        self.session.close()

    @staticmethod
    def _error_from_response(method: str, url: str, response: requests.Response) -> StorageApiError:
        code = None
        try:
            body = response.json()
            message = body.get('error') or body.get('message') or response.text
            code = body.get('code')
        except ValueError:
            message = response.text

        return StorageApiError(
            f"{method} {url} returned {response.status_code}: {message}",
            status_code=response.status_code,
            code=code,
        )
