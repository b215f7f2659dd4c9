"""Optional lookups against an external schema registry over HTTP."""

import logging
from typing import Optional, Protocol
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from schemadrift.core.exceptions import CatalogError

logger = logging.getLogger(__name__)


class SubjectCatalog(Protocol):
    """Capability for listing subjects known to an external registry."""

    def fetch_subjects(self) -> list[str]:
        """Return subject names, or an empty list when unavailable."""
        ...


class HttpSubjectCatalog:
    """Client for a Confluent-compatible schema registry REST API.

    Lookups are best effort: every failure is logged and turned into an
    empty result, so the registry being down never blocks versioning.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        """Initialize HttpSubjectCatalog.

        Args:
            base_url: Registry base URL (e.g. http://localhost:8081)
            timeout: Request timeout in seconds
            max_retries: Retries on 5xx responses
            retry_delay: Backoff factor between retries
            session: Optional preconfigured session
        """
        if not base_url:
            raise ValueError("base_url is required for the external registry")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

        if max_retries > 0:
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=retry_delay,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=["GET"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

    def _get(self, path: str) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response
        except RequestException as e:
            raise CatalogError(
                f"Schema registry request failed: {e}", context={"url": url}
            ) from e

    def list_subjects(self) -> list[str]:
        """Fetch subjects, raising CatalogError on failure."""
        response = self._get("/subjects")
        try:
            data = response.json()
        except ValueError as e:
            raise CatalogError(
                "Schema registry returned invalid JSON",
                context={"url": response.url},
            ) from e
        if not isinstance(data, list):
            raise CatalogError(
                "Schema registry returned an unexpected subjects payload",
                context={"url": response.url},
            )
        return [str(s) for s in data]

    def fetch_subjects(self) -> list[str]:
        try:
            return self.list_subjects()
        except CatalogError as e:
            logger.error(f"Error fetching subjects from Schema Registry: {e}")
            return []

    def fetch_schema(self, subject: str, version: int) -> Optional[str]:
        """Fetch the raw registry payload for one subject version, or None."""
        try:
            return self._get(
                f"/subjects/{quote(subject, safe='')}/versions/{version}"
            ).text
        except CatalogError as e:
            logger.error(f"Error fetching schema from registry: {e}")
            return None
