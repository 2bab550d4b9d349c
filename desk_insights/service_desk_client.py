"""HTTP client for the sample service desk API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from .errors import UpstreamFetchError

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://sampleapi.squaredup.com"
DEFAULT_ISSUES_PATH = "/integrations/v1/service-desk"


class ServiceDeskClient:
    """Fetch batches of issue records from the service desk integration endpoint."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        issues_path: str = DEFAULT_ISSUES_PATH,
        api_key: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: int = 30,
    ) -> None:
        self.base_url = self._normalise_base_url(base_url)
        if self.base_url != base_url:
            LOGGER.debug("Normalised service desk base URL from %s to %s", base_url, self.base_url)
        self.issues_path = issues_path
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    # -- Low level request helpers -------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._build_url(path)
        LOGGER.debug("HTTP %s %s params=%s", method, url, kwargs.get("params"))
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.timeout,
                verify=self.verify_ssl,
                **kwargs,
            )
            LOGGER.debug("Response status=%s", response.status_code)
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()
        except requests.RequestException as exc:
            raise UpstreamFetchError(str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise UpstreamFetchError(f"Invalid JSON returned by {url}: {exc}") from exc

    @staticmethod
    def _normalise_base_url(base_url: str) -> str:
        cleaned = (base_url or "").strip().rstrip("/")
        return cleaned or DEFAULT_BASE_URL

    def _build_url(self, path: str) -> str:
        """Safely join the base URL and request path."""

        normalised_path = path.lstrip("/")
        base = self.base_url.rstrip("/") + "/"
        return urljoin(base, normalised_path)

    # -- Public API ----------------------------------------------------------------
    def fetch_payload(self, datapoints: int) -> Any:
        """Return the raw JSON body for a batch of ``datapoints`` issues."""

        return self._request("GET", self.issues_path, params={"datapoints": int(datapoints)})

    def fetch_issues(self, datapoints: int) -> List[Dict[str, Any]]:
        """Return the ``results`` list of a batch, or an empty list when absent."""

        payload = self.fetch_payload(datapoints)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            LOGGER.warning("Service desk response did not contain a results list")
            return []
        LOGGER.info("Fetched %s issues from %s", len(results), self.issues_path)
        return results


def create_client(config: Dict[str, Any]) -> ServiceDeskClient:
    desk_cfg = config.get("service_desk", {})
    return ServiceDeskClient(
        base_url=desk_cfg.get("base_url", DEFAULT_BASE_URL),
        issues_path=desk_cfg.get("issues_path", DEFAULT_ISSUES_PATH),
        api_key=desk_cfg.get("api_key"),
        verify_ssl=desk_cfg.get("verify_ssl", True),
        timeout=int(desk_cfg.get("timeout", 30)),
    )
