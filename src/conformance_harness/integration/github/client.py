from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_S = 30.0
API_VERSION = "2022-11-28"


class GitHubApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """Minimal synchronous GitHub REST client.

    Pass `http_client` to reuse a configured `httpx.Client` (tests inject one built on
    `httpx.MockTransport`); otherwise one is created and owned by this object.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout_s)
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.api_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        url = self._url(path)
        logger.debug("%s %s", method, url)
        try:
            r = self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers,
                follow_redirects=follow_redirects,
            )
        except httpx.HTTPError as e:
            raise GitHubApiError(f"{method} {url} failed: {e}") from e
        if r.status_code >= 400:
            raise GitHubApiError(
                f"{method} {url} -> HTTP {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
            )
        return r

    def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        r = self.request(method, path, params=params, json=json)
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise GitHubApiError(f"{method} {path}: response is not JSON") from e

    def download(self, path: str) -> bytes:
        """GET following redirects (artifact downloads redirect to blob storage)."""
        return self.request("GET", path, follow_redirects=True).content
