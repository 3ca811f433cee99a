"""
HTTP helper with retries, polite headers and bounded timeouts reused by adapters.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from urllib3.util.retry import Retry

from scout.errors import TransportError
from utils.security import redact_secrets

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "ScoutPipeline/1.0 (+https://example.com/scout)"


class HttpClient:
    """
    Thin wrapper over requests.Session. Every failure surfaces as TransportError
    so adapters can scope it to the query that caused it.
    """

    def __init__(self, timeout: float = 10, max_retries: int = 2, user_agent: str | None = None):
        self.timeout = timeout
        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=0.6,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
        )
        adapter = requests.adapters.HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update(
            {
                "User-Agent": user_agent or DEFAULT_USER_AGENT,
                "Accept": "application/json, application/xml;q=0.9, text/html;q=0.8, */*;q=0.5",
            }
        )

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(redact_secrets(f"GET {url} failed: {exc}"), url=url) from exc
        self._raise_for_status(resp, "GET", url)
        return resp

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Any:
        resp = self.get(url, params=params, headers=headers)
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"GET {redact_secrets(url)} returned unparseable JSON", url=url) from exc

    def get_text(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> str:
        return self.get(url, params=params, headers=headers).text

    def post_json(
        self,
        url: str,
        payload: Any,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        try:
            resp = self.session.post(url, json=payload, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(redact_secrets(f"POST {url} failed: {exc}"), url=url) from exc
        self._raise_for_status(resp, "POST", url)
        return resp

    def post_form(
        self,
        url: str,
        data: Dict[str, str],
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[tuple] = None,
    ) -> requests.Response:
        try:
            resp = self.session.post(url, data=data, headers=headers, auth=auth, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(redact_secrets(f"POST {url} failed: {exc}"), url=url) from exc
        self._raise_for_status(resp, "POST", url)
        return resp

    @staticmethod
    def _raise_for_status(resp: requests.Response, method: str, url: str) -> None:
        if 200 <= resp.status_code < 300:
            return
        body = redact_secrets((resp.text or "")[:200])
        logger.warning("HTTP %s failed %s %s", method, resp.status_code, body)
        raise TransportError(
            redact_secrets(f"{method} {url} returned HTTP {resp.status_code}"),
            url=url,
            status_code=resp.status_code,
        )
