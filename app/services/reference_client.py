# app/services/reference_client.py
from __future__ import annotations

import os
import sys
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return default
    return float(v)


def iter_reference_urls(doc: Dict[str, Any]) -> List[str]:
    """
    URLs cited by one scenario rule document, de-duplicated in order:
      - resource.url
      - approved.clause.url
      - checks[*].clause.url / checks[*].resource.url
    """
    urls: List[str] = []

    def _add(block: Any) -> None:
        if isinstance(block, dict):
            u = block.get("url")
            if isinstance(u, str) and u.strip():
                urls.append(u.strip())

    _add(doc.get("resource"))
    _add((doc.get("approved") or {}).get("clause"))
    checks = doc.get("checks")
    if isinstance(checks, dict):
        for t in checks.values():
            if isinstance(t, dict):
                _add(t.get("clause"))
                _add(t.get("resource"))

    seen: set[str] = set()
    uniq: List[str] = []
    for u in urls:
        if u not in seen:
            uniq.append(u)
            seen.add(u)
    return uniq


class ReferenceClient:
    """Reachability check for the guideline and legal-source links shown to users.

    - HEAD first, GET (streamed, body not read) when the server refuses HEAD
    - Conservative retries (429/5xx)

    Environment:
      - CLEARCAUSE_HTTP_TIMEOUT (seconds, default 10)
      - CLEARCAUSE_REF_DEBUG=1 for a stderr trace
    """

    USER_AGENT = "clearcause-reference-check/0.1"

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self._session = session or requests.Session()
        self._install_retries()
        self.timeout = timeout if timeout is not None else _env_float("CLEARCAUSE_HTTP_TIMEOUT", 10.0)
        self._debug: bool = str(os.getenv("CLEARCAUSE_REF_DEBUG", "")).lower() in {"1", "true", "yes"}

    # ---------- infra ----------
    def _install_retries(self, total: int = 2, backoff: float = 0.5) -> None:
        retry = Retry(
            total=total,
            backoff_factor=backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["HEAD", "GET"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def _log(self, msg: str) -> None:
        if self._debug:
            print(f"[ReferenceClient] {msg}", file=sys.stderr)

    # ---------- checks ----------
    @staticmethod
    def shape_check(url: str) -> Tuple[bool, Optional[str]]:
        """Offline check: absolute https URL with a host."""
        parsed = urlparse(url or "")
        if parsed.scheme != "https":
            return False, f"scheme must be https (got {parsed.scheme or 'none'})"
        if not parsed.netloc:
            return False, "missing host"
        return True, None

    def check_url(self, url: str) -> Tuple[bool, Optional[str]]:
        """(ok, diagnostic). Any 2xx/3xx final status counts as reachable."""
        ok, diag = self.shape_check(url)
        if not ok:
            return False, diag
        headers = {"User-Agent": self.USER_AGENT, "Accept": "*/*"}
        try:
            self._log(f"HEAD {url}")
            resp = self._session.head(url, headers=headers, timeout=self.timeout, allow_redirects=True)
            if resp.status_code in (403, 405, 501):
                self._log(f"-> {resp.status_code}, retrying with GET")
                resp = self._session.get(url, headers=headers, timeout=self.timeout,
                                         allow_redirects=True, stream=True)
                resp.close()
        except requests.RequestException as e:
            self._log(f"-> error {e}")
            return False, f"request failed: {e.__class__.__name__}"
        self._log(f"-> status={resp.status_code}")
        if resp.status_code >= 400:
            return False, f"HTTP {resp.status_code}"
        return True, None
