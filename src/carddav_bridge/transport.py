from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urljoin

import requests

from .exceptions import TransportError

logger = logging.getLogger(__name__)
USERAGENT = "carddav-bridge/0.1"


class Collection(Protocol):
    def download_resource(self, uri: str) -> dict[str, Any]: ...


class HttpCollection:
    """An addressbook collection on a CardDAV server, reduced to fetching
    resources referenced from its cards (e.g. PHOTO;VALUE=uri)."""

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USERAGENT
        if username is not None:
            self.session.auth = (username, password or "")

    def download_resource(self, uri: str) -> dict[str, Any]:
        url = urljoin(self.base_url, uri)
        logger.debug("GET %s", url)
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"GET {url} failed: {e}", uri=url, status=status) from e

        return {
            "body": r.content,
            "status": r.status_code,
            "headers": dict(r.headers),
        }
