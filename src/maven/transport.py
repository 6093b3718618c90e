"""HTTP transport bound to one remote repository."""
from __future__ import annotations

import logging
from typing import Optional

import requests

from common.http_client import safe_get
from resolution.errors import TransportError
from resolution.models import Repository
from resolution.service import Transport

logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """Fetches repository-relative locations over HTTP(S).

    No retries: a failed fetch is reported once as TransportError.
    """

    def __init__(
        self,
        repository: Repository,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.repository = repository
        self.session = session
        self.timeout = timeout

    def url_for(self, location: str) -> str:
        return f"{self.repository.url}/{location}"

    def fetch(self, location: str) -> bytes:
        url = self.url_for(location)
        try:
            response = safe_get(
                url,
                context=self.repository.id,
                session=self.session,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(url, "Fetching", exc) from exc
        if response.status_code != 200:
            raise TransportError(url, f"Fetching returned HTTP {response.status_code}")
        return response.content
