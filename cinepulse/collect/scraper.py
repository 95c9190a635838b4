"""
Source page fetching.

A `TextSource` turns a source identifier (a URL) into the text the
extraction prompt is built from.  `WebScraper` downloads the page with
requests and keeps only the visible text of ``<body>``; scripts, styles
and whitespace runs are dropped so the prompt stays small.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import requests
from bs4 import BeautifulSoup

from ..errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
_WHITESPACE = re.compile(r"\s+")


class TextSource(ABC):
    """Abstract source of raw page text."""

    @abstractmethod
    def fetch(self, identifier: str) -> str:
        """Return the text behind *identifier*.

        Raises:
            FetchError: the source is unreachable or invalid.
        """
        raise NotImplementedError


def visible_text(html: str) -> str:
    """Return the whitespace-collapsed text of the document body."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    root = soup.body or soup
    text = root.get_text(separator=" ")
    return _WHITESPACE.sub(" ", text).strip()


class WebScraper(TextSource):
    def __init__(self, timeout: float = 30.0, session: Optional[requests.Session] = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def fetch(self, identifier: str) -> str:
        logger.info("Visiting: %s", identifier)
        try:
            response = self.session.get(identifier, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(identifier, f"request failed: {exc}") from exc
        logger.info("Response received: %d", response.status_code)
        if response.status_code >= 400:
            raise FetchError(identifier, f"HTTP {response.status_code}")
        text = visible_text(response.text)
        if not text:
            raise FetchError(identifier, "page has no visible text")
        return text

    def close(self) -> None:
        self.session.close()
