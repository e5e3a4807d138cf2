# momcare/health_updates.py
import logging
import re
from html.parser import HTMLParser
from typing import List
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel

from .config import MOHFW_HOME_URL, MOHFW_PRESS_URL
from .errors import UpstreamFailure
from .fetch import fetch_text

logger = logging.getLogger(__name__)

MAX_UPDATES = 10
MIN_PRESS_LINKS = 3

TEXT_KEYWORDS = re.compile(r"press|release|advisory|guideline|covid", re.IGNORECASE)
HREF_KEYWORDS = re.compile(r"press", re.IGNORECASE)
ALARM_KEYWORDS = re.compile(r"alert|emergency|outbreak|epidemic|pandemic", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")


class HealthLink(BaseModel):
    title: str
    url: str


class _AnchorCollector(HTMLParser):
    """Collects (href, text) for every <a> on a page."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.anchors = []
        self._href = None
        self._text = []
        self._depth = 0

    def handle_starttag(self, tag, attrs):
        if tag != "a":
            return
        if self._depth == 0:
            self._href = dict(attrs).get("href") or ""
            self._text = []
        self._depth += 1

    def handle_endtag(self, tag):
        if tag != "a" or self._depth == 0:
            return
        self._depth -= 1
        if self._depth == 0:
            self.anchors.append((self._href, "".join(self._text)))
            self._href = None

    def handle_data(self, data):
        if self._depth:
            self._text.append(data)


def parse_press_links(html: str, base_url: str) -> List[HealthLink]:
    collector = _AnchorCollector()
    collector.feed(html)
    collector.close()

    links = []
    for href, raw_text in collector.anchors:
        text = WHITESPACE.sub(" ", raw_text).strip()
        if not href or not text:
            continue
        if not (TEXT_KEYWORDS.search(text) or HREF_KEYWORDS.search(href)):
            continue
        url = href if href.startswith("http") else urljoin(base_url, href)
        links.append(HealthLink(title=text, url=url))
    return links


def severity_for(title: str) -> str:
    return "danger" if ALARM_KEYWORDS.search(title) else "info"


async def fetch_health_updates(client: httpx.AsyncClient) -> List[HealthLink]:
    """
    Press-release links from the health ministry site.
    Falls back to the home page when the press page yields too few links.
    Returns [] when the site cannot be reached; the feed never fails on it.
    """
    links = []
    for url in (MOHFW_PRESS_URL, MOHFW_HOME_URL):
        if len(links) >= MIN_PRESS_LINKS:
            break
        try:
            links += parse_press_links(await fetch_text(client, url), url)
        except UpstreamFailure as e:
            logger.warning("MoHFW fetch of %s failed: %s", url, e)

    unique = {}
    for link in links:
        unique.setdefault(link.url, link)
    return list(unique.values())[:MAX_UPDATES]
