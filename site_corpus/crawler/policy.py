# site_corpus/crawler/policy.py
"""
Politeness policy: robots.txt rules plus static ignore patterns.

A URL is fetched only if no robots prefix disallows its path and it matches
none of the static patterns. URLs with a query string are always ignored.
"""
from __future__ import annotations

import asyncio
import re
from typing import List, Optional, Pattern, Sequence
from urllib.parse import urlsplit, urlunsplit

from aiohttp import ClientError, ClientSession

from site_corpus.crawler.robots import RobotsRuleset
from site_corpus.logger import get_logger

logger = get_logger("policy")


class PolitenessPolicy:
    """Decides whether a canonical URL may be fetched."""

    def __init__(
        self,
        rules: Optional[RobotsRuleset] = None,
        ignore_patterns: Sequence[str] = (),
    ) -> None:
        self.rules = rules or RobotsRuleset.empty()
        self._patterns: List[Pattern[str]] = [re.compile(p, re.IGNORECASE) for p in ignore_patterns]

    def matches_ignore_pattern(self, url: str) -> bool:
        parts = urlsplit(url)
        if parts.query:
            return True
        return any(p.search(parts.path) for p in self._patterns)

    def is_allowed(self, url: str) -> bool:
        """True unless robots disallows the path or a static pattern matches."""
        if self.matches_ignore_pattern(url):
            return False
        return not self.rules.is_disallowed(urlsplit(url).path)

    @property
    def crawl_delay(self) -> Optional[float]:
        return self.rules.crawl_delay


def robots_url_for(base_url: str) -> str:
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, "/robots.txt", "", ""))


async def load_robots(
    session: ClientSession,
    base_url: str,
    user_agent: str = "*",
    headers: Optional[dict] = None,
) -> RobotsRuleset:
    """
    Fetch and parse ``/robots.txt`` once for the crawl.

    Any failure yields an empty ruleset so the crawl proceeds unrestricted
    (apart from the static ignore patterns).
    """
    robots_url = robots_url_for(base_url)
    try:
        async with session.get(robots_url, headers=headers) as resp:
            if resp.status != 200:
                logger.debug("robots.txt %s -> HTTP %s, allowing all", robots_url, resp.status)
                return RobotsRuleset.empty()
            text = await resp.text(errors="replace")
    except (ClientError, asyncio.TimeoutError) as exc:
        logger.warning("Error loading robots.txt %s: %s", robots_url, exc)
        return RobotsRuleset.empty()
    try:
        rules = RobotsRuleset.parse(text, user_agent)
    except Exception as exc:
        logger.warning("Error parsing robots.txt %s: %s", robots_url, exc)
        return RobotsRuleset.empty()
    logger.info("robots.txt loaded: %d disallowed prefixes", len(rules.disallowed))
    return rules
