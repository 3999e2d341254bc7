# site_corpus/crawler/robots.py
"""
Parser for robots.txt rules.

Only the parts SiteCorpus acts on are kept: the ``Disallow`` prefixes and the
``Crawl-delay`` of the group that applies to our crawler. The crawler rotates
browser user agents, so the wildcard group (``User-agent: *``) is the one used
unless a caller asks for a specific agent.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class RobotsRuleset:
    """Ordered disallowed path prefixes plus an optional crawl delay."""

    disallowed: Tuple[str, ...] = ()
    crawl_delay: Optional[float] = None

    @classmethod
    def empty(cls) -> RobotsRuleset:
        return cls()

    @classmethod
    def parse(cls, text: str, user_agent: str = "*") -> RobotsRuleset:
        groups = _parse_groups(text)
        group = _match_group(groups, user_agent)
        if group is None:
            return cls.empty()
        prefixes: List[str] = []
        for prefix in group["disallow"]:
            if prefix not in prefixes:
                prefixes.append(prefix)
        return cls(disallowed=tuple(prefixes), crawl_delay=group["crawl_delay"])

    def is_disallowed(self, path: str) -> bool:
        """Return True if *path* starts with any disallowed prefix."""
        path = path or "/"
        return any(path.startswith(prefix) for prefix in self.disallowed)

    def __bool__(self) -> bool:
        return bool(self.disallowed) or self.crawl_delay is not None


def _new_group() -> Dict[str, Any]:
    return {"agents": [], "disallow": [], "crawl_delay": None}


def _parse_groups(text: str) -> List[Dict[str, Any]]:
    """Parse robots.txt content into user-agent groups."""
    groups: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, _, val = line.partition(":")
        key = key.strip().lower()
        val = val.strip()
        if key == "user-agent":
            # consecutive User-agent lines share one group
            if current is None or current["disallow"] or current["crawl_delay"] is not None:
                current = _new_group()
                groups.append(current)
            current["agents"].append(val.lower())
        elif current is None:
            continue
        elif key == "disallow":
            # empty Disallow allows everything
            if val:
                current["disallow"].append(val)
        elif key == "crawl-delay":
            try:
                current["crawl_delay"] = float(val)
            except ValueError:
                pass
    return groups


def _match_group(groups: List[Dict[str, Any]], user_agent: str) -> Optional[Dict[str, Any]]:
    """Select the group naming *user_agent*, else the wildcard group."""
    ua = user_agent.lower()
    if ua != "*":
        for group in groups:
            if any(agent != "*" and ua.startswith(agent) for agent in group["agents"]):
                return group
    for group in groups:
        if "*" in group["agents"]:
            return group
    return None
