"""Infer the most relevant downloadable URL for the displayed page.

The page-side script only gathers a read-only snapshot of the live page
(address, path, canonical link, anchors); classification itself is a pure
function over that snapshot.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Second path segments that name a profile sub-page, not a track
PROFILE_SUBPAGES = frozenset({"sets", "likes", "reposts"})

# Anchors beyond this many are not sent back from the page
MAX_SNAPSHOT_LINKS = 500

PAGE_SNAPSHOT_SCRIPT = """
(function() {
    var canonical = document.querySelector('link[rel="canonical"]');
    var anchors = Array.prototype.slice.call(
        document.querySelectorAll('a[href]'), 0, %d);
    return JSON.stringify({
        href: window.location.href,
        path: window.location.pathname,
        canonical: canonical && canonical.href ? canonical.href : null,
        links: anchors.map(function(a) {
            return {attr: a.getAttribute('href') || '', href: a.href || ''};
        })
    });
})()
""" % MAX_SNAPSHOT_LINKS

LINK_UNDER_CURSOR_SCRIPT = """
(function() {
    var el = document.elementFromPoint(%d, %d);
    var link = el ? el.closest('a') : null;
    return link ? link.href : null;
})()
"""


class PageLink(BaseModel):
    """An anchor as written in the page (``attr``) and as resolved (``href``)."""

    attr: str = ""
    href: str = ""


class PageSnapshot(BaseModel):
    """Read-only view of the displayed page used for classification."""

    href: str
    path: str = "/"
    canonical: str | None = None
    links: list[PageLink] = Field(default_factory=list)


def path_segments(path: str) -> list[str]:
    """Non-empty segments of a URL path."""
    return [segment for segment in path.split("/") if segment]


def classify_page(snapshot: PageSnapshot) -> str:
    """
    Pick the URL to pre-fill into the download panel.

    Track (/artist/track), playlist (/artist/sets/album) and profile
    (/artist) pages download the page itself. Anything else prefers the
    canonical link, then the first track-like link, then the first playlist
    link, and finally the page address.

    Args:
        snapshot: Page snapshot

    Returns:
        URL string
    """
    segments = path_segments(snapshot.path)

    if len(segments) == 2 and segments[1] not in PROFILE_SUBPAGES:
        return snapshot.href
    if len(segments) == 3 and segments[1] == "sets":
        return snapshot.href
    if len(segments) == 1:
        return snapshot.href

    if snapshot.canonical:
        return snapshot.canonical

    for link in snapshot.links:
        if link.href and link.attr.startswith("/") and "/sets/" not in link.attr:
            return link.href

    for link in snapshot.links:
        if link.href and "/sets/" in link.attr:
            return link.href

    return snapshot.href


def parse_snapshot(result: Any) -> PageSnapshot | None:
    """
    Parse the snapshot script's result.

    Args:
        result: JSON string (or already-decoded dict) returned by the page

    Returns:
        Snapshot, or None when the page returned nothing usable
    """
    if result is None:
        return None

    try:
        data = json.loads(result) if isinstance(result, str) else result
        return PageSnapshot.model_validate(data)
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.debug(f"Unusable page snapshot: {e}")
        return None


def classify_result(result: Any) -> str | None:
    """Classify a raw snapshot script result; None when it is unusable."""
    snapshot = parse_snapshot(result)
    if snapshot is None:
        return None
    return classify_page(snapshot) or None


def link_under_cursor_script(x: float, y: float) -> str:
    """Page script resolving the href of the anchor under a viewport point."""
    return LINK_UNDER_CURSOR_SCRIPT % (int(x), int(y))
