"""
Link extraction for same-site crawling.

This is a lightweight heuristic rather than an HTML parser: it scans raw page
text for double-quoted ``href`` attributes and resolves every surviving
address against the site root, never against the current page's path.
"""

import re
from typing import List, Optional

HREF_PATTERN = re.compile(r'href="(.*?)"')

SKIPPED_EXTENSIONS = ('.jpg', '.gif', '.css', '.rss', '.js')
ABSOLUTE_PREFIXES = ('http://', 'https://')


def resolve_link(address: str, base_url: str) -> Optional[str]:
    """
    Resolve one href value against the site root.

    Returns None when the address must be skipped.
    """
    if address.endswith(SKIPPED_EXTENSIONS):
        return None

    # Absolute links are dropped even when they point back into the site
    if address.startswith(ABSOLUTE_PREFIXES):
        return None

    if address.startswith(base_url):
        return base_url

    # "../x" always lands one level below the root, whatever the page depth
    if address.startswith('../'):
        return base_url + address[2:]

    return base_url + '/' + address


def extract_links(page_text: str, base_url: str) -> Optional[List[str]]:
    """
    Extract candidate same-site links from raw page text.

    Args:
        page_text: Raw page content
        base_url: Root of the crawl

    Returns:
        Resolved links in document order (duplicates kept), or None if no
        candidate survived filtering.
    """
    links = []
    for match in HREF_PATTERN.finditer(page_text):
        link = resolve_link(match.group(1), base_url)
        if link is not None:
            links.append(link)

    if not links:
        return None

    return links
