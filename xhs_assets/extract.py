from __future__ import annotations

import re
from typing import Any

_URL_RE = re.compile(r"https?://\S+")


def extract_url(text: Any) -> str | None:
    """
    Return the first http(s) URL token in pasted share text, verbatim.

    Share text copied from the app often looks like "53 http://xhslink.com/a/xyz ...";
    trailing punctuation is kept and nothing is repaired. None means no URL was found.
    """
    if not isinstance(text, str):
        return None
    match = _URL_RE.search(text)
    return match.group(0) if match else None


def extract_urls(text: Any) -> list[str]:
    if not isinstance(text, str):
        return []
    return _URL_RE.findall(text)
