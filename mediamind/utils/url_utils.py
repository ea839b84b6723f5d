"""
URL utilities for normalizing, validating and classifying media URLs.

``normalize_url`` defines the deduplication key used across all sources:

* scheme and host are lowercased, default ports dropped
* scheme-less input is treated as ``https://``
* the fragment is dropped
* tracking parameters are removed; remaining query parameters are kept,
  sorted by name (two sources returning the same resource with reordered
  or tracking-decorated queries collapse to one key, while resources that
  differ by a meaningful parameter stay distinct)
* an empty path becomes ``/``; a trailing slash on a longer path is removed
"""

import re
from typing import Iterable
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

MAX_URL_LENGTH = 2048

TRACKING_PARAMS = {
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
    'fbclid', 'gclid', 'dclid', 'msclkid', 'twclid',
    'ref', 'ref_src', 'ref_url', 'referrer',
    '_ga', '_gid', '_gac', '_gl', '_gclid',
    'mc_cid', 'mc_eid', 'mkt_tok',
    'yclid', 'ysclid', 'igshid', 'si',
}

_DEFAULT_PORTS = {"http": 80, "https": 443}

VIDEO_EXTENSIONS = ('.mp4', '.webm', '.mov', '.avi', '.mkv', '.m4v', '.ogv', '.flv', '.wmv')

VIDEO_PAGE_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"archive\.org/(details|download)/",
        r"vimeo\.com/\d+",
        r"pexels\.com/video/",
        r"pixabay\.com/videos/",
        r"videvo\.net/video/",
        r"mixkit\.co/free-stock-video/",
        r"coverr\.co/videos/",
        r"britishpathe\.com/asset/",
        r"c-span\.org/video/",
        r"criticalpast\.com/video/",
        r"aparchive\.com/metadata/",
        r"/videos?/",
        r"/watch",
        r"/clip/",
        r"/footage/",
    )
]

# Social video platforms are excluded from general web video results
BLOCKED_VIDEO_DOMAINS = (
    'youtube.com', 'youtu.be', 'tiktok.com', 'facebook.com',
    'instagram.com', 'twitter.com', 'x.com', 'dailymotion.com',
)


def normalize_url(url: str) -> str:
    """Return the canonical deduplication key for ``url`` (see module doc)."""
    if not url:
        return ""

    url = url.strip()
    if "://" not in url:
        url = f"https://{url.lstrip('/')}"

    try:
        p = urlparse(url)
        port = p.port
    except ValueError:
        # Bad port or unbalanced IPv6 brackets
        return ""
    scheme = (p.scheme or "https").lower()
    host = (p.hostname or "").lower()
    if port and _DEFAULT_PORTS.get(scheme) == port:
        port = None
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port else host

    path = p.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    params = [
        (k, v)
        for k, v in parse_qsl(p.query, keep_blank_values=True)
        if k.lower() not in TRACKING_PARAMS and not k.lower().startswith("utm_")
    ]
    query = urlencode(sorted(params))

    return urlunparse((scheme, netloc, path, p.params, query, ""))


def is_valid_url(url: str) -> bool:
    if not url or len(url) > MAX_URL_LENGTH:
        return False
    try:
        p = urlparse(url)
        return bool(p.scheme and p.netloc)
    except Exception:
        return False


def extract_domain(url: str) -> str:
    """Lowercase netloc of ``url`` or an empty string."""
    if not url:
        return ""
    try:
        return urlparse(url).netloc.lower()
    except Exception:
        return ""


def extract_base_domain(url: str) -> str:
    domain = extract_domain(url)
    if domain.startswith("www."):
        return domain[4:]
    return domain


def domain_matches(url: str, domains: Iterable[str]) -> bool:
    """True when the url's host equals or is a subdomain of any of ``domains``."""
    host = extract_base_domain(url)
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)


def is_video_url(url: str) -> bool:
    """Heuristic: direct video file or a known video page layout."""
    if not url:
        return False
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    if path.endswith(VIDEO_EXTENSIONS):
        return True
    return any(p.search(url) for p in VIDEO_PAGE_PATTERNS)


def is_blocked_video_domain(url: str) -> bool:
    return domain_matches(url, BLOCKED_VIDEO_DOMAINS)
