"""Shared domain extraction and hostname matching helpers."""

from __future__ import annotations

from urllib.parse import urlparse

UNKNOWN_DOMAIN = "unknown"

# Checked in order; longer prefixes first where they overlap.
SCHEME_LABELS = (
    ("about:", "about"),
    ("chrome-extension://", "extension"),
    ("chrome://", "chrome"),
    ("file://", "local-file"),
    ("moz-extension://", "extension"),
    ("data:", "data"),
)

SPECIAL_SECOND_LEVEL_TLDS = ("co.uk", "com.au", "co.jp", "co.in", "com.br")


def strip_www(host: str) -> str:
    host = str(host or "")
    if host.startswith("www."):
        return host[4:]
    return host


def root_domain(host: str) -> str:
    """Reduce a hostname to its registrable root (`a.b.example.com` -> `example.com`)."""
    host = strip_www(str(host or "").strip().lower())
    if not host:
        return UNKNOWN_DOMAIN

    parts = host.split(".")
    for tld in SPECIAL_SECOND_LEVEL_TLDS:
        if host.endswith("." + tld):
            return ".".join(parts[-3:]) if len(parts) >= 3 else host

    if len(parts) > 2:
        return ".".join(parts[-2:])
    return host


def extract_domain(url: str) -> str:
    url = str(url or "").strip()
    if not url:
        return UNKNOWN_DOMAIN

    lower_url = url.lower()
    for prefix, label in SCHEME_LABELS:
        if lower_url.startswith(prefix):
            return label

    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_DOMAIN
    if not hostname:
        return UNKNOWN_DOMAIN
    return root_domain(hostname)
