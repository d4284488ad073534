"""
Workload identity — SPIFFE-style URI derived from the host name.

    hostname "My-Host.cluster.local" → workload ID "my-host"
                                     → spiffe://local.dev/my-host

The identity is computed at the call site and threaded into the template
builder as a plain value; nothing here caches between runs.
"""

from __future__ import annotations

import re
import socket
from collections.abc import Callable

import structlog

log = structlog.get_logger()

SPIFFE_SCHEME = "spiffe"

# RFC 3986: reg-name for the trust domain, pchar for each path segment.
_UNRESERVED_SUB_DELIMS = r"A-Za-z0-9\-._~!$&'()*+,;="
_PCT_ENCODED = r"%[0-9A-Fa-f]{2}"
_REG_NAME = rf"(?:[{_UNRESERVED_SUB_DELIMS}]|{_PCT_ENCODED})+"
_PCHAR = rf"(?:[{_UNRESERVED_SUB_DELIMS}:@]|{_PCT_ENCODED})"
_SPIFFE_ID_RE = re.compile(rf"^{SPIFFE_SCHEME}://{_REG_NAME}(?:/{_PCHAR}*)+$")


def resolve_workload_id(read_hostname: Callable[[], str] = socket.gethostname) -> str:
    """
    Derive the workload ID from the host (or container) name.

    Keeps the label before the first dot and lower-cases it. An unreadable
    host name degrades to "" instead of aborting issuance.
    """
    try:
        hostname = read_hostname() or ""
    except OSError as e:
        log.warning("identity.hostname_unavailable", error=str(e))
        hostname = ""
    return hostname.split(".", 1)[0].lower()


def spiffe_id(domain: str, workload_id: str) -> str:
    return f"{SPIFFE_SCHEME}://{domain}/{workload_id}"


def is_well_formed_spiffe_id(uri: str) -> bool:
    """True if `uri` is an RFC 3986 URI of the form spiffe://<domain>/<path>."""
    return _SPIFFE_ID_RE.fullmatch(uri) is not None
