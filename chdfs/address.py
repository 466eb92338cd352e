"""Mount point address validation."""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import urlsplit

SCHEME = "ofs"

MOUNT_POINT_ADDR_PATTERN = re.compile(
    r"^([a-zA-Z0-9-]+)\.chdfs(-dualstack)?(\.inner)?\.([a-z0-9-]+)\.([a-z0-9-.]+)"
)


def is_valid_mount_point_addr(address: Any) -> bool:
    """Return True when ``address`` is a well-formed CHDFS mount point host.

    The whole string has to match, e.g. ``f4mabcdefgh-xyzw.chdfs.ap-guangzhou.myqcloud.com``.
    """
    if not isinstance(address, str) or not address:
        return False
    return MOUNT_POINT_ADDR_PATTERN.fullmatch(address) is not None


def mount_point_id(address: str) -> Optional[str]:
    """Return the tenant/mount identifier (first label) of a valid address."""
    match = MOUNT_POINT_ADDR_PATTERN.fullmatch(address or "")
    return match.group(1) if match else None


def extract_mount_point_addr(uri: Optional[str]) -> Optional[str]:
    """Return the host part of an ``ofs://host/path`` URI.

    Strings without a scheme are returned unchanged so a bare host can be
    passed directly.
    """
    if uri is None:
        return None
    if "://" not in uri:
        return uri
    # netloc keeps the original case, unlike SplitResult.hostname
    host = urlsplit(uri).netloc.rpartition("@")[2].split(":")[0]
    return host or None
