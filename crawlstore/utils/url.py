"""
URL helpers for the crawl state storage.
"""

from urllib.parse import urlparse


def origin_host(origin: str) -> str:
    """
    Extract the host that identifies a cookie origin.

    Accepts either a URL or a bare host. The host keeps its port and the
    case it was written with; userinfo is dropped.

    Args:
        origin: URL such as ``https://user@example.com:8443/path`` or a host

    Returns:
        Host string such as ``example.com:8443``

    Raises:
        ValueError: If no host can be found
    """
    if "://" in origin or origin.startswith("//"):
        netloc = urlparse(origin).netloc
    else:
        netloc = origin.split("/", 1)[0]

    host = netloc.rpartition("@")[2]
    if not host:
        raise ValueError(f"Cannot extract host from origin '{origin}'")
    return host
