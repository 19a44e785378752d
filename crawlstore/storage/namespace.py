"""
Key layout of the crawl state in the remote store.

    <prefix>:request:<id>    visited marker
    <prefix>:cookie:<host>   cookie jar of one origin
    <prefix>:queue           pending requests list
"""

import re
from dataclasses import dataclass
from typing import Final

REQUEST: Final[str] = "request"
COOKIE: Final[str] = "cookie"
QUEUE: Final[str] = "queue"

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so ``value`` only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


@dataclass(frozen=True)
class KeyNamespace:
    prefix: str

    def visited_key(self, request_id: int) -> str:
        if request_id < 0:
            raise ValueError(f"request id must be non-negative, got {request_id}")
        return f"{self.prefix}:{REQUEST}:{request_id:d}"

    def cookie_key(self, host: str) -> str:
        return f"{self.prefix}:{COOKIE}:{host}"

    def queue_key(self) -> str:
        return f"{self.prefix}:{QUEUE}"

    def visited_pattern(self) -> str:
        return f"{escape_glob(self.prefix)}:{REQUEST}:*"

    def cookie_pattern(self) -> str:
        return f"{escape_glob(self.prefix)}:{COOKIE}:*"
