"""
Core types for the crawl state storage.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_PREFIX = "colly"


class StorageConfig(BaseModel):
    """Configuration for a storage instance"""

    prefix: str = Field(DEFAULT_PREFIX)

    # Retention of visited markers, 0 disables expiry
    visited_ttl_seconds: float = Field(0, ge=0)

    # Overall deadline for every call made by the instance
    timeout_seconds: Optional[float] = Field(None, gt=0)


class StorageStats(BaseModel):
    """Counters for storage operations"""

    visited_marked: int = 0
    visited_checks: int = 0
    visited_hits: int = 0
    cookies_written: int = 0
    cookies_read: int = 0
    cookie_errors: int = 0
    requests_added: int = 0
    requests_taken: int = 0
    queue_empty_hits: int = 0
    clears: int = 0
    keys_cleared: int = 0


class StorageHealth(BaseModel):
    """Health check response"""

    status: str = "healthy"
    timestamp: datetime = Field(default_factory=datetime.now)
    prefix: str
    ping_successful: bool = False
    queue_size: Optional[int] = None
    error: Optional[str] = None
    counters: Dict[str, int] = Field(default_factory=dict)
