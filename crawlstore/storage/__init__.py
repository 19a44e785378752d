"""
Crawl state storage components.

Provides the visited set, cookie store and work queue used by the
crawling engine, and the ``RedisStorage`` controller that ties them
to one key prefix in a shared store.
"""

from .controller import RedisStorage
from .cookies import CookieStore
from .locks import ReadWriteLock
from .namespace import KeyNamespace
from .queue import WorkQueue
from .visited import VisitedSet

__all__ = [
    "RedisStorage",
    "CookieStore",
    "KeyNamespace",
    "ReadWriteLock",
    "VisitedSet",
    "WorkQueue",
]
