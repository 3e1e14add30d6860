import logging
import threading
from typing import Any
from typing import Optional

from cryptojwt.jwt import utc_time_sans_frac
from idpyoidc.impexp import ImpExp

logger = logging.getLogger(__name__)


def cache_key(*key_parts: str) -> str:
    return "!!".join(key_parts)


class ESCache(ImpExp):
    """
    Time limited storage for signed entity statements and trust chain tokens.
    Every item carries its own expiration time.
    """

    parameter = {
        "_db": {},
        "allowed_delta": 0
    }

    def __init__(self, allowed_delta: int = 0):
        ImpExp.__init__(self)
        self._db = {}
        self.allowed_delta = allowed_delta
        self._lock = threading.Lock()

    def set(self, value: Any, ttl: int, *key_parts: str):
        if ttl <= 0:
            logger.debug(f"Not caching '{cache_key(*key_parts)}', ttl={ttl}")
            return

        with self._lock:
            self._db[cache_key(*key_parts)] = [value, utc_time_sans_frac() + ttl]

    def get(self, *key_parts: str) -> Optional[Any]:
        _key = cache_key(*key_parts)
        with self._lock:
            try:
                value, expires_at = self._db[_key]
            except KeyError:
                return None

            if utc_time_sans_frac() < (expires_at - self.allowed_delta):
                return value

            logger.debug(f"Cached item '{_key}' timed out")
            del self._db[_key]
            return None

    def delete(self, *key_parts: str):
        with self._lock:
            self._db.pop(cache_key(*key_parts), None)

    def keys(self):
        with self._lock:
            return list(self._db.keys())

    def __len__(self):
        with self._lock:
            return len(self._db)

    def __contains__(self, item):
        return self.get(item) is not None
