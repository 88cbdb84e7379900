from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Tuple

import httpx

from ..config import get_baidu_credentials, get_http_timeout
from .exceptions import FetchFailed

logger = logging.getLogger(__name__)

BAIDU_TOKEN_URL = "https://openapi.baidu.com/oauth/2.0/token"
TOKEN_KEY = "chatadmin:baidu_token"

# ``fetch()`` returns ``(token, provider_ttl_seconds)``
Fetcher = Callable[[], Tuple[str, float]]


@dataclass
class TokenRecord:
    value: str
    valid_until: float


def fetch_baidu_token() -> Tuple[str, float]:
    """Request a speech synthesis token with the client credentials grant."""
    client_id, client_secret = get_baidu_credentials()
    try:
        resp = httpx.get(
            BAIDU_TOKEN_URL,
            params={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
            timeout=get_http_timeout(),
        )
    except httpx.HTTPError as exc:
        raise FetchFailed(f"Token request failed: {exc}") from exc
    if resp.status_code != 200:
        raise FetchFailed(f"Token request failed with status {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise FetchFailed("Token response is not JSON") from exc
    token = data.get("access_token")
    if not token:
        raise FetchFailed(data.get("error_description") or "Token response has no access_token")
    return token, float(data.get("expires_in", 0))


class TokenCache:
    """Single cached credential refreshed on read once it goes stale.

    The record is considered valid until ``fetched_at + provider_ttl - margin``.
    Refreshes are serialised so concurrent readers of an expired record
    trigger one fetch. When a Redis client is given the token is mirrored
    there so several workers share it; Redis failures fall back to the local
    record.
    """

    def __init__(
        self,
        fetch: Fetcher,
        margin: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        redis_client=None,
    ):
        self._fetch = fetch
        self.margin = margin
        self.clock = clock
        self._redis = redis_client
        self._record: TokenRecord | None = None
        self._lock = threading.Lock()

    @property
    def record(self) -> TokenRecord | None:
        return self._record

    def _fresh(self) -> str | None:
        record = self._record
        if record is not None and self.clock() < record.valid_until:
            return record.value
        return None

    def _load_shared(self) -> str | None:
        """Adopt a token another worker mirrored, keeping its remaining TTL."""
        if not self._redis:
            return None
        try:
            token = self._redis.get(TOKEN_KEY)
            ttl = self._redis.ttl(TOKEN_KEY) if token else 0
        except Exception:
            return None
        if not token:
            return None
        token = token.decode() if isinstance(token, bytes) else token
        # -1 means no expiry was set; only trust keys written with SETEX
        if ttl and ttl > 0:
            self._record = TokenRecord(token, self.clock() + ttl)
        return token

    def _save_shared(self, token: str, ttl: float) -> None:
        if not self._redis or ttl <= 0:
            return
        try:
            self._redis.setex(TOKEN_KEY, int(ttl), token)
        except Exception:
            pass

    def get_token(self) -> str:
        token = self._fresh()
        if token is not None:
            return token
        with self._lock:
            token = self._fresh()
            if token is not None:
                return token
            token = self._load_shared()
            if token is not None:
                return token
            now = self.clock()
            value, provider_ttl = self._fetch()
            effective = provider_ttl - self.margin
            self._record = TokenRecord(value, now + effective)
            self._save_shared(value, effective)
            logger.info("Fetched new token, valid for %.0fs", effective)
            return value

    def invalidate(self) -> None:
        with self._lock:
            self._record = None
            if self._redis:
                try:
                    self._redis.delete(TOKEN_KEY)
                except Exception:
                    pass
