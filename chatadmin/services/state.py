from __future__ import annotations

import redis

from ..config import (
    get_baidu_token_margin,
    get_redis_url,
    get_seal_ip_timeout,
    get_seal_user_timeout,
)
from ..memory import Namespace, TTLStore
from ..scheduler import ExpiryScheduler
from .moderation import ModerationPolicy
from .tokens import TokenCache, fetch_baidu_token

# Factories for the process-wide objects the API owns. The app builds them
# once at creation and keeps them on ``app.state``.


def connect_redis():
    """Return a Redis client when ``REDIS_URL`` is set, else ``None``."""
    url = get_redis_url()
    if not url:
        return None
    try:
        return redis.from_url(url)
    except Exception:
        return None


def create_store(scheduler: ExpiryScheduler | None = None) -> TTLStore:
    ttls = {
        Namespace.SEALED_USERS: get_seal_user_timeout(),
        Namespace.SEALED_IPS: get_seal_ip_timeout(),
    }
    return TTLStore(ttls, scheduler or ExpiryScheduler())


def create_policy(store: TTLStore) -> ModerationPolicy:
    return ModerationPolicy(store)


def create_token_cache(redis_client=None) -> TokenCache:
    return TokenCache(fetch_baidu_token, margin=get_baidu_token_margin(), redis_client=redis_client)
