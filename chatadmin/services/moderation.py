"""Temporary bans on users and IP addresses.

Seals live in a :class:`~chatadmin.memory.TTLStore` and disappear on their
own after the namespace's duration. Identity and socket lookups go through
the collaborators passed to :class:`ModerationPolicy` (the storage module in
production) and are made before the store lock is taken.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from .. import storage
from ..config import LOCAL_ADDRESSES
from ..memory import Namespace, TTLStore
from ..models import Socket, User
from .exceptions import (
    AllAlreadyBanned,
    AlreadyBanned,
    InvalidInput,
    LocalAddress,
    NotFound,
    SelfSeal,
)

logger = logging.getLogger(__name__)

# per-address outcomes of bulk sealing
SEALED = "sealed"
SKIPPED_LOCAL = "skipped-local"
SKIPPED_SELF = "skipped-self"
ALREADY_BANNED = "already-banned"


def is_local_address(ip: str) -> bool:
    return ip in LOCAL_ADDRESSES


class ModerationPolicy:
    def __init__(
        self,
        store: TTLStore,
        find_user_by_name: Callable[[str], Optional[User]] = storage.find_user_by_name,
        find_users_by_ids: Callable[[Iterable[str]], List[User]] = storage.find_users_by_ids,
        find_sockets_by_user: Callable[[str], List[Socket]] = storage.find_sockets_by_user,
    ):
        self.store = store
        self.find_user_by_name = find_user_by_name
        self.find_users_by_ids = find_users_by_ids
        self.find_sockets_by_user = find_sockets_by_user

    def _resolve_user(self, username: str) -> User:
        if not username:
            raise InvalidInput("username must not be empty")
        user = self.find_user_by_name(username)
        if not user:
            raise NotFound("User does not exist")
        return user

    def seal_user(self, username: str) -> dict:
        user = self._resolve_user(username)
        if not self.store.insert(Namespace.SEALED_USERS, user.user_id):
            raise AlreadyBanned("User already in seal list")
        logger.info("Sealed user %s (%s)", user.username, user.user_id)
        return {"msg": "ok"}

    def seal_ip(self, ip: str, requester_ip: str | None) -> dict:
        if is_local_address(ip):
            raise LocalAddress()
        if ip == requester_ip:
            raise SelfSeal()
        if not self.store.insert(Namespace.SEALED_IPS, ip):
            raise AlreadyBanned("Ip already in seal list")
        logger.info("Sealed ip %s", ip)
        return {"msg": "ok"}

    def seal_user_online_ips(self, user_id: str, requester_ip: str | None) -> dict:
        """Seal every address the user is connected from.

        Not transactional: clean addresses are sealed even when another
        address of the same user violates a rule, and the call then fails
        with the last violation seen. The raised error carries the
        per-address results.
        """
        ips = [s.ip for s in self.find_sockets_by_user(user_id)]
        if all(self.store.exists(Namespace.SEALED_IPS, ip) for ip in ips):
            raise AllAlreadyBanned("Ip already in seal list")

        results = []
        violation = None
        for ip in ips:
            if is_local_address(ip):
                outcome = SKIPPED_LOCAL
                violation = LocalAddress
            elif ip == requester_ip:
                outcome = SKIPPED_SELF
                violation = SelfSeal
            elif self.store.insert(Namespace.SEALED_IPS, ip):
                outcome = SEALED
                logger.info("Sealed ip %s of user %s", ip, user_id)
            else:
                outcome = ALREADY_BANNED
            results.append({"ip": ip, "result": outcome})

        if violation is not None:
            raise violation(results=results)
        return {"msg": "ok", "results": results}

    def get_seal_list(self) -> Dict[str, List[str]]:
        user_ids = self.store.list(Namespace.SEALED_USERS)
        users = self.find_users_by_ids(sorted(user_ids))
        return {
            "users": [u.username for u in users],
            "ips": sorted(self.store.list(Namespace.SEALED_IPS)),
        }

    def unseal_user(self, username: str) -> dict:
        user = self._resolve_user(username)
        if not self.store.remove(Namespace.SEALED_USERS, user.user_id):
            raise NotFound("User is not in seal list")
        logger.info("Unsealed user %s (%s)", user.username, user.user_id)
        return {"msg": "ok"}

    def unseal_ip(self, ip: str) -> dict:
        if not self.store.remove(Namespace.SEALED_IPS, ip):
            raise NotFound("Ip is not in seal list")
        logger.info("Unsealed ip %s", ip)
        return {"msg": "ok"}

    def is_user_sealed(self, user_id: str) -> bool:
        return self.store.exists(Namespace.SEALED_USERS, user_id)

    def is_ip_sealed(self, ip: str) -> bool:
        return self.store.exists(Namespace.SEALED_IPS, ip)
