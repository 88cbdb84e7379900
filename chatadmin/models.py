from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class User:
    """Chat account as seen by the admin module."""

    user_id: str
    username: str
    avatar: Optional[str] = None


@dataclass
class Group:
    group_id: str
    name: str
    avatar: Optional[str] = None
    # user ids of the group members
    members: List[str] = field(default_factory=list)


@dataclass
class Socket:
    """A live client connection registered by the chat gateway."""

    socket_id: str
    user_id: Optional[str]
    ip: str
