from __future__ import annotations

import re
from typing import List

import httpx

from ..config import get_http_timeout
from .. import storage
from .exceptions import FetchFailed

EXPRESSION_HOST = "https://www.b7.cn"
EXPRESSION_PATH = "/so/bq/api9.php"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_14_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/76.0.3809.100 Safari/537.36"
)

IMG_RE = re.compile(r"<img\s+src=\"[^\"']+\">")
SRC_RE = re.compile(r"src=\"([^\"']+)\"")


def search(keywords: str) -> dict:
    """Find users and groups whose name contains ``keywords``."""
    if keywords == "":
        return {"users": [], "groups": []}
    users = storage.search_users(keywords)
    return {
        "users": [{"_id": u.user_id, "username": u.username, "avatar": u.avatar} for u in users],
        "groups": storage.search_groups(keywords),
    }


def extract_images(html: str, host: str = EXPRESSION_HOST) -> List[str]:
    """Pull image urls out of the result page, making relative ones absolute."""
    images = []
    for img in IMG_RE.findall(html):
        src = SRC_RE.search(img)
        if not src:
            images.append("")
            continue
        url = src.group(1)
        images.append(url if re.match(r"^https?:", url) else host + url)
    return images


def search_expression(keywords: str, client: httpx.Client | None = None) -> List[str]:
    if keywords == "":
        return []
    params = {"page": 3, "sear": 1, "keyboard": keywords}
    headers = {"referer": EXPRESSION_HOST + EXPRESSION_PATH, "user-agent": USER_AGENT}
    try:
        if client is None:
            resp = httpx.get(EXPRESSION_HOST + EXPRESSION_PATH, params=params, headers=headers, timeout=get_http_timeout())
        else:
            resp = client.get(EXPRESSION_HOST + EXPRESSION_PATH, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise FetchFailed("Expression search failed, please retry") from exc
    if resp.status_code != 200:
        raise FetchFailed("Expression search failed, please retry")
    return extract_images(resp.text)
