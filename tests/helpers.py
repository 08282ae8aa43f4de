"""测试辅助：通过 httpx.MockTransport 提供的内存 CMS REST 接口"""

import asyncio
import re
from typing import Dict, List, Optional

import httpx

BASE_URL = "https://cms.test/wp-json/wp/v2"
OTHER_URL = "https://other.test/wp-json/wp/v2"

DEFAULT_TYPES = {
    "post": {"name": "Posts", "rest_base": "posts"},
    "page": {"name": "Pages", "rest_base": "pages"},
    "attachment": {"name": "Media", "rest_base": "media"},
    "wp_template": {"name": "Templates", "rest_base": "templates"},
    "wp_navigation": {"name": "Navigation Menus", "rest_base": "navigation"},
    "nav_menu_item": {"name": "Menu Items", "rest_base": "menu-items"},
    "legacy": {"name": "No REST"},
}


def wp_item(item_id, title=None, sticky=False, categories=(), tags=(), date="2024-03-01T10:00:00", **extra):
    """Build a REST item the way the CMS returns it (term names under _embedded)."""
    item = {
        "id": item_id,
        "date": date,
        "slug": f"item-{item_id}",
        "status": "publish",
        "link": f"https://cms.test/item-{item_id}",
        "title": {"rendered": title or f"Item {item_id}"},
        "excerpt": {"rendered": f"<p>Excerpt {item_id}</p>", "protected": False},
        "content": {"rendered": f"<p>Body {item_id}</p><h2>Section</h2>", "protected": False},
        "sticky": sticky,
        "categories": [c[0] for c in categories],
        "tags": [t[0] for t in tags],
        "_embedded": {
            "wp:term": [
                [{"id": cid, "name": name, "taxonomy": "category"} for cid, name in categories],
                [{"id": tid, "name": name, "taxonomy": "post_tag"} for tid, name in tags],
            ],
        },
    }
    item.update(extra)
    return item


class FakeCms:
    """In-memory CMS; pages[rest_base] is a list of pages, each a list of raw items."""

    def __init__(self, pages: Optional[Dict[str, List[list]]] = None, types: Optional[dict] = None):
        self.pages = pages or {}
        self.types = DEFAULT_TYPES if types is None else types
        self.details: Dict[int, dict] = {}
        self.requests: List[httpx.Request] = []
        self.status_for: Dict[str, int] = {}
        self.gate: Optional[asyncio.Event] = None
        self.on_request = None

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def list_requests(self, rest_base: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(f"/wp/v2/{rest_base}")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        if self.gate is not None:
            await self.gate.wait()

        path = request.url.path
        if path in self.status_for:
            return httpx.Response(self.status_for[path], json={"code": "error"})
        if path.endswith("/wp/v2/types"):
            return httpx.Response(200, json=self.types)

        match = re.search(r"/wp/v2/([\w-]+)(?:/(\d+))?$", path)
        if not match:
            return httpx.Response(404, json={"code": "rest_no_route"})
        rest_base, item_id = match.group(1), match.group(2)

        if item_id is not None:
            detail = self.details.get(int(item_id))
            if detail is None:
                return httpx.Response(404, json={"code": "rest_post_invalid_id"})
            return httpx.Response(200, json=detail)

        pages = self.pages.get(rest_base)
        if pages is None:
            return httpx.Response(404, json={"code": "rest_no_route"})
        page = int(request.url.params.get("page", "1"))
        body = pages[page - 1] if page <= len(pages) else []
        headers = {
            "X-WP-TotalPages": str(len(pages)),
            "X-WP-Total": str(sum(len(p) for p in pages)),
        }
        return httpx.Response(200, json=body, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def run(coro):
    """在新的事件循环中运行协程"""
    return asyncio.run(coro)
