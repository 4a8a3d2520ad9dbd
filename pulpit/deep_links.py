"""
Deep links into the mobile app.

Links come in two shapes that carry the same path: the app scheme
(``pulpit-app://sermon/<id>``) and the public website
(``https://tvffellowship.com/sermon/<id>``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qsl, quote, urlsplit

URI_SAFE = "-_.!~*'()"

TAB_SCREENS = ("dashboard", "sermons", "articles", "profile")

_PATH_PREFIXES = {
    "sermon": "sermon",
    "article": "article",
    "category": "category",
    "invite": "invite",
    "invitation": "invite",
    "share": "share",
    "series": "series",
}


@dataclass
class ParsedDeepLink:
    screen: str
    params: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)


def build_query_string(params: dict) -> str:
    """Encode non-empty params the way browsers' encodeURIComponent does."""
    pairs = [
        f"{key}={quote(str(value), safe=URI_SAFE)}"
        for key, value in (params or {}).items()
        if value is not None and value != ""
    ]
    return f"?{'&'.join(pairs)}" if pairs else ""


@dataclass
class DeepLinks:
    app_scheme: str = "pulpit-app://"
    web_base_url: str = "https://tvffellowship.com/"

    def __post_init__(self):
        if not self.web_base_url.endswith("/"):
            self.web_base_url += "/"
        host = urlsplit(self.web_base_url).hostname or ""
        bare = host[4:] if host.startswith("www.") else host
        self._web_hosts = {bare, f"www.{bare}"}

    def generate(
        self,
        link_type: str,
        target_id: str,
        params: Optional[dict] = None,
        web_fallback: bool = False,
    ) -> str:
        path = self._path(link_type, target_id, params)
        if path is None:
            return self.app_scheme
        app_url = f"{self.app_scheme}{path}"
        if not web_fallback:
            return app_url
        return f"{app_url} ({self.web_base_url}{path})"

    def web(self, link_type: str, target_id: str, params: Optional[dict] = None) -> str:
        """The website form of a link, for places that only take http(s) URLs."""
        path = self._path(link_type, target_id, params)
        return f"{self.web_base_url}{path or ''}"

    def _path(self, link_type: str, target_id: str, params: Optional[dict]) -> Optional[str]:
        prefix = _PATH_PREFIXES.get(link_type)
        if prefix is None:
            return None
        return f"{prefix}/{target_id}{build_query_string(params or {})}"

    def shareable(self, link_type: str, target_id: str, campaign: str, referrer: str) -> str:
        params = {"campaign": campaign, "ref": referrer}
        return self.generate(link_type, target_id, params, web_fallback=True)

    def parse(self, url: str) -> Optional[ParsedDeepLink]:
        url = (url or "").strip()
        if url.startswith(self.app_scheme):
            source = "app"
            path, _, query = url[len(self.app_scheme):].partition("?")
        else:
            parts = urlsplit(url)
            if parts.scheme not in ("http", "https") or parts.hostname not in self._web_hosts:
                return None
            source = "web"
            path, query = parts.path, parts.query

        segments = [segment for segment in path.split("/") if segment]
        query_params = dict(parse_qsl(query))
        metadata = {
            "source": source,
            "campaign": query_params.get("campaign"),
            "referrer": query_params.get("ref"),
        }
        metadata = {key: value for key, value in metadata.items() if value}

        if not segments:
            return ParsedDeepLink(screen="dashboard", metadata={"source": "direct"})

        head = segments[0]
        target = segments[1] if len(segments) > 1 else None
        if head in ("sermon", "article") and target:
            return ParsedDeepLink(screen=head, params={"id": target}, metadata=metadata)
        if head == "category" and target:
            metadata.pop("referrer", None)
            return ParsedDeepLink(
                screen="category",
                params={"category": target, "tab": query_params.get("tab") or "sermons"},
                metadata=metadata,
            )
        if head == "invite" and target:
            return ParsedDeepLink(
                screen="invitation", params={"invitation_code": target}, metadata=metadata
            )
        if head == "share" and target:
            return ParsedDeepLink(screen="share", params={"share_id": target}, metadata=metadata)
        if head == "series" and target:
            return ParsedDeepLink(screen="series", params={"id": target}, metadata=metadata)
        if head in TAB_SCREENS:
            return ParsedDeepLink(
                screen="dashboard", params={"tab": head}, metadata={"source": source}
            )
        return None
