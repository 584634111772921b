# gateway/routing.py
# Path-prefix route table: which handler group owns a path, and whether it is AI-gated.

from dataclasses import dataclass
from typing import Iterable, List, Optional

from flask import Blueprint, Flask


@dataclass(frozen=True)
class RouteEntry:
    path_prefix: str
    requires_ai_gate: bool
    blueprint: Blueprint

    def matches(self, path: str) -> bool:
        # Segment-boundary match: /pdf owns /pdf and /pdf/chat, not /pdfx
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")


class RouteTable:
    def __init__(self, entries: Iterable[RouteEntry]) -> None:
        # Longest prefix first so match() returns the most specific entry
        self._entries: List[RouteEntry] = sorted(
            entries, key=lambda e: len(e.path_prefix), reverse=True
        )

    def __iter__(self):
        return iter(self._entries)

    def match(self, path: str) -> Optional[RouteEntry]:
        for entry in self._entries:
            if entry.matches(path):
                return entry
        return None

    def requires_ai_gate(self, path: str) -> bool:
        entry = self.match(path)
        return bool(entry and entry.requires_ai_gate)

    def register(self, app: Flask) -> None:
        for entry in self:
            app.register_blueprint(entry.blueprint, url_prefix=entry.path_prefix)


def default_route_table() -> RouteTable:
    from .routes.curation import curation_bp
    from .routes.pdf_chat import pdf_bp
    from .routes.plans import plans_bp

    return RouteTable(
        [
            RouteEntry("/generate-plan", True, plans_bp),
            RouteEntry("/curate-resources", True, curation_bp),
            RouteEntry("/pdf", True, pdf_bp),
        ]
    )
