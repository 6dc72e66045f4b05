"""Data models and types used across the backend.

Collector results, page facts and the Check unit used for scoring live here.
Request/response schemas for the API are in schemas.py.
"""

from dataclasses import dataclass
from typing import Any, TypedDict

NA = "N/A"


@dataclass(frozen=True)
class Check:
    """A named pass/fail evaluation. The only thing the scoring engine counts."""

    name: str
    passed: bool
    details: str

    def to_dict(self) -> dict:
        return {"passed": self.passed, "details": self.details}


class _Degradable(TypedDict, total=False):
    # Present only when the collector fell back to its sentinel.
    reason: str
    raw: Any


class PageFetch(TypedDict):
    """Outcome of fetching the audited page. Fields are N/A when unknown."""

    html: str
    status: int | str
    content_type: str
    cache_control: str


class RankResult(_Degradable):
    rank: Any
    authority_score: Any


class LighthouseResult(_Degradable):
    score: int | None
    performance: int | None
    seo: int | None


class SerpResult(_Degradable, total=False):
    top_result: Any
    position: Any
    total_results: Any
    source: str


class ImageRef(TypedDict):
    src: str
    alt: str


class PageFacts(TypedDict):
    """Structural facts extracted from the page HTML."""

    text: str
    word_count: int
    title: str
    meta_description: str
    meta_keyword: str
    h1_count: int
    heading_count: int
    images: list[ImageRef]
    missing_alt_images: int
    internal_links: int
    external_links: int
    absolute_links: list[str]
    has_json_ld: bool
    has_open_graph: bool
    has_twitter_card: bool
    canonical_url: str
    robots_meta: str
    sitemap_link: str
