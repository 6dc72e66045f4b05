"""Check evaluator: turn page facts and collector output into the categorized report.

Scored checks are registered as `Check` objects when they are built; everything
else in the categories is informational and never reaches the scoring engine.
"""

import re
from dataclasses import dataclass, field

from models import NA, Check, LighthouseResult, PageFacts, PageFetch, RankResult, SerpResult

TITLE_LENGTH = (30, 65)
META_DESCRIPTION_LENGTH = (50, 160)
MIN_WORD_COUNT = 300
MIN_HEADINGS = 3
NOT_CHECKED = "Not checked"
MISSING = "Missing"
NOT_FOUND = "Not found"


@dataclass
class Evaluation:
    categories: dict[str, dict] = field(default_factory=dict)
    checks: list[Check] = field(default_factory=list)
    keyword_density: str = NOT_CHECKED

    def add(self, category: str, check: Check) -> Check:
        self.checks.append(check)
        self.categories.setdefault(category, {})[check.name] = check.to_dict()
        return check


def _within(length: int, bounds: tuple[int, int]) -> bool:
    low, high = bounds
    return low <= length <= high


def check_title(title: str) -> Check:
    return Check(
        name="titleTag",
        passed=bool(title) and _within(len(title), TITLE_LENGTH),
        details=title or MISSING,
    )


def check_meta_description(description: str) -> Check:
    return Check(
        name="metaDescription",
        passed=bool(description) and _within(len(description), META_DESCRIPTION_LENGTH),
        details=description or MISSING,
    )


def check_word_count(word_count: int) -> Check:
    return Check(name="wordCount", passed=word_count >= MIN_WORD_COUNT, details=f"{word_count} words")


def check_headings(h1_count: int, heading_count: int) -> Check:
    return Check(
        name="headings",
        passed=h1_count == 1 and heading_count >= MIN_HEADINGS,
        details=f"H1s: {h1_count}, Total: {heading_count}",
    )


def keyword_density(text: str, word_count: int, keyword: str) -> str:
    """Whole-word, case-insensitive occurrences of `keyword` per 100 words."""
    keyword = (keyword or "").strip()
    if not keyword or word_count <= 0:
        return NOT_CHECKED
    matches = re.findall(rf"\b{re.escape(keyword)}\b", text, flags=re.IGNORECASE)
    return f"{len(matches) / word_count * 100:.2f}%"


def evaluate(
    url: str,
    keyword: str,
    page: PageFetch,
    facts: PageFacts,
    rank: RankResult,
    lighthouse: LighthouseResult,
    serp: SerpResult,
    robots_txt: str,
    sitemap: str,
    broken_links: list[str],
    large_images: int,
) -> Evaluation:
    evaluation = Evaluation()
    categories = evaluation.categories

    score = lighthouse.get("score")
    categories["metrics"] = {
        "domainRating": rank.get("authority_score", NA),
        "referringDomains": rank.get("rank", NA),
        "organicTraffic": serp.get("total_results", NA),
        "topKeyword": serp.get("top_result", NA),
        "topKeywordSource": serp.get("source", NA),
        "healthScore": NA if score is None else score,
    }

    evaluation.keyword_density = keyword_density(facts["text"], facts["word_count"], keyword)
    evaluation.add("content", check_title(facts["title"]))
    evaluation.add("content", check_meta_description(facts["meta_description"]))
    evaluation.add("content", check_word_count(facts["word_count"]))
    categories["content"]["keywordDensity"] = evaluation.keyword_density
    evaluation.add("content", check_headings(facts["h1_count"], facts["heading_count"]))

    categories["indexability"] = {
        "robotsTxt": robots_txt,
        "metaRobots": facts["robots_meta"] or NOT_FOUND,
        "canonical": facts["canonical_url"] or NOT_FOUND,
        "sitemap": sitemap,
    }
    categories["structuredData"] = {"jsonLD": facts["has_json_ld"]}
    categories["socialTags"] = {
        "openGraph": facts["has_open_graph"],
        "twitterCard": facts["has_twitter_card"],
    }
    categories["images"] = {
        "missingAlts": facts["missing_alt_images"],
        "largeImages": large_images,
        "total": len(facts["images"]),
    }
    categories["httpHeaders"] = {
        "https": url.startswith("https://"),
        "status": page["status"],
        "contentType": page["content_type"],
        "cacheControl": page["cache_control"],
    }
    categories["outgoingLinks"] = {
        "internal": facts["internal_links"],
        "external": facts["external_links"],
        "broken": list(broken_links),
    }
    return evaluation
