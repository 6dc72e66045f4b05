"""Audit orchestrator: fetch -> collect -> inspect -> evaluate -> score -> suggest."""

import asyncio
import logging
from urllib.parse import urlparse

from ai_service import FALLBACK_SUGGESTIONS, generate_suggestions
from checks import evaluate
from collectors import (
    check_broken_links,
    check_robots_txt,
    check_sitemap,
    count_large_images,
    extract_top_keyword,
    lookup_rank,
    lookup_serp,
    run_lighthouse,
)
from config import Settings
from models import SerpResult
from schemas import AnalysisSummary, AuditReport
from scoring import compute_score, get_grade
from scraper import fetch_page, inspect_page, parse_html, run_blocking

logger = logging.getLogger(__name__)

# Ceiling for the whole suggestion step, retries included.
SUGGESTIONS_TIMEOUT_SECONDS = 30


class InvalidURLError(ValueError):
    """The audited URL has no http(s) scheme or no host."""


def resolve_hostname(url: str) -> str:
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise InvalidURLError(str(e)) from e
    if parsed.scheme not in ("http", "https") or not hostname:
        raise InvalidURLError(f"Cannot audit {url!r}: expected an absolute http(s) URL.")
    return hostname


async def _resolve_keyword(html: str, hostname: str, keyword: str, settings: Settings) -> SerpResult:
    # The HTML fallback only runs without a search key, even when a keyword is supplied.
    if settings.serp_api_key:
        return await lookup_serp(keyword or hostname, settings.serp_api_key, debug=settings.debug)
    return extract_top_keyword(html, hostname, keyword)


async def run_audit(url: str, keyword: str, settings: Settings) -> AuditReport:
    """
    Audit one page. Collector failures degrade to sentinels inside the report;
    only InvalidURLError and truly unexpected errors propagate.
    """
    hostname = resolve_hostname(url)
    logger.info("Auditing %s (keyword=%r)", url, keyword)

    # 1. Page HTML is needed by everything downstream.
    page = await fetch_page(url)
    html = page["html"]

    # 2. Independent external metrics.
    rank, lighthouse, serp = await asyncio.gather(
        lookup_rank(hostname, settings.opr_api_key, debug=settings.debug),
        run_lighthouse(url, settings.lighthouse_path, debug=settings.debug),
        _resolve_keyword(html, hostname, keyword, settings),
    )

    # 3. Structural facts.
    facts = inspect_page(parse_html(html), hostname)

    # 4. Site probes.
    robots_txt, sitemap, broken_links, large_images = await asyncio.gather(
        check_robots_txt(hostname),
        check_sitemap(hostname, facts["sitemap_link"]),
        check_broken_links(facts["absolute_links"]),
        count_large_images([img["src"] for img in facts["images"] if img["src"]]),
    )

    # 5. Checks and score.
    evaluation = evaluate(
        url=url,
        keyword=keyword,
        page=page,
        facts=facts,
        rank=rank,
        lighthouse=lighthouse,
        serp=serp,
        robots_txt=robots_txt,
        sitemap=sitemap,
        broken_links=broken_links,
        large_images=large_images,
    )
    score = compute_score(evaluation.checks)
    grade = get_grade(score)
    evaluation.categories["metrics"]["healthScore"] = score

    # 6. Suggestions (blocking SDK call, kept off the event loop).
    try:
        suggestions = await run_blocking(
            SUGGESTIONS_TIMEOUT_SECONDS,
            None,
            generate_suggestions,
            url,
            score,
            grade,
            evaluation.categories,
            settings,
        )
    except asyncio.TimeoutError:
        logger.warning("Suggestions timed out after %ss for %s", SUGGESTIONS_TIMEOUT_SECONDS, url)
        suggestions = FALLBACK_SUGGESTIONS

    extra = {}
    if settings.debug:
        extra["debug"] = {"rank": rank, "lighthouse": lighthouse, "serp": serp}

    report = AuditReport(
        url=url,
        seoScore=score,
        grade=grade,
        categories=evaluation.categories,
        analysis=AnalysisSummary(
            wordCount=facts["word_count"],
            missingAlts=facts["missing_alt_images"],
            largeImages=large_images,
            keywordDensity=evaluation.keyword_density,
            brokenLinks=len(broken_links),
        ),
        suggestions=suggestions,
        **extra,
    )
    logger.info("Audit finished for %s: %s (%s)", url, score, grade)
    return report
