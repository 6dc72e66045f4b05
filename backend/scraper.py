"""Page fetcher and inspector: fetch the audited URL and extract on-page facts.

Extracts title, meta tags, headings, images, link profile, structured data,
social tags, canonical and robots directives from a single page.
Does NOT crawl subpages.
"""

import asyncio
import functools
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import requests
from bs4 import BeautifulSoup

from models import NA, PageFacts, PageFetch

logger = logging.getLogger(__name__)

PAGE_FETCH_TIMEOUT_SECONDS = 15

_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (seo-checker)",
}

EMPTY_DOCUMENT = "<html></html>"


def is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


@contextmanager
def worker_threads(size: int):
    """
    A private pool of `size` threads, one per concurrent blocking call.
    Calls that outlive their deadline keep their thread until they return;
    the pool is released without waiting for them.
    """
    executor = ThreadPoolExecutor(max_workers=max(size, 1), thread_name_prefix="seo-checker")
    try:
        yield executor
    finally:
        executor.shutdown(wait=False)


async def run_blocking(seconds: float, executor: ThreadPoolExecutor | None, func, /, *args, **kwargs):
    """
    Run a blocking call on `executor`, giving up after `seconds`.
    Without an executor the call gets a thread of its own, so its deadline
    never includes time spent queued behind other calls.
    """
    if executor is None:
        with worker_threads(1) as own:
            return await run_blocking(seconds, own, func, *args, **kwargs)
    loop = asyncio.get_running_loop()
    call = functools.partial(func, *args, **kwargs)
    return await asyncio.wait_for(loop.run_in_executor(executor, call), seconds)


def _get_page(url: str) -> requests.Response:
    return requests.get(
        url,
        headers=_REQUEST_HEADERS,
        allow_redirects=True,
        timeout=PAGE_FETCH_TIMEOUT_SECONDS,
    )


async def fetch_page(url: str, timeout: float = PAGE_FETCH_TIMEOUT_SECONDS) -> PageFetch:
    """
    Fetch `url` and keep its body only on a 2xx response.
    On any failure (network, timeout, invalid URL) returns empty HTML and N/A headers.
    """
    result: PageFetch = {"html": "", "status": NA, "content_type": NA, "cache_control": NA}
    try:
        response = await run_blocking(timeout, None, _get_page, url)
    except asyncio.TimeoutError:
        logger.warning("Page fetch timed out after %ss: %s", timeout, url)
        return result
    except (requests.RequestException, ValueError, OSError) as e:
        logger.warning("Page fetch failed for %s: %s", url, e)
        return result

    result["status"] = response.status_code
    result["content_type"] = response.headers.get("content-type") or NA
    result["cache_control"] = response.headers.get("cache-control") or NA
    if is_success(response):
        result["html"] = response.text
    return result


def parse_html(html: str) -> BeautifulSoup:
    """Parse markup into a queryable tree. Empty markup becomes an empty document."""
    return BeautifulSoup(html or EMPTY_DOCUMENT, "html.parser")


def _attr(tag, name: str) -> str:
    if tag is None:
        return ""
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def inspect_page(soup: BeautifulSoup, hostname: str) -> PageFacts:
    """Extract the structural facts the checks are built from."""
    # --- Presence markers (read before scripts are stripped) ---
    has_json_ld = soup.find("script", attrs={"type": "application/ld+json"}) is not None
    has_open_graph = soup.find("meta", attrs={"property": re.compile(r"^og:")}) is not None
    has_twitter_card = soup.find("meta", attrs={"name": re.compile(r"^twitter:")}) is not None

    # --- Head metadata ---
    title = soup.title.get_text().strip() if soup.title else ""
    meta_description = _attr(soup.find("meta", attrs={"name": "description"}), "content")
    meta_keywords = _attr(soup.find("meta", attrs={"name": "keywords"}), "content")
    meta_keyword = meta_keywords.split(",")[0].strip() if meta_keywords else ""
    canonical_url = _attr(soup.find("link", attrs={"rel": "canonical"}), "href")
    robots_meta = _attr(soup.find("meta", attrs={"name": "robots"}), "content")
    sitemap_link = _attr(soup.find("link", attrs={"rel": "sitemap"}), "href")

    # --- Headings ---
    h1_count = len(soup.find_all("h1"))
    heading_count = len(soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"]))

    # --- Images ---
    images = [{"src": _attr(img, "src"), "alt": _attr(img, "alt")} for img in soup.find_all("img")]
    missing_alt_images = sum(1 for img in images if not img["alt"])

    # --- Links ---
    internal_links = 0
    external_links = 0
    absolute_links: list[str] = []
    for a in soup.find_all("a", href=True):
        href = _attr(a, "href")
        is_absolute = href.startswith("http")
        if is_absolute:
            absolute_links.append(href)
        if (hostname and hostname in href) or href.startswith("/"):
            internal_links += 1
        elif is_absolute:
            external_links += 1

    # --- Visible text ---
    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()
    body = soup.body or soup
    text = re.sub(r"\s+", " ", body.get_text(separator=" ")).strip()
    word_count = len(text.split()) if text else 0

    return {
        "text": text,
        "word_count": word_count,
        "title": title,
        "meta_description": meta_description,
        "meta_keyword": meta_keyword,
        "h1_count": h1_count,
        "heading_count": heading_count,
        "images": images,
        "missing_alt_images": missing_alt_images,
        "internal_links": internal_links,
        "external_links": external_links,
        "absolute_links": absolute_links,
        "has_json_ld": has_json_ld,
        "has_open_graph": has_open_graph,
        "has_twitter_card": has_twitter_card,
        "canonical_url": canonical_url,
        "robots_meta": robots_meta,
        "sitemap_link": sitemap_link,
    }
