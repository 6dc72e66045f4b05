"""Signal collectors: async probes against external sources.

Every collector is bounded by its own timeout and resolves to a sentinel
result (N/A values plus a `reason`) instead of raising. Blocking `requests`
calls run on threads owned by the call (or by its fan-out), never on the
loop's shared default pool; when a deadline passes, the thread is left to
finish and its result is discarded.
"""

import asyncio
import json
import logging
import os
import signal
from concurrent.futures import ThreadPoolExecutor

import requests

from models import NA, LighthouseResult, RankResult, SerpResult
from scoring import round_half_up
from scraper import is_success, parse_html, run_blocking, worker_threads

logger = logging.getLogger(__name__)

OPR_ENDPOINT = "https://openpagerank.com/api/v1.0/getPageRank"
SERP_ENDPOINT = "https://serpapi.com/search.json"
SERP_LOCATION = "United States"
SERP_LANGUAGE = "en"

RANK_TIMEOUT_SECONDS = 8
LIGHTHOUSE_TIMEOUT_SECONDS = 30
SERP_TIMEOUT_SECONDS = 10
PROBE_TIMEOUT_SECONDS = 5
IMAGE_TIMEOUT_SECONDS = 8

# Only the first links on the page are probed; the rest count as not broken.
BROKEN_LINK_LIMIT = 20
LARGE_IMAGE_BYTES = 200 * 1024

LIGHTHOUSE_CATEGORIES = ("performance", "seo")
LIGHTHOUSE_CHROME_FLAGS = "--headless --no-sandbox"


# ---------- Rank lookup ----------

def _rank_sentinel(reason: str) -> RankResult:
    return {"rank": NA, "authority_score": NA, "reason": reason}


async def lookup_rank(
    hostname: str,
    api_key: str = "",
    timeout: float = RANK_TIMEOUT_SECONDS,
    debug: bool = False,
) -> RankResult:
    """Domain authority and global rank from OpenPageRank."""
    try:
        response = await run_blocking(
            timeout,
            None,
            requests.get,
            OPR_ENDPOINT,
            params={"domains[]": hostname},
            headers={"API-OPR": api_key or ""},
            timeout=timeout,
        )
        if not is_success(response):
            return _rank_sentinel(f"status {response.status_code}")
        data = response.json()
    except asyncio.TimeoutError:
        logger.warning("OpenPageRank timed out for %s", hostname)
        return _rank_sentinel("timeout")
    except Exception as e:
        logger.warning("OpenPageRank error: %s", e)
        return _rank_sentinel(str(e))

    entries = data.get("response") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return _rank_sentinel("no-data")

    entry = entries[0]
    if debug:
        logger.debug("OpenPageRank raw: %s", entry)
    rank = entry.get("rank")
    authority_score = entry.get("page_rank_decimal")
    return {
        "rank": NA if rank is None else rank,
        "authority_score": NA if authority_score is None else authority_score,
    }


# ---------- Performance / SEO audit ----------

def _lighthouse_sentinel(reason: str) -> LighthouseResult:
    return {"score": None, "performance": None, "seo": None, "reason": reason}


def _category_score(categories: dict, name: str) -> int:
    category = categories.get(name) or {}
    return round_half_up((category.get("score") or 0) * 100)


def parse_lighthouse_report(report: dict, debug: bool = False) -> LighthouseResult:
    categories = report.get("categories") or {}
    performance = _category_score(categories, "performance")
    seo = _category_score(categories, "seo")
    result: LighthouseResult = {
        "score": round_half_up((performance + seo) / 2),
        "performance": performance,
        "seo": seo,
    }
    if debug:
        result["raw"] = {"requestedUrl": report.get("finalUrl"), "categories": categories}
    return result


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def run_lighthouse(
    url: str,
    binary: str = "lighthouse",
    timeout: float = LIGHTHOUSE_TIMEOUT_SECONDS,
    debug: bool = False,
) -> LighthouseResult:
    """
    Run the lighthouse CLI against `url` in headless Chrome.
    The CLI and the browser it launches share a process group that is always
    killed if it is still alive when we are done with it.
    """
    process = None
    try:
        process = await asyncio.create_subprocess_exec(
            binary,
            url,
            "--output=json",
            "--quiet",
            f"--only-categories={','.join(LIGHTHOUSE_CATEGORIES)}",
            f"--chrome-flags={LIGHTHOUSE_CHROME_FLAGS}",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", "replace").strip()[-200:]
            raise RuntimeError(f"lighthouse exited with {process.returncode}: {detail}")
        return parse_lighthouse_report(json.loads(stdout), debug=debug)
    except asyncio.TimeoutError:
        logger.warning("Lighthouse timed out after %ss for %s", timeout, url)
        return _lighthouse_sentinel("timeout")
    except Exception as e:
        logger.warning("Lighthouse error: %s", e)
        return _lighthouse_sentinel(str(e))
    finally:
        if process is not None and process.returncode is None:
            _kill_process_group(process)
            await process.wait()


# ---------- Search results ----------

def _serp_sentinel(reason: str) -> SerpResult:
    return {"top_result": NA, "position": NA, "total_results": NA, "reason": reason}


def _search(query: str, api_key: str, timeout: float) -> dict:
    response = requests.get(
        SERP_ENDPOINT,
        params={
            "engine": "google",
            "q": query,
            "location": SERP_LOCATION,
            "hl": SERP_LANGUAGE,
            "api_key": api_key,
        },
        timeout=timeout,
    )
    response.raise_for_status()
    return response.json()


async def lookup_serp(
    query: str,
    api_key: str = "",
    timeout: float = SERP_TIMEOUT_SECONDS,
    debug: bool = False,
) -> SerpResult:
    """Top organic result, its position and the total result count from SerpApi."""
    if not api_key:
        return _serp_sentinel("no-serp-key")

    try:
        data = await run_blocking(timeout, None, _search, query, api_key, timeout)
    except asyncio.TimeoutError:
        logger.warning("SerpApi timed out for %r", query)
        return _serp_sentinel("timeout")
    except Exception as e:
        logger.warning("SERP client error: %s", e)
        return _serp_sentinel(str(e))

    if debug:
        logger.debug("SerpApi raw: %s", data)
    if not isinstance(data, dict):
        return _serp_sentinel("no-data")

    organic = data.get("organic_results") or []
    info = data.get("search_information") or {}
    if not isinstance(organic, list) or not isinstance(info, dict):
        return _serp_sentinel("no-data")
    top = organic[0] if organic and isinstance(organic[0], dict) else {}
    result: SerpResult = {
        "top_result": top.get("title", NA),
        "position": top.get("position", NA),
        "total_results": info.get("total_results", NA),
        "source": "serpapi",
    }
    if debug:
        result["raw"] = data
    return result


def extract_top_keyword(html: str, hostname: str, keyword: str = "") -> SerpResult:
    """
    Best-effort keyword when no search API is configured.
    User keyword, then first meta keyword, then page title, then the hostname.
    """
    def found(value: str, source: str) -> SerpResult:
        return {"top_result": value, "position": NA, "total_results": NA, "source": source}

    if keyword:
        return found(keyword, "user-supplied")

    soup = parse_html(html)
    meta = soup.find("meta", attrs={"name": "keywords"})
    content = (meta.get("content") or "").strip() if meta else ""
    if content:
        return found(content.split(",")[0].strip(), "meta-keywords")

    title = soup.title.get_text().strip() if soup.title else ""
    if title:
        return found(title, "title")

    return found(hostname, "domain-fallback")


# ---------- Site probes ----------

async def _probe(
    url: str,
    method: str = "GET",
    timeout: float = PROBE_TIMEOUT_SECONDS,
    executor: ThreadPoolExecutor | None = None,
) -> bool:
    """True when `url` answers 2xx within `timeout`. Never raises."""
    try:
        response = await run_blocking(
            timeout,
            executor,
            requests.request,
            method,
            url,
            allow_redirects=True,
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return False
    except Exception as e:
        logger.debug("Probe %s %s failed: %s", method, url, e)
        return False
    return is_success(response)


async def check_robots_txt(hostname: str, timeout: float = PROBE_TIMEOUT_SECONDS) -> str:
    if await _probe(f"https://{hostname}/robots.txt", timeout=timeout):
        return "Present"
    return "Missing"


async def check_sitemap(hostname: str, sitemap_link: str = "", timeout: float = PROBE_TIMEOUT_SECONDS) -> str:
    if sitemap_link:
        return sitemap_link
    sitemap_url = f"https://{hostname}/sitemap.xml"
    if await _probe(sitemap_url, timeout=timeout):
        return sitemap_url
    return "Not found"


async def check_broken_links(links: list[str], timeout: float = PROBE_TIMEOUT_SECONDS) -> list[str]:
    """HEAD the first BROKEN_LINK_LIMIT links in parallel; return the ones that fail."""
    limited = links[:BROKEN_LINK_LIMIT]
    if not limited:
        return []
    # One thread per link: every HEAD starts as soon as it is scheduled.
    with worker_threads(len(limited)) as pool:
        alive = await asyncio.gather(*(_probe(href, "HEAD", timeout, pool) for href in limited))
    return [href for href, ok in zip(limited, alive) if not ok]


async def _image_size(src: str, timeout: float, executor: ThreadPoolExecutor) -> int:
    try:
        response = await run_blocking(
            timeout, executor, requests.head, src, allow_redirects=True, timeout=timeout
        )
        if not is_success(response):
            return 0
        return int(response.headers.get("content-length") or 0)
    except Exception:
        # Size checks are best-effort.
        return 0


async def count_large_images(srcs: list[str], timeout: float = IMAGE_TIMEOUT_SECONDS) -> int:
    """Number of absolute image URLs reporting more than LARGE_IMAGE_BYTES."""
    remote = [src for src in srcs if src.startswith(("http://", "https://"))]
    if not remote:
        return 0
    with worker_threads(len(remote)) as pool:
        sizes = await asyncio.gather(*(_image_size(src, timeout, pool) for src in remote))
    return sum(1 for size in sizes if size > LARGE_IMAGE_BYTES)
