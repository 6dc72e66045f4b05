import time

import pytest
from fastapi.testclient import TestClient

import auditor
from config import Settings, get_settings
from main import app

LIGHTHOUSE_UNAVAILABLE = {"score": None, "performance": None, "seo": None, "reason": "timeout"}


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def client(settings, monkeypatch):
    async def no_lighthouse(url, binary="lighthouse", debug=False):
        return dict(LIGHTHOUSE_UNAVAILABLE)

    monkeypatch.setattr(auditor, "run_lighthouse", no_lighthouse)
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_index_is_plain_text(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "SEO Checker API is running" in response.text


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_url(client, offline):
    response = client.post("/api/seo-checker", json={"keyword": "seo"})
    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    assert offline == []


@pytest.mark.parametrize(
    "kwargs",
    [{}, {"content": "url=https://example.com"}, {"json": ["https://example.com"]}, {"json": "https://example.com"}],
)
def test_body_without_url_object(client, offline, kwargs):
    response = client.post("/api/seo-checker", **kwargs)
    assert response.status_code == 400
    assert response.json() == {"error": "URL is required"}
    assert offline == []


def test_blank_url(client):
    response = client.post("/api/seo-checker", json={"url": "   "})
    assert response.status_code == 400


def test_invalid_url(client, offline):
    response = client.post("/api/seo-checker", json={"url": "not a url"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid URL"
    assert offline == []


def test_unreachable_page_still_yields_report(client, offline):
    response = client.post("/api/seo-checker", json={"url": "https://example.com"})

    assert response.status_code == 200
    report = response.json()
    assert report["url"] == "https://example.com"
    assert report["seoScore"] == 0
    assert report["grade"] == "F"
    assert report["suggestions"] == "No suggestions available"
    assert "debug" not in report

    categories = report["categories"]
    assert categories["content"]["titleTag"] == {"passed": False, "details": "Missing"}
    assert categories["content"]["wordCount"] == {"passed": False, "details": "0 words"}
    assert categories["content"]["keywordDensity"] == "Not checked"
    assert categories["metrics"]["topKeyword"] == "example.com"
    assert categories["metrics"]["topKeywordSource"] == "domain-fallback"
    assert categories["metrics"]["domainRating"] == "N/A"
    assert categories["metrics"]["healthScore"] == 0
    assert categories["indexability"]["robotsTxt"] == "Missing"
    assert categories["indexability"]["sitemap"] == "Not found"
    assert categories["httpHeaders"] == {
        "https": True,
        "status": "N/A",
        "contentType": "N/A",
        "cacheControl": "N/A",
    }
    assert report["analysis"] == {
        "wordCount": 0,
        "missingAlts": 0,
        "largeImages": 0,
        "keywordDensity": "Not checked",
        "brokenLinks": 0,
    }


def test_full_audit(client, monkeypatch, good_page):
    async def fake_fetch(url):
        return {"html": good_page, "status": 200, "content_type": "text/html", "cache_control": "no-cache"}

    async def fake_rank(hostname, api_key="", debug=False):
        return {"rank": 99, "authority_score": 6.1}

    async def fake_robots(hostname):
        return "Present"

    async def fake_links(links):
        return [links[-1]]

    async def fake_images(srcs):
        return 1

    monkeypatch.setattr(auditor, "fetch_page", fake_fetch)
    monkeypatch.setattr(auditor, "lookup_rank", fake_rank)
    monkeypatch.setattr(auditor, "check_robots_txt", fake_robots)
    monkeypatch.setattr(auditor, "check_broken_links", fake_links)
    monkeypatch.setattr(auditor, "count_large_images", fake_images)

    response = client.post("/api/seo-checker", json={"url": "https://shop.example.com/", "keyword": "oak"})

    assert response.status_code == 200
    report = response.json()
    assert report["seoScore"] == 100
    assert report["grade"] == "A+"
    assert report["categories"]["metrics"]["healthScore"] == 100
    assert report["categories"]["metrics"]["domainRating"] == 6.1
    assert report["categories"]["metrics"]["topKeyword"] == "oak"
    assert report["categories"]["metrics"]["topKeywordSource"] == "user-supplied"
    assert report["categories"]["indexability"]["sitemap"] == "https://shop.example.com/custom-sitemap.xml"
    assert report["categories"]["outgoingLinks"]["broken"] == ["https://partner.example.org/"]
    assert report["analysis"]["brokenLinks"] == 1
    assert report["analysis"]["largeImages"] == 1
    assert report["analysis"]["keywordDensity"].endswith("%")


def test_search_key_uses_serp_lookup(client, monkeypatch, offline):
    app.dependency_overrides[get_settings] = lambda: Settings(serp_api_key="serp")
    queries = []

    async def fake_serp(query, api_key="", debug=False):
        queries.append((query, api_key))
        return {"top_result": "Example Domain", "position": 1, "total_results": 42, "source": "serpapi"}

    monkeypatch.setattr(auditor, "lookup_serp", fake_serp)

    report = client.post("/api/seo-checker", json={"url": "https://example.com"}).json()

    assert queries == [("example.com", "serp")]
    assert report["categories"]["metrics"]["topKeyword"] == "Example Domain"
    assert report["categories"]["metrics"]["organicTraffic"] == 42


def test_debug_payload(client, monkeypatch, offline):
    app.dependency_overrides[get_settings] = lambda: Settings(debug=True)

    report = client.post("/api/seo-checker", json={"url": "https://example.com"}).json()

    assert report["debug"]["lighthouse"]["reason"] == "timeout"
    assert report["debug"]["serp"]["source"] == "domain-fallback"
    assert report["debug"]["rank"]["reason"] == "network disabled in tests"


def test_unhandled_error_is_500(client, monkeypatch):
    async def broken_fetch(url):
        raise RuntimeError("boom")

    monkeypatch.setattr(auditor, "fetch_page", broken_fetch)

    response = client.post("/api/seo-checker", json={"url": "https://example.com"})

    assert response.status_code == 500
    assert response.json() == {"error": "SEO analysis failed", "details": "boom"}
    # The app keeps serving after the failure.
    assert client.get("/health").status_code == 200


def test_slow_suggestions_fall_back(client, monkeypatch, offline):
    def slow_suggestions(*args):
        time.sleep(0.5)
        return "too late"

    monkeypatch.setattr(auditor, "generate_suggestions", slow_suggestions)
    monkeypatch.setattr(auditor, "SUGGESTIONS_TIMEOUT_SECONDS", 0.05)

    response = client.post("/api/seo-checker", json={"url": "https://example.com"})

    assert response.status_code == 200
    assert response.json()["suggestions"] == "No suggestions available"
