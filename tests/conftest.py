import pytest
import requests

FILLER = " ".join(["lorem"] * 320)

GOOD_PAGE = f"""
<html>
  <head>
    <title>Handmade Oak Furniture for Every Room in the House</title>
    <meta name="description" content="Solid oak tables, chairs and shelves built to order in our workshop and delivered nationwide.">
    <meta name="keywords" content="oak furniture, handmade tables">
    <meta name="robots" content="index, follow">
    <meta property="og:title" content="Handmade Oak Furniture">
    <meta name="twitter:card" content="summary">
    <link rel="canonical" href="https://shop.example.com/">
    <link rel="sitemap" href="https://shop.example.com/custom-sitemap.xml">
    <script type="application/ld+json">{{"@type": "Organization"}}</script>
    <style>.hidden {{ display: none }}</style>
  </head>
  <body>
    <h1>Oak furniture</h1>
    <h2>Tables</h2>
    <h3>Chairs</h3>
    <p>{FILLER}</p>
    <img src="https://cdn.example.net/hero.jpg" alt="Oak table">
    <img src="/img/chair.png">
    <a href="/tables">Tables</a>
    <a href="https://shop.example.com/chairs">Chairs</a>
    <a href="https://partner.example.org/">Partner</a>
    <a href="mailto:hello@shop.example.com">Mail</a>
    <script>var trackingWords = "these should not be counted";</script>
  </body>
</html>
"""


class FakeResponse:
    def __init__(self, status_code=200, headers=None, text="", json_data=None):
        self.status_code = status_code
        self.headers = headers or {}
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


@pytest.fixture
def good_page():
    return GOOD_PAGE


@pytest.fixture
def offline(monkeypatch):
    """Every outbound requests call fails with a connection error."""
    calls = []

    def refuse(*args, **kwargs):
        calls.append(args)
        raise requests.ConnectionError("network disabled in tests")

    monkeypatch.setattr(requests, "get", refuse)
    monkeypatch.setattr(requests, "head", refuse)
    monkeypatch.setattr(requests, "request", refuse)
    return calls
