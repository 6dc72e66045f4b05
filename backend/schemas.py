"""Pydantic schemas for API request/response."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class SeoCheckRequest(BaseModel):
    """Request body for POST /api/seo-checker."""

    # Optional here so a missing url is answered with our own 400.
    url: str = ""
    keyword: str = ""

    @field_validator("url", "keyword", mode="before")
    @classmethod
    def normalize_text_fields(cls, value: object) -> str:
        return str(value or "").strip()


class AnalysisSummary(BaseModel):
    """Headline numbers repeated from the categories."""

    wordCount: int
    missingAlts: int
    largeImages: int
    keywordDensity: str
    brokenLinks: int


class AuditReport(BaseModel):
    """Response for POST /api/seo-checker."""

    url: str
    seoScore: int = Field(ge=0, le=100)
    grade: str
    categories: dict[str, dict[str, Any]]
    analysis: AnalysisSummary
    suggestions: str
    debug: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
