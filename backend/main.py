"""SEO Checker API – FastAPI app and endpoints."""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from auditor import InvalidURLError, run_audit
from config import Settings, config_warnings, get_settings
from schemas import AuditReport, ErrorResponse, SeoCheckRequest

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("seo-checker")

SEO_CHECKER_PATH = "/api/seo-checker"

app = FastAPI(
    title="SEO Checker API",
    description="Single-page SEO audit with a composite score and AI suggestions",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    for warning in config_warnings(get_settings()):
        logger.warning(warning)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    # A body that is not a JSON object carries no url to audit.
    if request.url.path == SEO_CHECKER_PATH:
        logger.info("Rejected audit request body: %s", exc.errors())
        return JSONResponse(status_code=400, content={"error": "URL is required"})
    return await request_validation_exception_handler(request, exc)


@app.get("/", response_class=PlainTextResponse)
def index() -> str:
    return "SEO Checker API is running. Use the /api/seo-checker endpoint."


@app.post(
    SEO_CHECKER_PATH,
    response_model=AuditReport,
    response_model_exclude_unset=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def seo_checker(body: SeoCheckRequest, settings: Settings = Depends(get_settings)):
    """
    Pipeline: fetch page -> collectors + inspection -> checks -> score -> suggestions.
    """
    if not body.url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})

    try:
        return await run_audit(body.url, body.keyword, settings)
    except InvalidURLError as e:
        return JSONResponse(status_code=400, content={"error": "Invalid URL", "details": str(e)})
    except Exception as e:
        logger.exception("Unhandled error auditing %s", body.url)
        return JSONResponse(
            status_code=500,
            content={"error": "SEO analysis failed", "details": str(e)},
        )


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
