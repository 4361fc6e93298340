import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meeting_insights.api.routes.documents import router as documents_router
from meeting_insights.api.routes.index import router as index_router
from meeting_insights.api.routes.search import router as search_router
from meeting_insights.api.routes.themes import router as themes_router
from meeting_insights.config import ConfigurationError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Meeting Insights API",
    description="Semantic search over meeting summaries, themes and quotes",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(index_router)
app.include_router(search_router)
app.include_router(documents_router)
app.include_router(themes_router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
