from fastapi import FastAPI

from docqa.api.routes_search import router as search_router
from docqa.core.config import settings
from docqa.core.logging import configure_logging

configure_logging(json_output=settings.log_json, log_level=settings.log_level)

app = FastAPI(title="docqa Hybrid Search")

app.include_router(search_router)
