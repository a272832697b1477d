from fastapi import FastAPI
from shopsearch.core.config import get_settings
from shopsearch.core.lifespan import lifespan
from shopsearch.api.v1.routers.health import router as health_router
from shopsearch.api.v1.routers.search import router as search_router
from shopsearch.api.v1.routers.products import router as products_router
from shopsearch.core.logging import configure_logging

from fastapi.middleware.cors import CORSMiddleware
import logging, os

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO, app_name=settings.APP_NAME)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://admin.example.com"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if allowed_origins else [
        # local storefront and admin dev servers
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=False,                        # keep False to simplify preflight
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

# ------- Routes -------
app.include_router(health_router)
app.include_router(search_router)            # ai-search, vector-search, exact, suggestions, trending
app.include_router(products_router)          # catalog write side + product detail + related
