# main.py
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.logging_config import configure_logging
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.analysis_routes import router as analysis_router
from routers.auth_routes import router as auth_router
from routers.portfolio_routes import router as portfolio_router
from routers.watchlist_routes import router as watchlist_router

configure_logging()

app = FastAPI()

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

origins = [o for o in [
    "http://localhost:3000",
    (os.getenv("FRONTEND_ORIGIN") or "").rstrip("/"),
] if o]

# applies RATE_LIMIT_DEFAULT to routes without their own @limiter.limit
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    # Vercel preview deployments
    allow_origin_regex=os.getenv("CORS_ORIGIN_REGEX", r"^https://ai-stocks-.*\.vercel\.app$"),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(watchlist_router, prefix="/watchlists")
app.include_router(portfolio_router, prefix="/portfolios")
app.include_router(analysis_router)


@app.get("/health", response_class=PlainTextResponse)
def health():
    return "ok"
