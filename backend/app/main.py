"""
Jewelry Pricing API v1.0
FastAPI backend exposing the pricing engine and profit analysis for the
inventory dashboard. Persistence, identity and file storage stay with the
hosting platform; every endpoint here is a pure calculation over the request.
"""
import os
import logging
import time
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware
from app.services.perf_monitor import tracker as perf_tracker

load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("jeweler-api")

_PROCESS_START = time.monotonic()

app = FastAPI(
    title="Jewelry Pricing API",
    version="1.0.0",
    description="Selling price, cost and profit calculations for central and branch inventory",
)

# ---------------------------------------------------------------------------
# CORS: allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.pricing_routes import router as pricing_router
from app.api.profit_routes import router as profit_router
from app.api.supplier_routes import router as supplier_router

app.include_router(pricing_router)
app.include_router(profit_router)
app.include_router(supplier_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": app.version,
    }


@app.get("/metrics")
async def metrics():
    """Calculation throughput and timings from the in-process tracker."""
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }


logger.info(f"Jewelry Pricing API ready (CORS origins: {cors_origins})")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
