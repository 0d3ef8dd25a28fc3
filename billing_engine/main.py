from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from billing_engine.config import settings
from billing_engine.database import db
from billing_engine.exceptions import BillingError
from billing_engine.api import invoices, proposals, metrics

# Setup Logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    db.connect()
    yield
    db.close()

app = FastAPI(
    title="Billing Engine API",
    description="Document numbering, totals, lifecycle and payment reminders for invoices and proposals",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Config
origins = [
    "http://localhost:3000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Router Registration
app.include_router(invoices.router)
app.include_router(proposals.router)
app.include_router(metrics.router)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "counter_backend": settings.COUNTER_BACKEND}

if __name__ == "__main__":
    uvicorn.run("billing_engine.main:app", host="0.0.0.0", port=8000, reload=True)
