# main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.routers import activity_router, ledger_router
from app.core.config import LOG_LEVEL
from app.core.db import init_models
from app.middleware.activity_logger import ActivityLoggerMiddleware

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Customer Ledger API",
    description="Payment allocation and customer balances for cement trading accounts",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ActivityLoggerMiddleware)

# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Ledger service is running"}

# Register routers
app.include_router(ledger_router)
app.include_router(activity_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
