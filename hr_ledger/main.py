import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from hr_ledger.routers import attendance, auth, dashboard, leave_management
from hr_ledger.config import settings
from hr_ledger.cron_jobs import scheduler
from hr_ledger.db import db, ensure_indexes
from hr_ledger.exceptions import register_exception_handlers

PROD_MODE = settings.PRODUCTION_MODE

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s',
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ensure_indexes(db)
    scheduler.start()
    logger.info("%s started", settings.PROJECT_TITLE)
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title=settings.PROJECT_TITLE, lifespan=lifespan)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
app.include_router(leave_management.router, prefix="/leaves", tags=["leave_management"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

register_exception_handlers(app)

# Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    if PROD_MODE == True:
    # Run Uvicorn without reload in production
        uvicorn.run("hr_ledger.main:app", host=settings.HOST, port=settings.PORT, reload=False)

    else:
        # Run Uvicorn with reload=True in development mode
        uvicorn.run("hr_ledger.main:app", host=settings.HOST, port=settings.PORT, reload=True)
