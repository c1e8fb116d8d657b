import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import LOG_LEVEL
from db import init_db
from matching.routes import router as requirements_router
from messaging.routes import router as messaging_router
from notifications.routes import router as notifications_router
from realtime.routes import router as realtime_router
from utils.errors import CoreError, TransientStoreError

logging.basicConfig(level=LOG_LEVEL)
logging.info("App starting with DATABASE_URL")

app = FastAPI(title="TutorLink Core")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()


@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError):
    if isinstance(exc, TransientStoreError):
        logging.error(f"Transient store error on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health", tags=["meta"], summary="Health check")
def health():
    return {"status": "ok"}


app.include_router(requirements_router)
app.include_router(messaging_router)
app.include_router(notifications_router)
app.include_router(realtime_router)
