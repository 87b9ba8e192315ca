from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.apis.routes.detection_routes import get_detection_store, router as detection_router
from src.utils.logger import get_logger
from src.utils.settings import get_settings


logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_detection_store()
    await store.check_permissions()
    if settings.DETECTION_AUTOSTART:
        await store.start_listening()
        logger.info(
            f"Detection started (notifications: {store.is_listening}, sms: {store.is_sms_watching})"
        )
    yield
    store.stop_listening()
    logger.info("Detection stopped")


app = FastAPI(title="Transaction Detection Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


app.include_router(detection_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.APP_NAME} server...")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
