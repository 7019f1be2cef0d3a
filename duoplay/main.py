import uvicorn
from fastapi import FastAPI

from duoplay.api.routes.health import router as health_router
from duoplay.api.routes.internal_media import router as internal_media_router
from duoplay.api.routes.sessions import router as sessions_router
from duoplay.core.config import get_settings
from duoplay.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.app_env != "dev")

    app = FastAPI(
        title="DuoPlay API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(internal_media_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "duoplay.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
