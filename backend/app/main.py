import logging.config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.metrics import router as metrics_router
from app.api.routes import router as api_router
from app.api.ws import router as ws_router
from app.config import Settings, get_settings
from convene.realtime.managers import SessionCoordinator


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
            }
        },
        "root": {
            "handlers": ["default"],
            "level": level.upper(),
        },
        "loggers": {
            "convene.realtime.connections": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False,
            }
        },
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and the coordinator it owns."""

    settings = settings or get_settings()
    logging.config.dictConfig(build_logging_config(settings.log_level))

    application = FastAPI(title=settings.app_name, debug=settings.debug)
    application.state.settings = settings
    application.state.coordinator = SessionCoordinator(settings)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_origin_regex=settings.cors_allow_origin_regex,
    )

    @application.get("/health", tags=["system"])
    def health_check() -> dict[str, object]:
        """Simple health check endpoint."""
        coordinator = application.state.coordinator
        return {
            "status": "ok",
            "environment": settings.environment,
            "rooms": len(coordinator.registry),
        }

    @application.on_event("shutdown")
    async def _shutdown() -> None:
        await application.state.coordinator.shutdown()

    application.include_router(api_router, prefix="/api")
    application.include_router(ws_router)
    application.include_router(metrics_router)
    return application


app = create_app()
