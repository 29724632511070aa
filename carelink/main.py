from fastapi import FastAPI

from carelink.api.routes import router as api_router
from carelink.core.config import get_settings, load_clinic_config
from carelink.core.logging import configure_logging
from carelink.core.services import build_services


def create_app() -> FastAPI:
    """애플리케이션을 생성하고 FastAPI를 설정"""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="CareLink", version=settings.version)
    app.include_router(api_router)

    services = build_services(settings, load_clinic_config())
    app.state.services = services
    if settings.scheduler_enabled:
        services.reminders.start()

    return app


app = create_app()
