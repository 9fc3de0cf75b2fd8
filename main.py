from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.push import PushDeliveryPipeline, build_push_pipeline
from app.interfaces.api.routes import register_routes
from app.logging_config import configure_logging


def create_app(
    *,
    pipeline: PushDeliveryPipeline | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    settings = get_settings()
    factory = session_factory or SessionLocal

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Inicializa la base de datos y el pipeline push; los detiene al cerrar."""

        configure_logging(settings.log_level)
        initialize_database(factory.kw.get("bind"))
        push_pipeline = pipeline or build_push_pipeline(settings, factory)
        await push_pipeline.start()
        app.state.push_pipeline = push_pipeline
        try:
            yield
        finally:
            await push_pipeline.stop()
            app.state.push_pipeline = None

    app = FastAPI(title="Academic Notifications", lifespan=lifespan)
    app.state.session_factory = factory
    app.state.push_pipeline = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
