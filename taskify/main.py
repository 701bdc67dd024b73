# taskify/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from taskify import __version__
from taskify.auth import build_oauth
from taskify.config import Settings
from taskify.database import create_db_and_tables, create_engine_and_sessionmaker
from taskify.errors import register_exception_handlers
from taskify.logging_setup import setup_logging
from taskify.routes import auth, tasks, users
from taskify.security import PasswordHasher, TokenIssuer
from taskify.services.email_service import EmailNotifier, Notifier

logger = logging.getLogger(__name__)

SESSION_MAX_AGE = 24 * 60 * 60


def create_app(settings: Optional[Settings] = None, *, notifier: Optional[Notifier] = None) -> FastAPI:
    """
    Build the API with its collaborators on `app.state`.

    Run with: uvicorn taskify.main:create_app --factory
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    engine, sessionmaker = create_engine_and_sessionmaker(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up and creating database tables...")
        await create_db_and_tables(engine)
        logger.info("Startup complete.")
        yield
        await engine.dispose()

    app = FastAPI(title="Taskify", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = sessionmaker
    app.state.tokens = TokenIssuer(settings.jwt_secret)
    app.state.hasher = PasswordHasher(settings.bcrypt_rounds)
    app.state.notifier = notifier or EmailNotifier(settings)
    app.state.oauth = build_oauth(settings)

    app.add_middleware(
        CORSMiddleware, allow_origins=[settings.client_url], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware, secret_key=settings.session_secret or settings.jwt_secret,
        max_age=SESSION_MAX_AGE, https_only=settings.is_production,
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(tasks.router)
    app.include_router(users.router)

    @app.get("/")
    async def read_root():
        return {"success": True, "message": "Taskify API is running"}

    return app
