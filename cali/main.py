import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cali.core.config import Settings, load_settings, validate_runtime_config
from cali.core.exceptions import StorageError
from cali.core.logging_config import setup_logging
from cali.database import build_engine, build_session_factory, init_schema
from cali.routes import appointment_routes

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = 'Welcome to Cali Appointment Scheduler'


def describe_validation_error(exc: RequestValidationError) -> str:
    locations = {error['loc'][0] for error in exc.errors() if error.get('loc')}
    if 'path' in locations:
        return 'Invalid appointment ID'
    if 'query' in locations:
        return 'Invalid query parameters'
    return 'Invalid request body'


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'error': exc.detail}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'error': describe_validation_error(exc)},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    validate_runtime_config(settings)
    setup_logging(settings.log_level)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            init_schema(engine, settings)
        except (SQLAlchemyError, StorageError):
            logger.exception('Database initialization failed. Check DATABASE_URL.')
            raise
        yield
        engine.dispose()

    app = FastAPI(title='Cali Appointment Scheduler', lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(appointment_routes.router, prefix='/api/appointments')
    if os.path.isdir(settings.static_dir):
        app.mount('/static', StaticFiles(directory=settings.static_dir), name='static')
    else:
        logger.warning('Static directory %s not found, /static is disabled', settings.static_dir)

    @app.get('/', response_class=PlainTextResponse)
    def root():
        return WELCOME_MESSAGE

    return app


app = create_app()
