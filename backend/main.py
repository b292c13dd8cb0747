import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import PersistenceFailure, SchedulingError
from backend.database import Base, engine, ensure_scheduling_schema
from backend.models import appointment, schedule_template, slot  # noqa: F401
from backend.routes import appointment_routes, schedule_routes, slot_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='Clinic Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_scheduling_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(SchedulingError)
def handle_scheduling_error(_request: Request, exc: SchedulingError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error('Scheduling request failed: %s', exc.detail)
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.detail})


@app.exception_handler(SQLAlchemyError)
def handle_database_error(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error('Unhandled database error', exc_info=exc)
    failure = PersistenceFailure()
    return JSONResponse(status_code=failure.status_code, content={'detail': failure.detail})


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'detail': jsonable_encoder(exc.errors())},
    )


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


app.include_router(schedule_routes.router, prefix='/doctor-schedule')
app.include_router(schedule_routes.generation_router, prefix='/schedule')
app.include_router(slot_routes.router, prefix='/appointment-slots')
app.include_router(appointment_routes.router, prefix='/appointments')
