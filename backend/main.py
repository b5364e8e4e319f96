import logging
import sys
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from backend.core import config
from backend.core.errors import http_exception_handler, unhandled_store_error_handler, validation_exception_handler
from backend.database import Base, engine, ensure_booking_schema, ensure_study_session_schema
from backend.models import booked_session, login_history, material, note, review, study_session, user  # noqa: F401
from backend.routes import admin_routes, auth_routes, material_routes, session_routes, student_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = datetime.now()
        response = await call_next(request)
        duration = (datetime.now() - start_time).total_seconds()
        logger.info('%s %s -> %s (%.3fs)', request.method, request.url.path, response.status_code, duration)
        return response


app = FastAPI(title=config.APP_NAME)

app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, unhandled_store_error_handler)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_study_session_schema()
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database connection failed. Check DATABASE_URL.')
    else:
        logger.info('Database connected')


@app.get('/')
def root():
    return {'status': 'StudyHub API Running'}


app.include_router(auth_routes.token_router, prefix='/api')
app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(session_routes.router, prefix='/api/sessions')
app.include_router(student_routes.router, prefix='/api/student')
app.include_router(material_routes.router, prefix='/api/materials')
app.include_router(admin_routes.router, prefix='/api/admin')


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(app, host='0.0.0.0', port=config.PORT)
