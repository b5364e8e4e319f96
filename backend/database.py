import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_study_session_schema_checked = False
_booking_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_study_session_schema(bind=None) -> None:
    global _study_session_schema_checked

    if _study_session_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _study_session_schema_checked:
            return

        inspector = inspect(bind)

        if 'study_sessions' not in inspector.get_table_names():
            _study_session_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('study_sessions')}
        migration_steps = [
            ('rejection_reason', 'ALTER TABLE study_sessions ADD COLUMN rejection_reason VARCHAR'),
            ('feedback', 'ALTER TABLE study_sessions ADD COLUMN feedback VARCHAR'),
            ('category', 'ALTER TABLE study_sessions ADD COLUMN category VARCHAR'),
        ]

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    logger.info('Adding column study_sessions.%s', column_name)
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_study_sessions_status_reg_end '
                     'ON study_sessions(status, registration_end_date)')
            )

        _study_session_schema_checked = True


def ensure_booking_schema(bind=None) -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(bind)

        if 'booked_sessions' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        # Tables created before the constraint existed only had the
        # application-level duplicate check.
        with bind.begin() as connection:
            connection.execute(
                text('CREATE UNIQUE INDEX IF NOT EXISTS uq_booked_sessions_student_session '
                     'ON booked_sessions(student_email, session_id)')
            )

        _booking_schema_checked = True
