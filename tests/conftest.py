import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

from backend.database import Base  # noqa: E402
from backend.models.booked_session import BookedSession  # noqa: E402,F401
from backend.models.login_history import LoginHistory  # noqa: E402,F401
from backend.models.material import Material  # noqa: E402
from backend.models.note import Note  # noqa: E402,F401
from backend.models.review import Review  # noqa: E402,F401
from backend.models.study_session import STATUS_APPROVED, StudySession  # noqa: E402
from backend.models.user import ROLE_STUDENT, User  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = ROLE_STUDENT, name: str | None = None) -> User:
        user = User(
            name=name or email.split('@')[0].title(),
            email=email,
            hashed_password='not-a-real-hash',
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_session(db):
    def _make_session(
        tutor: User,
        status: str = STATUS_APPROVED,
        fee: float = 0,
        registration_end_date: datetime | None = None,
        category: str | None = None,
        created_at: datetime | None = None,
        title: str = 'Algebra Review',
    ) -> StudySession:
        now = datetime.now()
        session = StudySession(
            title=title,
            description='Weekly problem solving',
            category=category,
            tutor_name=tutor.name,
            tutor_email=tutor.email,
            registration_start_date=now - timedelta(days=7),
            registration_end_date=registration_end_date or now + timedelta(days=7),
            class_start_date=now + timedelta(days=10),
            class_end_date=now + timedelta(days=20),
            duration_hours=2,
            fee=fee,
            status=status,
            created_at=created_at or now,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return _make_session


@pytest.fixture
def make_material(db):
    def _make_material(session: StudySession, tutor_email: str | None = None, title: str = 'Slides') -> Material:
        material = Material(
            title=title,
            session_id=session.id,
            tutor_email=tutor_email or session.tutor_email,
            link='https://drive.example.com/slides',
        )
        db.add(material)
        db.commit()
        db.refresh(material)
        return material

    return _make_material
