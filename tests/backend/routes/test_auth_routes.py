import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.auth import jwt_handler
from backend.auth.passwords import verify_password
from backend.models.login_history import LoginHistory
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TUTOR, User
from backend.routes.auth_routes import (
    LoginRequest,
    RegisterRequest,
    SocialLoginRequest,
    UpdateProfileRequest,
    issue_jwt,
    login,
    me,
    record_login_event,
    register,
    social_login,
    update_profile,
)
from backend.schemas.user_schema import UserResponse


def _register(db, name: str, email: str, password: str = 'p', role: str = ROLE_STUDENT):
    return register(RegisterRequest(name=name, email=email, password=password, role=role), request=None, db=db)


def test_register_request_normalizes_email_and_role() -> None:
    request = RegisterRequest(name=' Ada ', email='ADA@X.COM', password='p', role=' Tutor ')

    assert request.name == 'Ada'
    assert request.email == 'ada@x.com'
    assert request.role == 'tutor'


def test_register_request_rejects_unknown_role() -> None:
    with pytest.raises(ValidationError):
        RegisterRequest(name='A', email='a@x.com', password='p', role='superuser')


def test_first_registered_user_becomes_admin_and_next_is_student(db) -> None:
    first = _register(db, 'A', 'a@x.com')
    second = _register(db, 'B', 'b@x.com')

    assert first.user.role == ROLE_ADMIN
    assert second.user.role == ROLE_STUDENT


def test_register_honours_tutor_role_but_never_grants_admin(db) -> None:
    _register(db, 'Admin', 'admin@x.com')

    tutor = _register(db, 'T', 't@x.com', role=ROLE_TUTOR)
    sneaky = _register(db, 'S', 's@x.com', role=ROLE_ADMIN)

    assert tutor.user.role == ROLE_TUTOR
    assert sneaky.user.role == ROLE_STUDENT


def test_register_rejects_duplicate_email(db) -> None:
    _register(db, 'A', 'a@x.com')

    with pytest.raises(HTTPException) as exception_info:
        _register(db, 'A again', 'A@x.com')

    assert exception_info.value.status_code == 400
    assert db.query(User).count() == 1


def test_register_hashes_password_and_records_history(db) -> None:
    response = _register(db, 'A', 'a@x.com', password='s3cret')

    stored = db.query(User).filter(User.email == 'a@x.com').one()
    assert stored.hashed_password != 's3cret'
    assert verify_password('s3cret', stored.hashed_password)

    history = db.query(LoginHistory).all()
    assert [(entry.email, entry.method) for entry in history] == [('a@x.com', 'register')]

    claims = jwt_handler.decode_access_token(response.access_token)
    assert claims['email'] == 'a@x.com'


def test_login_checks_password(db) -> None:
    _register(db, 'A', 'a@x.com', password='right')

    with pytest.raises(HTTPException) as exception_info:
        login(LoginRequest(email='a@x.com', password='wrong'), request=None, db=db)
    assert exception_info.value.status_code == 401

    response = login(LoginRequest(email='a@x.com', password='right'), request=None, db=db)
    assert response.user.email == 'a@x.com'
    assert db.query(LoginHistory).filter(LoginHistory.method == 'login').count() == 1


def test_social_login_creates_user_once_and_logs_each_login(db, make_user) -> None:
    make_user('existing-admin@x.com', role=ROLE_ADMIN)

    first = social_login(SocialLoginRequest(name='Sam', email='sam@x.com'), request=None, db=db)
    second = social_login(SocialLoginRequest(name='Sam', email='sam@x.com'), request=None, db=db)

    assert first.user.id == second.user.id
    assert first.user.role == ROLE_STUDENT
    assert db.query(User).filter(User.email == 'sam@x.com').count() == 1
    assert db.query(LoginHistory).filter(LoginHistory.method == 'social').count() == 2

    stored = db.query(User).filter(User.email == 'sam@x.com').one()
    assert stored.auth_provider == 'social'
    assert stored.hashed_password


def test_social_login_into_empty_store_is_admin(db) -> None:
    response = social_login(SocialLoginRequest(name='First', email='first@x.com'), request=None, db=db)

    assert response.user.role == ROLE_ADMIN
    assert db.query(User).filter(User.role == ROLE_ADMIN).count() == 1

    later = social_login(SocialLoginRequest(name='Later', email='later@x.com'), request=None, db=db)
    assert later.user.role == ROLE_STUDENT


def test_me_omits_password_hash(db, make_user) -> None:
    user = make_user('a@x.com')

    payload = UserResponse.model_validate(me(current_user=user)).model_dump()

    assert payload['email'] == 'a@x.com'
    assert 'hashed_password' not in payload


def test_update_profile_changes_only_provided_fields(db, make_user) -> None:
    user = make_user('a@x.com', name='Before')
    user.phone = '555-0100'
    db.commit()

    updated = update_profile(
        UpdateProfileRequest(name='After', address='1 Main St'),
        current_user=user,
        db=db,
    )

    assert updated.name == 'After'
    assert updated.address == '1 Main St'
    assert updated.phone == '555-0100'


def test_record_login_event_appends_manual_entry(db, make_user) -> None:
    user = make_user('a@x.com')

    response = record_login_event(request=None, current_user=user, db=db)

    assert response.recorded is True
    entry = db.query(LoginHistory).one()
    assert entry.method == 'manual'
    assert entry.email == 'a@x.com'


def test_issue_jwt_signs_posted_claims() -> None:
    response = issue_jwt({'email': 'anyone@x.com', 'name': 'Anyone'})

    claims = jwt_handler.decode_access_token(response['token'])
    assert claims['email'] == 'anyone@x.com'
    assert claims['name'] == 'Anyone'
    assert claims['exp'] - claims['iat'] == 3600
