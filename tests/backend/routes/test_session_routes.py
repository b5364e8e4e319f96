from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.models.review import Review
from backend.models.study_session import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from backend.models.user import ROLE_STUDENT, ROLE_TUTOR
from backend.routes.session_routes import (
    CreateSessionRequest,
    create_session,
    get_session_detail,
    list_my_sessions,
    list_public_sessions,
    list_tutors,
    rerequest_approval,
)


def _list(db, page: int = 1, limit: int = 10, sort: str | None = None, category: str | None = None):
    return list_public_sessions(page=page, limit=limit, sort=sort, category=category, db=db)


def _create_request(**overrides) -> CreateSessionRequest:
    now = datetime.now()
    fields = {
        'title': 'Calculus I',
        'registration_start_date': now,
        'registration_end_date': now + timedelta(days=5),
        'class_start_date': now + timedelta(days=6),
        'class_end_date': now + timedelta(days=30),
        'fee': 10,
    }
    fields.update(overrides)
    return CreateSessionRequest(**fields)


@pytest.fixture
def tutor(make_user):
    return make_user('tutor@x.com', role=ROLE_TUTOR, name='Tina Tutor')


def test_create_session_request_rejects_negative_fee() -> None:
    with pytest.raises(ValidationError):
        _create_request(fee=-1)


@pytest.mark.parametrize('fee', [float('nan'), float('inf')])
def test_create_session_request_rejects_non_finite_fee(fee: float) -> None:
    with pytest.raises(ValidationError):
        _create_request(fee=fee)


def test_create_session_request_mixes_aware_and_naive_dates(db, tutor) -> None:
    now = datetime.now()
    request = _create_request(
        registration_start_date=now,
        registration_end_date=datetime.now(timezone.utc) + timedelta(days=5),
    )

    assert request.registration_end_date.tzinfo is None
    assert request.registration_end_date > now + timedelta(days=4)

    session = create_session(request, current_user=tutor, db=db)
    assert session.registration_end_date == request.registration_end_date


def test_create_session_request_rejects_inverted_registration_window() -> None:
    now = datetime.now()
    with pytest.raises(ValidationError):
        _create_request(registration_start_date=now, registration_end_date=now - timedelta(days=1))


def test_create_session_request_ignores_client_supplied_identity_and_status() -> None:
    request = CreateSessionRequest.model_validate(
        {
            **_create_request().model_dump(),
            'status': 'approved',
            'tutor_email': 'someone-else@x.com',
        }
    )

    assert 'status' not in request.model_dump()
    assert 'tutor_email' not in request.model_dump()


def test_create_session_is_pending_and_stamped_with_caller(db, tutor) -> None:
    session = create_session(_create_request(), current_user=tutor, db=db)

    assert session.status == STATUS_PENDING
    assert session.tutor_email == 'tutor@x.com'
    assert session.tutor_name == 'Tina Tutor'


def test_pending_session_is_not_publicly_listed(db, tutor) -> None:
    create_session(_create_request(), current_user=tutor, db=db)

    assert _list(db).total == 0


def test_public_list_tracks_status_and_registration_window(db, tutor, make_session) -> None:
    session = make_session(tutor, status=STATUS_PENDING)
    assert _list(db).total == 0

    session.status = STATUS_APPROVED
    db.commit()
    assert [item.id for item in _list(db).sessions] == [session.id]

    session.registration_end_date = datetime.now() - timedelta(minutes=1)
    db.commit()
    assert _list(db).total == 0


def test_public_list_paginates_newest_first(db, tutor, make_session) -> None:
    base = datetime(2026, 1, 1, 9, 0)
    sessions = [make_session(tutor, title=f'S{index}', created_at=base + timedelta(hours=index)) for index in range(5)]

    first_page = _list(db, page=1, limit=2)
    last_page = _list(db, page=3, limit=2)

    assert first_page.total == 5
    assert first_page.total_pages == 3
    assert [item.title for item in first_page.sessions] == ['S4', 'S3']
    assert [item.id for item in last_page.sessions] == [sessions[0].id]


@pytest.mark.parametrize(('sort', 'expected'), [('asc', [0, 15, 30]), ('desc', [30, 15, 0])])
def test_public_list_sorts_by_fee(db, tutor, make_session, sort: str, expected: list[int]) -> None:
    for fee in (15, 0, 30):
        make_session(tutor, fee=fee)

    assert [item.fee for item in _list(db, sort=sort).sessions] == expected


def test_public_list_filters_by_category(db, tutor, make_session) -> None:
    make_session(tutor, category='math')
    physics = make_session(tutor, category='physics')

    result = _list(db, category='physics')

    assert [item.id for item in result.sessions] == [physics.id]


def test_session_detail_includes_reviews_tutor_and_average(db, tutor, make_session) -> None:
    session = make_session(tutor)
    for rating in (5, 4, 4):
        db.add(Review(session_id=session.id, student_email='s@x.com', rating=rating))
    db.commit()

    detail = get_session_detail(session.id, db=db)

    assert detail.session.id == session.id
    assert detail.review_count == 3
    assert detail.average_rating == 4.3
    assert detail.tutor.email == 'tutor@x.com'


def test_session_detail_without_reviews_averages_zero(db, tutor, make_session) -> None:
    session = make_session(tutor)

    detail = get_session_detail(session.id, db=db)

    assert detail.average_rating == 0
    assert detail.reviews == []


def test_session_detail_missing_session(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_session_detail(12345, db=db)

    assert exception_info.value.status_code == 404


def test_list_my_sessions_only_returns_callers_sessions(db, tutor, make_user, make_session) -> None:
    other = make_user('other@x.com', role=ROLE_TUTOR)
    mine = make_session(tutor, status=STATUS_REJECTED)
    make_session(other)

    assert [item.id for item in list_my_sessions(current_user=tutor, db=db)] == [mine.id]


def test_rerequest_route_is_owner_scoped(db, tutor, make_user, make_session) -> None:
    other = make_user('other@x.com', role=ROLE_TUTOR)
    session = make_session(tutor, status=STATUS_REJECTED)

    with pytest.raises(HTTPException) as exception_info:
        rerequest_approval(session.id, current_user=other, db=db)
    assert exception_info.value.status_code == 404

    updated = rerequest_approval(session.id, current_user=tutor, db=db)
    assert updated.status == STATUS_PENDING


def test_list_tutors_only_returns_tutors(db, tutor, make_user) -> None:
    make_user('student@x.com', role=ROLE_STUDENT)

    assert [item.email for item in list_tutors(db=db)] == ['tutor@x.com']
