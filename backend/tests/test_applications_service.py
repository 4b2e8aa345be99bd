from __future__ import annotations

from datetime import timedelta

import pytest

from jobtrack.core.errors import ApplicationNotFound, Forbidden
from jobtrack.services import applications, statuses, users as users_service
from jobtrack.services.applications import ApplicationFilters


def _create(db_session, user, company="Acme", position="Engineer", application_type="Direct", website=None):
    view = applications.create_application(
        db_session,
        user,
        company=company,
        position=position,
        website=website,
        application_type=application_type,
    )
    db_session.commit()
    return view


def test_new_application_has_exactly_one_applied_status(db_session, users):
    alice, _ = users
    view = _create(db_session, alice, website="https://acme.example")

    timeline = statuses.history(db_session, view.application.id)
    assert len(timeline) == 1
    assert timeline[0].status_type == "Applied"
    assert timeline[0].created_by == alice.id
    assert timeline[0].created_at == view.application.created_at
    assert view.application.created_by == alice.id
    assert view.application.website == "https://acme.example"


def test_create_application_rejects_blank_company_and_unknown_type(db_session, users):
    alice, _ = users
    with pytest.raises(ValueError):
        _create(db_session, alice, company="   ")
    db_session.rollback()
    with pytest.raises(ValueError):
        _create(db_session, alice, application_type="Carrier pigeon")


def test_get_application_for_user_hides_other_users(db_session, users, admin):
    alice, bob = users
    view = _create(db_session, alice)

    assert applications.get_application_for_user(db_session, view.application.id, alice).id == view.application.id
    assert applications.get_application_for_user(db_session, view.application.id, admin).id == view.application.id
    with pytest.raises(ApplicationNotFound):
        applications.get_application_for_user(db_session, view.application.id, bob)


def test_update_application_changes_fields_and_updated_at(db_session, users, frozen_clock):
    alice, bob = users
    view = _create(db_session, alice)
    created_at = view.application.created_at

    frozen_clock.advance(minutes=30)
    updated = applications.update_application(
        db_session, view.application.id, alice, position="Staff Engineer", application_type="Referral"
    )
    db_session.commit()

    assert updated.application.position == "Staff Engineer"
    assert updated.application.application_type == "Referral"
    assert updated.application.updated_at != created_at
    assert updated.current_status.status_type == "Applied"

    with pytest.raises(Forbidden):
        applications.update_application(db_session, view.application.id, bob, company="Evil Corp")
    with pytest.raises(ValueError):
        applications.update_application(db_session, view.application.id, alice, created_by=bob.id)


def test_soft_delete_application_rules(db_session, users, admin):
    alice, bob = users
    mine = _create(db_session, alice, company="Mine")
    other = _create(db_session, alice, company="Other")

    with pytest.raises(Forbidden):
        applications.soft_delete_application(db_session, mine.application.id, bob)

    deleted = applications.soft_delete_application(db_session, mine.application.id, alice)
    db_session.commit()
    assert deleted.deleted is True
    assert deleted.deleted_at is not None

    # Admins may delete anyone's application.
    applications.soft_delete_application(db_session, other.application.id, admin)
    db_session.commit()

    with pytest.raises(ApplicationNotFound):
        applications.soft_delete_application(db_session, mine.application.id, alice)
    with pytest.raises(ApplicationNotFound):
        applications.soft_delete_application(db_session, 123456, alice)

    # History survives the soft delete.
    assert len(statuses.history(db_session, mine.application.id)) == 1
    assert applications.list_applications(db_session, alice.id) == []


def test_list_applications_orders_newest_first_with_current_status(db_session, users, frozen_clock):
    alice, bob = users
    first = _create(db_session, alice, company="First")
    frozen_clock.advance(minutes=1)
    second = _create(db_session, alice, company="Second")
    frozen_clock.advance(minutes=1)
    _create(db_session, bob, company="Bobs")

    statuses.append_status(db_session, first.application.id, alice, status_type="Interview", interview_type="Hr")
    db_session.commit()

    listed = applications.list_applications(db_session, alice.id)

    assert [v.application.id for v in listed] == [second.application.id, first.application.id]
    assert listed[0].current_status.status_type == "Applied"
    assert listed[1].current_status.status_type == "Interview"


def test_list_applications_filters(db_session, users, frozen_clock):
    alice, _ = users
    start = frozen_clock.now
    acme = _create(db_session, alice, company="Acme Corp", position="Backend", application_type="Website")
    frozen_clock.advance(days=2)
    globex = _create(db_session, alice, company="Globex", position="Frontend", application_type="Referral")
    frozen_clock.advance(days=2)
    _create(db_session, alice, company="Initech", position="Data", website="https://acme-partner.example")

    statuses.append_status(db_session, globex.application.id, alice, status_type="Rejected")
    db_session.commit()

    def ids(**kwargs):
        return {v.application.id for v in applications.list_applications(db_session, alice.id, ApplicationFilters(**kwargs))}

    assert len(ids(search="acme")) == 2
    assert ids(search="FRONT") == {globex.application.id}
    assert ids(status="Rejected") == {globex.application.id}
    assert ids(application_type="Website") == {acme.application.id}
    assert ids(created_to=start + timedelta(days=1)) == {acme.application.id}
    assert len(ids(created_from=start + timedelta(days=1))) == 2
    assert len(ids(limit=1)) == 1
    assert len(ids(limit=1000)) == 3
    assert len(ids(offset=2)) == 1


def test_deleted_users_applications_stay_readable_by_id(db_session, users):
    alice, _ = users
    view = _create(db_session, alice)
    statuses.append_status(db_session, view.application.id, alice, status_type="Test")
    db_session.commit()

    users_service.soft_delete_user(db_session, alice.id)
    db_session.commit()

    application = applications.get_application(db_session, view.application.id)
    assert application is not None
    assert application.created_by == alice.id
    assert [s.status_type for s in statuses.history(db_session, application.id)] == ["Applied", "Test"]
