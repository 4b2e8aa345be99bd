from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from jobtrack.core import clock
from jobtrack.core.errors import TokenAlreadyUsed, TokenExpired, TokenNotFound
from jobtrack.models.enums import TokenPurpose
from jobtrack.models.token import Token
from jobtrack.services import sessions, tokens

from conftest import make_user


def test_issue_sets_expiry_from_ttl(db_session, users, frozen_clock):
    alice, _ = users

    token = tokens.issue(db_session, alice.id, timedelta(minutes=10), purpose=TokenPurpose.RESET)
    db_session.commit()

    assert token.used is False
    assert token.purpose == "reset"
    assert len(token.token) >= 16
    assert clock.as_utc(token.expires_at) == frozen_clock.now + timedelta(minutes=10)
    assert tokens.is_valid(token) is True


def test_issue_rejects_non_positive_ttl(db_session, users):
    alice, _ = users
    with pytest.raises(ValueError):
        tokens.issue(db_session, alice.id, timedelta(0), purpose=TokenPurpose.VERIFY)


def test_issued_values_are_unique(db_session, users):
    alice, _ = users
    values = {tokens.issue(db_session, alice.id, purpose=TokenPurpose.SESSION).token for _ in range(20)}
    assert len(values) == 20


def test_consume_succeeds_exactly_once(db_session, users):
    alice, _ = users
    token = tokens.issue(db_session, alice.id, purpose=TokenPurpose.VERIFY)
    db_session.commit()

    consumed = tokens.consume(db_session, token.token)
    db_session.commit()
    assert consumed.used is True
    assert consumed.user_id == alice.id

    with pytest.raises(TokenAlreadyUsed):
        tokens.consume(db_session, token.token)


def test_consume_unknown_value(db_session, users):
    with pytest.raises(TokenNotFound):
        tokens.consume(db_session, "does-not-exist")
    with pytest.raises(TokenNotFound):
        tokens.consume(db_session, "")


def test_expired_token_reports_expired_even_when_used(db_session, users, frozen_clock):
    alice, _ = users
    fresh = tokens.issue(db_session, alice.id, timedelta(minutes=5), purpose=TokenPurpose.RESET)
    spent = tokens.issue(db_session, alice.id, timedelta(minutes=5), purpose=TokenPurpose.RESET)
    tokens.consume(db_session, spent.token)
    db_session.commit()

    frozen_clock.advance(minutes=6)

    with pytest.raises(TokenExpired):
        tokens.consume(db_session, fresh.token)
    with pytest.raises(TokenExpired):
        tokens.consume(db_session, spent.token)


def test_token_is_invalid_exactly_at_expiry(db_session, users, frozen_clock):
    alice, _ = users
    token = tokens.issue(db_session, alice.id, timedelta(minutes=5), purpose=TokenPurpose.VERIFY)
    db_session.commit()

    frozen_clock.advance(minutes=5)

    assert tokens.is_valid(token) is False
    with pytest.raises(TokenExpired):
        tokens.consume(db_session, token.token)


def test_consume_with_wrong_purpose_is_not_found(db_session, users):
    alice, _ = users
    token = tokens.issue(db_session, alice.id, purpose=TokenPurpose.VERIFY)
    db_session.commit()

    with pytest.raises(TokenNotFound):
        tokens.consume(db_session, token.token, purpose=TokenPurpose.RESET)

    # Still spendable for its own purpose.
    assert tokens.consume(db_session, token.token, purpose=TokenPurpose.VERIFY).used is True


def test_replace_existing_invalidates_previous_tokens_of_same_purpose(db_session, users):
    alice, _ = users
    old_verify = tokens.issue(db_session, alice.id, purpose=TokenPurpose.VERIFY)
    session = tokens.issue(db_session, alice.id, purpose=TokenPurpose.SESSION)
    new_verify = tokens.issue(db_session, alice.id, purpose=TokenPurpose.VERIFY, replace_existing=True)
    db_session.commit()

    with pytest.raises(TokenAlreadyUsed):
        tokens.consume(db_session, old_verify.token)
    assert tokens.consume(db_session, new_verify.token).id == new_verify.id
    assert tokens.consume(db_session, session.token).id == session.id


def test_invalidate_all_for_user_only_touches_that_user(db_session, users):
    alice, bob = users
    for purpose in (TokenPurpose.VERIFY, TokenPurpose.RESET, TokenPurpose.SESSION):
        tokens.issue(db_session, alice.id, purpose=purpose)
    bob_token = tokens.issue(db_session, bob.id, purpose=TokenPurpose.SESSION)
    db_session.commit()

    assert tokens.invalidate_all_for_user(db_session, alice.id) == 3
    db_session.commit()

    assert tokens.invalidate_all_for_user(db_session, alice.id) == 0
    db_session.refresh(bob_token)
    assert bob_token.used is False


def test_purge_expired_removes_used_and_expired_rows(db_session, users, frozen_clock):
    alice, _ = users
    keep = tokens.issue(db_session, alice.id, timedelta(hours=1), purpose=TokenPurpose.SESSION)
    short = tokens.issue(db_session, alice.id, timedelta(minutes=1), purpose=TokenPurpose.RESET)
    spent = tokens.issue(db_session, alice.id, timedelta(hours=1), purpose=TokenPurpose.VERIFY)
    tokens.consume(db_session, spent.token)
    db_session.commit()
    short_value = short.token

    frozen_clock.advance(minutes=2)
    assert tokens.count_purgeable(db_session) == 2
    removed = tokens.purge_expired(db_session)
    db_session.commit()

    assert removed == 2
    remaining = {t.token for t in db_session.query(Token).all()}
    assert remaining == {keep.token}
    assert tokens.get_token(db_session, short_value) is None


def test_session_rotation_rejects_replay(db_session, users):
    alice, _ = users
    first = sessions.start_session(db_session, alice.id)
    db_session.commit()

    second = sessions.rotate_session(db_session, first.token)
    db_session.commit()

    assert second.token != first.token
    assert second.user_id == alice.id
    with pytest.raises(TokenAlreadyUsed):
        sessions.rotate_session(db_session, first.token)


def test_end_session_ignores_unknown_cookie(db_session, users):
    sessions.end_session(db_session, "stale-cookie-value")


def test_concurrent_consumers_yield_exactly_one_success(file_sessionmaker):
    with file_sessionmaker() as db:
        user = make_user(db, "carol@example.com")
        value = tokens.issue(db, user.id, purpose=TokenPurpose.RESET).token
        db.commit()

    workers = 8
    barrier = threading.Barrier(workers, timeout=10)

    def consume_once(_):
        with file_sessionmaker() as db:
            barrier.wait()
            try:
                tokens.consume(db, value, purpose=TokenPurpose.RESET)
            except TokenAlreadyUsed:
                db.rollback()
                return "used"
            db.commit()
            return "ok"

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(consume_once, range(workers)))

    assert sorted(outcomes) == ["ok"] + ["used"] * (workers - 1)
