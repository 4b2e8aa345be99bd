from __future__ import annotations

from datetime import timedelta

from sqlalchemy.orm import sessionmaker

from jobtrack.models.enums import TokenPurpose
from jobtrack.models.token import Token
from jobtrack.services import tokens
from jobtrack.tasks import purge_tokens


def _bind_task_to_test_db(monkeypatch, db_engine):
    monkeypatch.setattr(purge_tokens, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=db_engine))


def test_purge_task_deletes_dead_tokens(db_session, db_engine, users, frozen_clock, monkeypatch, capsys):
    alice, _ = users
    tokens.issue(db_session, alice.id, timedelta(minutes=1), purpose=TokenPurpose.RESET)
    live = tokens.issue(db_session, alice.id, timedelta(hours=1), purpose=TokenPurpose.SESSION)
    live_value = live.token
    db_session.commit()

    frozen_clock.advance(minutes=5)
    _bind_task_to_test_db(monkeypatch, db_engine)

    assert purge_tokens.main([]) == 0
    assert "Deleted 1 token(s)." in capsys.readouterr().out

    db_session.expire_all()
    assert [t.token for t in db_session.query(Token).all()] == [live_value]


def test_purge_task_dry_run_keeps_rows(db_session, db_engine, users, monkeypatch, capsys):
    alice, _ = users
    spent = tokens.issue(db_session, alice.id, purpose=TokenPurpose.VERIFY)
    tokens.consume(db_session, spent.token)
    db_session.commit()

    _bind_task_to_test_db(monkeypatch, db_engine)

    assert purge_tokens.main(["--dry-run"]) == 0
    assert "Would delete 1 token(s)." in capsys.readouterr().out
    assert db_session.query(Token).count() == 1


def test_purge_task_rejects_bad_timestamp(capsys):
    assert purge_tokens.main(["--before", "yesterday"]) == 2
