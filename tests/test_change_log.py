from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storehours.core.errors import ValidationError
from storehours.models import Base
from storehours.services.change_log import (
    add_comment,
    base_hours_message,
    format_time,
    list_change_log,
    list_comments,
    to_entry,
)


SITE = "SITE_LOG"


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def test_format_time():
    assert format_time("09:00") == "9:00 AM"
    assert format_time("00:30") == "12:30 AM"
    assert format_time("12:00") == "12:00 PM"
    assert format_time("17:45") == "5:45 PM"
    assert format_time(None) == "--"


def test_base_hours_messages():
    open_hours = {"open_time": "09:00", "close_time": "17:00", "is_closed": False}
    closed = {"open_time": None, "close_time": None, "is_closed": True}
    later = {"open_time": "10:00", "close_time": "17:00", "is_closed": False}

    assert base_hours_message("update", "monday", open_hours, closed) == "Monday set to Closed"
    assert base_hours_message("update", "monday", closed, open_hours) == "Monday opened: 9:00 AM-5:00 PM"
    assert base_hours_message("update", "monday", open_hours, later) == "Monday hours updated: open 9:00 AM -> 10:00 AM"
    assert base_hours_message("insert", "friday", None, closed) == "Friday base hours set to Closed"


def test_comments_are_dated_entries():
    db = _make_session()
    add_comment(db, site_id=SITE, event_date=date(2025, 7, 4), message="  Fireworks nearby  ", changed_by="a@example.com")
    add_comment(db, site_id=SITE, event_date=date(2025, 7, 5), message="Quiet day", changed_by="b@example.com")

    all_comments = list_comments(db, SITE)
    assert len(all_comments) == 2
    (only,) = list_comments(db, SITE, event_date=date(2025, 7, 4))
    entry = to_entry(only)
    assert entry["action"] == "comment"
    assert entry["source"] == "comment"
    assert entry["message"] == "2025-07-04: Fireworks nearby"
    assert entry["changed_by"] == "a@example.com"

    assert len(list_change_log(db, SITE, limit=1)) == 1
    assert list_change_log(db, "OTHER_SITE") == []


def test_comment_validation():
    db = _make_session()
    with pytest.raises(ValidationError):
        add_comment(db, site_id=SITE, event_date=date(2025, 7, 4), message="   ", changed_by="system")
    with pytest.raises(ValidationError):
        add_comment(db, site_id="", event_date=date(2025, 7, 4), message="hi", changed_by="system")
    with pytest.raises(ValidationError):
        list_change_log(db, "")
