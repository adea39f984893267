from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from config import Settings
from database import serialize, to_object_id
from logging_setup import setup_logging
from schemas import Task, User
from security import hash_password, verify_password
from validation import is_valid_email, is_valid_password, missing_fields


@pytest.mark.parametrize(
    "value, ok",
    [
        ("user@example.com", True),
        ("a@b.co", True),
        ("user@example", False),
        ("user example@x.com", False),
        ("@example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_email(value, ok):
    assert is_valid_email(value) is ok


def test_password_length():
    assert is_valid_password("123456")
    assert not is_valid_password("12345")
    assert not is_valid_password(None)


def test_missing_fields():
    assert missing_fields({"a": "x", "b": "", "c": None}, ["a", "b", "c", "d"]) == ["b", "c", "d"]


def test_hash_is_salted_and_verifies():
    first, second = hash_password("s3cret!"), hash_password("s3cret!")

    assert first != second
    assert verify_password("s3cret!", first)
    assert not verify_password("s3cret?", first)
    assert not verify_password("s3cret!", "s3cret!")


def test_serialize_stringifies_ids_and_dates():
    oid, uid = ObjectId(), ObjectId()
    doc = {"_id": oid, "userId": uid, "createdAt": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)}

    assert serialize(doc) == {
        "_id": str(oid),
        "id": str(oid),
        "userId": str(uid),
        "createdAt": "2026-01-02T03:04:05+00:00",
    }


def test_to_object_id():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id("nope") is None
    assert to_object_id(None) is None


def test_task_schema_defaults():
    t = Task(userId="u", title="Lunch", category="snack")

    assert t.category == "medicine"
    assert t.isCompleted is False


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("EMAIL_USER", "me@example.com")
    monkeypatch.setenv("EMAIL_PASS", "pw")
    monkeypatch.setenv("SMTP_STARTTLS", "no")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("PORT", "not-a-number")

    s = Settings.from_env()

    assert s.database_url == "mongodb://db:27017"
    assert s.email_configured
    assert s.smtp_starttls is False
    assert s.cors_origins == ["http://a.test", "http://b.test"]
    assert s.port == 5001


def test_setup_logging_filters_library_noise():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    try:
        setup_logging("debug")
        [handler] = root.handlers
        assert root.level == logging.DEBUG

        def record(name: str, level: int) -> logging.LogRecord:
            return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

        assert handler.filter(record("notifications", logging.INFO))
        assert not handler.filter(record("pymongo.topology", logging.INFO))
        assert handler.filter(record("pymongo.topology", logging.WARNING))
    finally:
        root.handlers[:] = saved[1]
        root.setLevel(saved[0])


@pytest.mark.parametrize("address", ["x@clinic.local", "son@home.test", "nurse@localhost.lan"])
def test_user_schema_uses_the_shared_email_check(address):
    assert is_valid_email(address)

    user = User(name="Kamala", email=address, password="hash", emergencyContact=address)

    assert user.email == address


def test_user_schema_rejects_malformed_contact():
    with pytest.raises(ValueError, match="Invalid email format"):
        User(name="Kamala", email="kamala@example.com", password="hash", emergencyContact="son")
