# tests/test_credentials.py
"""口令校验与历史明文透明升级。"""
from sqlalchemy.exc import OperationalError

from ellarises.core.models_user import User, Role
from ellarises.core.security import (
    HASH_MARKER, HashedCredential, LegacyCredential, parse_credential, hash_password,
)
from ellarises.services import credentials as cred_svc
from ellarises.services.credentials import RejectReason


def _stored_password(db, username: str) -> str:
    db.expire_all()
    return db.query(User).filter(User.username == username).one().password


def test_parse_credential_tags_hash_and_legacy():
    assert isinstance(parse_credential(hash_password("pw")), HashedCredential)
    assert isinstance(parse_credential("hunter2"), LegacyCredential)
    assert isinstance(parse_credential(""), LegacyCredential)


def test_empty_legacy_value_never_matches():
    assert not LegacyCredential("").matches("")


def test_unknown_username_is_not_found(db):
    result = cred_svc.verify(db, "ghost", "whatever")
    assert not result.ok
    assert result.reason is RejectReason.NOT_FOUND


def test_wrong_password_is_mismatch(db, make_user):
    make_user("carol", "right-pw")
    result = cred_svc.verify(db, "carol", "wrong-pw")
    assert not result.ok
    assert result.reason is RejectReason.MISMATCH


def test_username_match_is_case_sensitive(db, make_user):
    make_user("Dave", "pw")
    result = cred_svc.verify(db, "dave", "pw")
    assert result.reason is RejectReason.NOT_FOUND


def test_hashed_login_does_not_touch_stored_value(db, make_user):
    make_user("erin", "s3cret", Role.manager)
    before = _stored_password(db, "erin")

    result = cred_svc.verify(db, "erin", "s3cret")

    assert result.ok
    assert result.level is Role.manager
    assert _stored_password(db, "erin") == before


def test_legacy_plaintext_is_upgraded_on_successful_login(db, make_user):
    make_user("alice", "hunter2", legacy=True)

    result = cred_svc.verify(db, "alice", "hunter2")

    assert result.ok
    stored = _stored_password(db, "alice")
    assert stored.startswith(HASH_MARKER)
    assert stored != "hunter2"
    # 之后走哈希比对路径
    assert isinstance(parse_credential(stored), HashedCredential)
    assert cred_svc.verify(db, "alice", "hunter2").ok
    assert cred_svc.verify(db, "alice", "wrong").reason is RejectReason.MISMATCH


def test_legacy_plaintext_wrong_password_is_not_upgraded(db, make_user):
    make_user("frank", "letmein", legacy=True)
    assert cred_svc.verify(db, "frank", "nope").reason is RejectReason.MISMATCH
    assert _stored_password(db, "frank") == "letmein"


def test_upgrade_failure_does_not_fail_login(db, make_user, monkeypatch):
    make_user("gina", "plain-pw", legacy=True)

    def _boom(_plain):
        raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(cred_svc, "hash_password", _boom)
    result = cred_svc.verify(db, "gina", "plain-pw")

    assert result.ok
    assert result.username == "gina"
    assert _stored_password(db, "gina") == "plain-pw"
