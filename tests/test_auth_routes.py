# tests/test_auth_routes.py
"""登录 / 登出 / 注册页面流程。"""
import threading
from concurrent.futures import ThreadPoolExecutor

from ellarises.core.errors import DuplicateUsername
from ellarises.core.models import WebSession
from ellarises.core.models_user import User, Role
from ellarises.core.security import HASH_MARKER
from ellarises.infra.db import SessionLocal
from ellarises.services import users as user_svc

from conftest import login


def test_unknown_user_and_wrong_password_look_identical(client, make_user):
    make_user("quinn", "right")
    r_unknown = login(client, "nobody", "right")
    r_wrong = login(client, "quinn", "wrong")

    assert r_unknown.status_code == r_wrong.status_code == 200
    assert "Invalid username or password." in r_unknown.text
    assert r_unknown.text == r_wrong.text


def test_login_success_sets_session_cookie_and_redirects(client, db, make_user):
    make_user("rosa", "pw", Role.manager)
    r = login(client, "rosa", "pw")

    assert r.status_code == 303
    assert r.headers["location"] == "/landing"
    cookie = r.headers["set-cookie"].lower()
    assert cookie.startswith("ellarises_session=")
    assert "httponly" in cookie
    assert "samesite=lax" in cookie
    assert "secure" not in cookie
    assert db.query(WebSession).count() == 1


def test_cookie_is_secure_in_production(client, make_user, monkeypatch):
    make_user("sam", "pw")
    monkeypatch.setenv("APP_ENV", "production")
    r = login(client, "sam", "pw")
    assert "secure" in r.headers["set-cookie"].lower()


def test_legacy_password_login_over_http_upgrades_storage(client, db, make_user):
    make_user("alice", "hunter2", legacy=True)

    r = login(client, "alice", "hunter2")

    assert r.status_code == 303
    db.expire_all()
    stored = db.query(User).filter(User.username == "alice").one().password
    assert stored.startswith(HASH_MARKER) and stored != "hunter2"


def test_relogin_replaces_previous_session(client, db, make_user):
    make_user("tara", "pw")
    login(client, "tara", "pw")
    login(client, "tara", "pw")
    assert db.query(WebSession).count() == 1


def test_logout_destroys_session_and_is_repeatable(client, db, make_user):
    make_user("uma", "pw")
    login(client, "uma", "pw")

    r1 = client.get("/logout", follow_redirects=False)
    r2 = client.get("/logout", follow_redirects=False)

    assert r1.status_code == r2.status_code == 303
    assert r1.headers["location"] == "/landing"
    assert db.query(WebSession).count() == 0
    assert client.get("/dashboard", follow_redirects=False).status_code == 303


def test_storage_error_during_login_shows_generic_failure(client, make_user, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from ellarises.services import credentials as cred_svc

    def _broken(db, username, password):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(cred_svc, "verify", _broken)
    r = login(client, "vera", "pw")
    assert r.status_code == 500
    assert "Login error" in r.text
    assert "connection refused" not in r.text


def test_register_creates_member_account(client, db):
    r = client.post("/create-account", data={"username": "walt", "password": "pw"}, follow_redirects=False)
    assert r.status_code == 303 and r.headers["location"] == "/login"
    u = db.query(User).filter(User.username == "walt").one()
    assert u.level is Role.member
    assert u.password.startswith(HASH_MARKER)


def test_register_requires_both_fields(client):
    r = client.post("/create-account", data={"username": "xena"})
    assert r.status_code == 400
    assert "Username and password are required." in r.text


def test_register_duplicate_username_has_distinct_message(client, make_user):
    make_user("yara", "pw")
    r = client.post("/create-account", data={"username": "yara", "password": "other"})
    assert r.status_code == 400
    assert "Username is already taken." in r.text


def test_register_alias_redirects(client):
    r = client.get("/register", follow_redirects=False)
    assert r.status_code == 303 and r.headers["location"] == "/create-account"


def test_concurrent_registrations_only_one_wins():
    barrier = threading.Barrier(2)

    def _register(password: str):
        with SessionLocal() as s:
            barrier.wait()
            try:
                user_svc.create_user(s, "bob", password)
                return "ok"
            except DuplicateUsername:
                return "duplicate"

    with ThreadPoolExecutor(max_workers=2) as pool:
        outcomes = sorted(pool.map(_register, ["first-pw", "second-pw"]))

    assert outcomes == ["duplicate", "ok"]
    with SessionLocal() as s:
        assert s.query(User).filter(User.username == "bob").count() == 1


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
