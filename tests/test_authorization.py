# tests/test_authorization.py
"""授权判定：先判登录再判角色；403 与登录跳转互不混淆。"""
import pytest

from ellarises.core.authorization import Decision, authorize
from ellarises.core.context import SessionUser
from ellarises.core.models_user import User, Role

from conftest import login

MANAGER_ONLY = frozenset({Role.manager})


def _user(level: Role) -> SessionUser:
    return SessionUser(id=1, username="u", level=level)


@pytest.mark.parametrize("allowed", [None, MANAGER_ONLY, frozenset(Role)])
def test_no_user_always_means_login(allowed):
    assert authorize(None, allowed) is Decision.LOGIN


def test_any_authenticated_user_passes_without_role_requirement():
    for role in Role:
        assert authorize(_user(role)) is Decision.ALLOW


def test_role_outside_allowed_set_is_forbidden():
    assert authorize(_user(Role.member), MANAGER_ONLY) is Decision.FORBIDDEN
    assert authorize(_user(Role.manager), MANAGER_ONLY) is Decision.ALLOW


def test_role_labels_are_exhaustive():
    assert {r.label for r in Role} == {"Manager", "Member"}
    assert Role.from_label("manager") is Role.manager
    assert Role.from_label("nobody") is None


@pytest.mark.parametrize("path", ["/participants", "/donations", "/surveys", "/milestones", "/users"])
def test_anonymous_request_to_manager_route_redirects_to_login(client, path):
    r = client.get(path, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"


@pytest.mark.parametrize("path", ["/participants", "/donations", "/surveys", "/milestones", "/users"])
def test_member_on_manager_route_gets_forbidden_page(client, make_user, path):
    make_user("mia", "pw", Role.member)
    assert login(client, "mia", "pw").status_code == 303

    r = client.get(path, follow_redirects=False)

    assert r.status_code == 403
    assert "You are not authorized to view that page." in r.text
    assert "Invalid username or password." not in r.text
    assert "location" not in r.headers
    assert 'href="/logout"' in r.text
    assert 'href="/login"' not in r.text
    assert "mia (Member)" in r.text


def test_manager_passes_through(client, make_user):
    make_user("boss", "pw", Role.manager)
    login(client, "boss", "pw")
    r = client.get("/participants", follow_redirects=False)
    assert r.status_code == 200


def test_dashboard_requires_any_login(client, make_user):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303 and r.headers["location"] == "/login"

    make_user("nina", "pw", Role.member)
    login(client, "nina", "pw")
    r = client.get("/dashboard")
    assert r.status_code == 200
    assert "nina" in r.text and "Member" in r.text


def test_session_snapshot_is_not_refreshed_until_next_login(client, db, make_user):
    u = make_user("otto", "pw", Role.member)
    login(client, "otto", "pw")

    u.level = Role.manager
    db.commit()
    assert client.get("/participants", follow_redirects=False).status_code == 403

    login(client, "otto", "pw")
    assert client.get("/participants", follow_redirects=False).status_code == 200


def test_mutation_on_manager_route_is_gated_before_form_handling(client, db, make_user):
    make_user("pia", "pw", Role.member)
    login(client, "pia", "pw")
    r = client.post("/users/new", data={"username": "x", "password": "y", "confirm_password": "y"},
                    follow_redirects=False)
    assert r.status_code == 403
    assert db.query(User).filter(User.username == "x").first() is None
