# tests/test_scripts.py
from sqlalchemy import text

from ellarises.core.models_user import User, Role
from ellarises.core.security import HASH_MARKER, parse_credential, HashedCredential
from ellarises.infra.db import engine


def test_migrate_creates_tables_and_unique_username_index():
    from scripts.migrate import run as migrate
    migrate()

    with engine.begin() as conn:
        tables = {r[0] for r in conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))}
        assert {"users", "web_sessions", "participants", "events", "event_occurrences",
                "donations", "surveys", "milestones"} <= tables
        idxs = {r[0] for r in conn.execute(text("SELECT name FROM sqlite_master WHERE type='index'"))}
        assert "ix_users_username_unique" in idxs


def test_seed_is_repeatable(db, monkeypatch):
    monkeypatch.setenv("MANAGER_USERNAME", "director")
    monkeypatch.setenv("MANAGER_PASSWORD", "s3cret")
    from scripts.seed import run as seed
    seed()
    seed()

    users = {u.username: u for u in db.query(User).all()}
    assert set(users) == {"director", "member"}
    assert users["director"].level is Role.manager
    assert users["member"].level is Role.member
    cred = parse_credential(users["director"].password)
    assert isinstance(cred, HashedCredential) and cred.value.startswith(HASH_MARKER)
    assert cred.matches("s3cret")
