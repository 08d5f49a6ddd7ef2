"""Sign-up, login bookkeeping and profile updates."""
from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import logic.accounts
from logic.accounts import next_login_streak
from logic.passwords import hash_password, verify_password
from models.user import LOGIN_HISTORY_LIMIT, User
from storage.errors import Conflict, InvalidCredentials, NotFound, ValidationFailure

DAY = 86400.0


def _sign_up(chroma, name: str = "Ada Lovelace", email: str = "ada@example.com", password: str = "secret"):
    return asyncio.run(chroma.accounts.sign_up(name, email, password))


def test_sign_up_stores_hashed_password_and_defaults(chroma) -> None:
    user = _sign_up(chroma, email="  Ada@Example.com ")

    assert user.email == "ada@example.com"
    assert user.roles == ["user"]
    assert user.password_hash != "secret"
    assert verify_password("secret", user.password_hash)
    assert "Ada%20Lovelace" in user.avatar_url
    assert user.login_streak == 0
    assert user.achievements == [] and user.collected_outfit_ids == []


def test_sign_up_rejects_duplicate_email_case_insensitively(chroma) -> None:
    _sign_up(chroma)
    with pytest.raises(Conflict):
        _sign_up(chroma, name="Other", email="ADA@example.com")
    with pytest.raises(ValidationFailure):
        _sign_up(chroma, email="not-an-email")


def test_login_rejects_bad_credentials(chroma) -> None:
    _sign_up(chroma)
    with pytest.raises(InvalidCredentials):
        asyncio.run(chroma.accounts.login("ada@example.com", "wrong"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(chroma.accounts.login("nobody@example.com", "secret"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(chroma.accounts.login("not-an-email", "secret"))
    assert chroma.current_user() is None


def test_login_sets_session_snapshot(chroma) -> None:
    user = _sign_up(chroma)
    asyncio.run(chroma.accounts.login("ada@example.com", "secret"))

    current = chroma.current_user()
    assert current["id"] == user.id
    assert current["login_streak"] == 1
    assert "password_hash" not in current

    asyncio.run(chroma.accounts.logout())
    assert chroma.current_user() is None


def test_login_streak_follows_consecutive_days(chroma, clock) -> None:
    _sign_up(chroma)

    def login() -> User:
        return asyncio.run(chroma.accounts.login("ada@example.com", "secret"))

    assert login().login_streak == 1
    clock.advance(seconds=60)
    assert login().login_streak == 1
    clock.advance(days=1)
    assert login().login_streak == 2
    clock.advance(days=1)
    assert login().login_streak == 3
    clock.advance(days=2)
    user = login()
    assert user.login_streak == 1
    assert len(user.login_history) == 5
    assert user.last_login == clock()


def test_next_login_streak_cases() -> None:
    now = 20 * DAY + 3600
    assert next_login_streak(None, 0, now) == 1
    assert next_login_streak(now - 60, 4, now) == 4
    assert next_login_streak(now - DAY, 4, now) == 5
    assert next_login_streak(now - 3 * DAY, 4, now) == 1


def test_login_history_is_capped() -> None:
    user = User(id="u1", name="Ada", email="ada@example.com", login_history=[float(n) for n in range(LOGIN_HISTORY_LIMIT)])
    user.record_login(1000.0)

    assert len(user.login_history) == LOGIN_HISTORY_LIMIT
    assert user.login_history[0] == 1.0
    assert user.login_history[-1] == 1000.0


def test_update_profile_refreshes_session(chroma) -> None:
    user = _sign_up(chroma)
    asyncio.run(chroma.accounts.login("ada@example.com", "secret"))

    updated = asyncio.run(
        chroma.accounts.update_profile(user.id, {"name": "Ada L.", "style_dna": {"palette": "earth"}})
    )

    assert updated.name == "Ada L."
    assert chroma.current_user()["name"] == "Ada L."
    assert chroma.current_user()["style_dna"] == {"palette": "earth"}
    assert verify_password("secret", asyncio.run(chroma.accounts.get_profile(user.id)).password_hash)


def test_update_profile_rejects_credential_fields(chroma) -> None:
    user = _sign_up(chroma)
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.accounts.update_profile(user.id, {"password_hash": hash_password("x")}))
    with pytest.raises(ValidationFailure):
        asyncio.run(chroma.accounts.update_profile(user.id, {"name": "  "}))
    with pytest.raises(NotFound):
        asyncio.run(chroma.accounts.update_profile("ghost", {"name": "Ghost"}))


def test_password_checks_run_off_the_event_loop_thread(chroma, monkeypatch: pytest.MonkeyPatch) -> None:
    _sign_up(chroma)
    threads = []
    real_verify = logic.accounts.verify_password

    def recording_verify(plain: str, hashed: str) -> bool:
        threads.append(threading.get_ident())
        return real_verify(plain, hashed)

    monkeypatch.setattr(logic.accounts, "verify_password", recording_verify)

    async def login_on_loop() -> int:
        await chroma.accounts.login("ada@example.com", "secret")
        return threading.get_ident()

    loop_thread = asyncio.run(login_on_loop())

    assert threads and all(thread != loop_thread for thread in threads)
