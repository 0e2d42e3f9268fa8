"""
Pytest configuration for the MoodJournal test suite.

Defines shared fixtures:
- a derived key for a fixed user id, computed once per session because
  PBKDF2 at 100,000 iterations is deliberately slow;
- an isolated SQLite file and config directory per test, so the service
  tests never touch a real journal.
"""
import pytest
import pytest_asyncio

from moodjournal import db, logic
from moodjournal.crypto import derive_key


USER_ID = "user-42"
OTHER_USER_ID = "user-99"


@pytest.fixture(scope="session")
def user_key():
    """The content key for ``USER_ID``."""
    return derive_key(USER_ID)


@pytest.fixture(scope="session")
def other_key():
    """The content key for ``OTHER_USER_ID``."""
    return derive_key(OTHER_USER_ID)


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Point the DB and the config dir at a temporary directory."""
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "journal.sqlite3"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path


@pytest_asyncio.fixture
async def session(isolated_env):
    """A signed-in session over a freshly initialized database."""
    await logic.init_db()
    sess = logic.sign_in(USER_ID)
    yield sess
    logic.sign_out(sess)
