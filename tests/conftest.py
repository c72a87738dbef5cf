import pytest

from cims.db import connect
from cims.services.users import SessionUser
from cims.store import open_store


@pytest.fixture(params=["sql", "local"])
def store(request, tmp_path):
    conn = connect(tmp_path / "cims_test.db")
    yield open_store(request.param, conn)
    conn.close()


@pytest.fixture
def admin():
    return SessionUser(id=1, username="admin", role="admin", name="Administrator", initials="ADM")


@pytest.fixture
def clerk():
    return SessionUser(id=2, username="jane", role="user", name="Jane Doe", initials="JAN")
