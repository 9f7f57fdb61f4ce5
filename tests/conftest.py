import os

# Must be set before nxtgen.db builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from nxtgen.auth import create_access_token
from nxtgen.config import PROJECT_ROOT
from nxtgen.db import Base, SessionLocal, engine, get_db_session, init_db
from nxtgen.main import app
from nxtgen.models import College
from nxtgen.utils import load_seed_data

SEED_DIR = os.path.join(PROJECT_ROOT, "data")


def make_college(id, **fields):
    values = {"name": f"College {id}", "location": "", "city": "", "state": "", "type": ""}
    values.update(fields)
    return College(id=id, **values)


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def seeded():
    with get_db_session() as session:
        return load_seed_data(session, SEED_DIR)


@pytest.fixture
def seeded_db(seeded, db):
    return db


@pytest.fixture
def client():
    return TestClient(app)


def auth_header(user_id="user-1"):
    return {"Authorization": f"Bearer {create_access_token(user_id, email=f'{user_id}@example.com')}"}


@pytest.fixture
def auth_headers():
    return auth_header("user-1")
