import itertools
from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_access_token
from config import Settings, get_settings
from database import POSTS, USERS, get_db
from main import app
from permissions import role_fields

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


@pytest.fixture(params=["native", "scan"])
def settings(request):
    s = Settings()
    s.SECRET_KEY = "test-secret"
    s.CONTENT_QUERY_MODE = request.param
    s.BOOTSTRAP_ADMIN_EMAIL = "pastor@gracechurch.org"
    return s


@pytest.fixture
def db():
    return mongomock.MongoClient(tz_aware=True)["ministry_hub_test"]


@pytest.fixture
def client(db, settings):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, settings):
    def _make(role="reader", is_active=True, **fields):
        n = next(_ids)
        doc = {
            "email": f"{role}{n}@gracechurch.org",
            "display_name": f"{role.title()} {n}",
            "password_hash": "",
            "is_active": is_active,
            "created_at": BASE_TIME + timedelta(minutes=n),
            "updated_at": BASE_TIME + timedelta(minutes=n),
            **role_fields(role),
        }
        doc.update(fields)
        user_id = str(db[USERS].insert_one(doc).inserted_id)
        token = create_access_token({"sub": user_id}, settings)
        return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}
    return _make


@pytest.fixture
def make_post(db):
    def _make(title, minutes=0, **fields):
        doc = {
            "title": title,
            "slug": title.lower().replace(" ", "-"),
            "content": f"{title} body",
            "excerpt": f"{title} excerpt",
            "content_type": "text",
            "category": "sermons",
            "tags": [],
            "status": "published",
            "featured": False,
            "views": 0,
            "likes": 0,
            "liked_by": [],
            "created_at": BASE_TIME + timedelta(minutes=minutes),
        }
        doc.update(fields)
        return str(db[POSTS].insert_one(doc).inserted_id)
    return _make
