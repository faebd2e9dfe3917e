import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipebox import app as app_module
from recipebox import models
from recipebox.generation import get_generator


LEMON_CHICKEN = {
    "title": "Lemon Chicken Rice",
    "ingredients": ["1 lb chicken breast", "2 cups rice", "salt to taste"],
    "instructions": ["Season the chicken", "Cook the rice", "Serve together"],
    "prepTime": "15 minutes",
    "cookTime": "30 minutes",
    "servings": 4,
    "difficulty": "medium",
    "tags": ["chicken", "weeknight"],
}


class FakeGenerator:
    """Stands in for the model; records every prompt it is given."""

    def __init__(self, reply=None, error=None):
        self.reply = json.dumps(LEMON_CHICKEN) if reply is None else reply
        self.error = error
        self.prompts = []

    def generate(self, prompt_text):
        self.prompts.append(prompt_text)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def session_factory():
    # Use StaticPool so the same in-memory database is shared across connections
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(session_factory, generator):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[app_module.get_db] = override_get_db
    app_module.app.dependency_overrides[get_generator] = lambda: generator
    yield TestClient(app_module.app)
    app_module.app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return its Authorization header."""

    def _register(email="cook@example.com", password="Password123", name=None):
        body = {"email": email, "password": password}
        if name:
            body["name"] = name
        res = client.post("/api/auth/register", json=body)
        assert res.status_code == 201, res.text
        return {"Authorization": f"Bearer {res.json()['token']}"}

    return _register
