from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

import models  # noqa: F401  registers the tables
from auth import create_token, hash_pwd
from db import get_session
from main import app
from models import User, utcnow

THAPAR = (30.3564, 76.3647)
LEELA_BHAWAN = (30.3400, 76.3800)
CHANDIGARH = (30.7333, 76.7794)


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    def make_user(name: str, location=THAPAR, address: str = "Thapar University") -> User:
        user = User(
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash=hash_pwd("secret"),
            lat=location[0],
            lng=location[1],
            address=address,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return make_user


@pytest.fixture(name="provider")
def provider_fixture(make_user):
    return make_user("Asha")


@pytest.fixture(name="claimant")
def claimant_fixture(make_user):
    return make_user("Ravi", LEELA_BHAWAN, "Leela Bhawan")


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token(user)}"}


def listing_data(**overrides) -> dict:
    data = {
        "title": "Vegetable biryani",
        "description": "Cooked this afternoon, serves four",
        "category": "prepared",
        "quantity": "4 portions",
        "expires_at": utcnow() + timedelta(days=1),
    }
    data.update(overrides)
    return data
