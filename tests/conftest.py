import os

os.environ["DATABASE_URL"] = "mongodb://localhost:27017/?serverSelectionTimeoutMS=100"
os.environ["DATABASE_NAME"] = "storefront_test"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "s3cret-admin"
os.environ["TOKEN_SECRET"] = "test-secret-key-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_MAX_REQUESTS"] = "100000"
os.environ["PREMIUM_CITIES"] = ""

import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from database import ensure_indexes, get_db
from identity import IdentityProvider, IdentityProviderError, get_identity_provider
from offline import OfflineQueue, get_offline_queue


class FakeIdentityProvider(IdentityProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accounts = {}
        self.signed_out = 0

    def create_user(self, email, password, display_name):
        if self.fail:
            raise IdentityProviderError("auth/unavailable")
        if email in self.accounts:
            raise IdentityProviderError("auth/email-already-in-use")
        uid = f"uid-{len(self.accounts) + 1}"
        self.accounts[email] = (uid, password)
        return uid

    def sign_in(self, email, password):
        if self.fail or email not in self.accounts:
            raise IdentityProviderError("auth/user-not-found")
        uid, stored = self.accounts[email]
        if stored != password:
            raise IdentityProviderError("auth/wrong-password")
        return uid

    def sign_out(self, uid=None):
        if self.fail:
            raise IdentityProviderError("auth/unavailable")
        self.signed_out += 1


@pytest.fixture
def mongo():
    database = mongomock.MongoClient()["storefront_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
def offline_queue():
    return OfflineQueue()


@pytest.fixture
def client(mongo, identity, offline_queue):
    main.app.dependency_overrides[get_db] = lambda: mongo
    main.app.dependency_overrides[get_identity_provider] = lambda: identity
    main.app.dependency_overrides[get_offline_queue] = lambda: offline_queue
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    resp = client.post("/admin/login", json={"username": "admin", "password": "s3cret-admin"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


@pytest.fixture
def make_product(client, admin_headers):
    def _make(**overrides):
        body = {
            "name": "Classic Tee",
            "price": 80,
            "category": "t-shirts",
            "image": "https://cdn.example.com/tee.jpg",
            "colors": ["black", "white"],
            "sizes": ["S", "M", "L"],
        }
        body.update(overrides)
        resp = client.post("/products", json=body, headers=admin_headers)
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]
    return _make


@pytest.fixture
def customer_info():
    return {
        "name": "Dana Scully",
        "phone": "0123456789",
        "address": "42 Wallaby Way, Apt 3",
        "city": "Springfield",
    }


@pytest.fixture
def user_headers(client):
    client.post("/users/register", json={"name": "Fox Mulder", "email": "Fox@Example.com", "password": "trustno1"})
    resp = client.post("/users/login", json={"email": "fox@example.com", "password": "trustno1"})
    assert resp.status_code == 200, resp.json()
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}
