import pytest
from fastapi.testclient import TestClient

from coursebase.adapters.auth.tokens import INVALID_TOKEN_MESSAGE
from coursebase.api.deps import get_identity_verifier, get_rules, get_store
from coursebase.api.main import app
from coursebase.domain.errors import UnauthenticatedError
from coursebase.ports.identity import VerifiedIdentity
from tests.factories import bearer


class FakeVerifier:
    """Maps opaque test tokens to identities."""

    def __init__(self) -> None:
        self.identities: dict[str, VerifiedIdentity] = {}

    def add(self, token: str, email: str, verified: bool = True, first_name: str = "Test") -> str:
        self.identities[token] = VerifiedIdentity(email=email, verified=verified, first_name=first_name)
        return token

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            return self.identities[token]
        except KeyError:
            raise UnauthenticatedError(INVALID_TOKEN_MESSAGE) from None


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def client(store, rules, verifier):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def sign_in(client: TestClient, verifier: FakeVerifier, name: str) -> dict[str, str]:
    token = verifier.add(f"{name}-token", f"{name}@example.com", first_name=name.title())
    response = client.post("/api/v1/users/session", headers=bearer(token))
    assert response.status_code == 201
    return bearer(token)


@pytest.fixture
def alice_headers(client, verifier):
    return sign_in(client, verifier, "alice")


@pytest.fixture
def bob_headers(client, verifier):
    return sign_in(client, verifier, "bob")
