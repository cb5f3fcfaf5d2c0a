import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursebase import __version__
from coursebase.adapters.auth.tokens import JWTIdentityVerifier
from coursebase.adapters.clock import SystemClock
from coursebase.adapters.memory import InMemoryContentStore
from coursebase.adapters.sqlite.store import SQLiteContentStore
from coursebase.core.catalog import Catalog, build_catalog
from coursebase.domain.entities import User
from coursebase.domain.errors import UnauthenticatedError
from coursebase.ports.identity import IdentityVerifierPort, VerifiedIdentity
from coursebase.ports.store import ContentStorePort
from coursebase.rules.loader import DEFAULT_RULES_PATH, load_rules
from coursebase.rules.models import Rules
from coursebase.services.users import UserDirectory


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.data_dir = Path(os.environ.get("COURSEBASE_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "coursebase.db")
        self.store_backend = os.environ.get("COURSEBASE_STORE", "sqlite")
        rules_path = os.environ.get("COURSEBASE_RULES_PATH")
        self.rules_path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
        self.token_secret = os.environ.get("COURSEBASE_TOKEN_SECRET", "change-me")
        self.token_audience = os.environ.get("COURSEBASE_TOKEN_AUDIENCE") or None
        self.token_algorithm = os.environ.get("COURSEBASE_TOKEN_ALGORITHM", "HS256")
        self.api_version = os.environ.get("COURSEBASE_API_VERSION", __version__)
        self.cors_origins = [
            origin.strip()
            for origin in os.environ.get("COURSEBASE_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Store ---
@lru_cache
def get_store(settings: Settings = Depends(get_settings)) -> ContentStorePort:
    if settings.store_backend == "memory":
        return InMemoryContentStore(SystemClock())
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return SQLiteContentStore(settings.db_path, SystemClock())


# --- Services ---
def get_catalog(
    store: ContentStorePort = Depends(get_store),
    rules: Rules = Depends(get_rules),
) -> Catalog:
    return build_catalog(store, rules)


def get_user_directory(
    store: ContentStorePort = Depends(get_store),
    rules: Rules = Depends(get_rules),
) -> UserDirectory:
    return UserDirectory(store, rules)


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_identity_verifier(settings: Settings = Depends(get_settings)) -> IdentityVerifierPort:
    return JWTIdentityVerifier(
        secret=settings.token_secret,
        audience=settings.token_audience,
        algorithms=[settings.token_algorithm],
    )


async def get_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    verifier: IdentityVerifierPort = Depends(get_identity_verifier),
) -> VerifiedIdentity:
    """Verified identity of the caller. No role check: used by the session route."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("An authorization token is required.")
    return await verifier.verify(credentials.credentials)


async def get_current_user(
    identity: VerifiedIdentity = Depends(get_identity),
    users: UserDirectory = Depends(get_user_directory),
    rules: Rules = Depends(get_rules),
) -> User:
    """Caller resolved to a stored user holding one of the required roles."""
    return await users.authorize(identity, rules.access.required_roles)
