import pytest

from coursebase.adapters.memory import InMemoryContentStore
from coursebase.core.catalog import build_catalog
from coursebase.rules.models import Rules
from coursebase.services.users import UserDirectory
from tests.factories import TickingClock, make_user


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def rules():
    return Rules()


@pytest.fixture
def store(clock):
    return InMemoryContentStore(clock)


@pytest.fixture
def catalog(store, rules):
    return build_catalog(store, rules)


@pytest.fixture
def users(store, rules, clock):
    return UserDirectory(store, rules, clock)


@pytest.fixture
def alice():
    return make_user("Alice", "alice@example.com")


@pytest.fixture
def bob():
    return make_user("Bob", "bob@example.com")
