"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path so tests can import rolemanager
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from rolemanager.common import Role, User  # noqa: E402
from rolemanager.store import MemorySource, RoleStore  # noqa: E402


@pytest.fixture
def roles() -> list[Role]:
    """Create the three standard roles."""
    return [
        Role(id="r1", name="Admin", description="Full access"),
        Role(id="r2", name="Editor", description="Can edit content"),
        Role(id="r3", name="Viewer", description="Read-only access"),
    ]


@pytest.fixture
def users() -> list[User]:
    """Create seven users; names and emails sort in different orders."""
    return [
        User(id="1", name="Carol", email="zed@example.com", roles=["Editor"]),
        User(id="2", name="alice", email="amy@example.com", roles=["Admin"]),
        User(id="3", name="Bob", email="bob@example.com", roles=["Viewer", "Editor"]),
        User(id="4", name="Dave", email="dave@example.com", roles=[]),
        User(id="5", name="Erin", email="erin@example.com", roles=["Editor"]),
        User(id="6", name="Frank", email="frank@example.com", roles=["Viewer"]),
        User(id="7", name="bob", email="bob2@example.com", roles=["Ghost"]),
    ]


@pytest.fixture
def memory_source(users: list[User], roles: list[Role]) -> MemorySource:
    return MemorySource(users, roles)


@pytest.fixture
def store(memory_source: MemorySource) -> RoleStore:
    """A store with no latency that never injects failures."""
    return RoleStore(memory_source, write_back=True)
