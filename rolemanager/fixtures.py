"""Seed data for the in-memory source and the sample documents in ``data/``."""

from rolemanager.common import Role, User

DEFAULT_ROLES: list[Role] = [
    Role(id="1", name="Admin", description="Full access to all system features"),
    Role(id="2", name="Editor", description="Can create and edit content"),
    Role(id="3", name="Viewer", description="Read-only access to content"),
]

DEFAULT_USERS: list[User] = [
    User(id="1", name="Alice Johnson", email="alice@example.com", roles=["Admin"]),
    User(id="2", name="Bob Smith", email="bob@example.com", roles=["Editor"]),
    User(id="3", name="Carol White", email="carol@example.com", roles=["Viewer"]),
    User(
        id="4",
        name="David Brown",
        email="david@example.com",
        roles=["Editor", "Viewer"],
    ),
    User(id="5", name="Eva Green", email="eva@example.com", roles=["Admin", "Editor"]),
    User(id="6", name="Frank Miller", email="frank@example.com", roles=["Viewer"]),
    User(id="7", name="Grace Lee", email="grace@example.com", roles=["Editor"]),
    User(id="8", name="Henry Wilson", email="henry@example.com", roles=[]),
    User(id="9", name="Irene Clark", email="irene@example.com", roles=["Viewer"]),
    User(
        id="10",
        name="Jack Davis",
        email="jack@example.com",
        roles=["Admin", "Viewer"],
    ),
    User(id="11", name="Karen Hall", email="karen@example.com", roles=["Editor"]),
    User(id="12", name="Leo Young", email="leo@example.com", roles=["Viewer"]),
]
