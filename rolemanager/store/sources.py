"""Interchangeable backing sources for users and roles.

A source only knows how to load the two collections and, optionally, write
the user collection back. Caching, latency and fault injection live in
:class:`~rolemanager.store.store.RoleStore`.

**Variants:**

- :class:`MemorySource` keeps fixture lists in the process
- :class:`JSONSource` reads JSON arrays from files or ``http(s)`` URLs
- :class:`XMLSource` reads ``<users>`` / ``<roles>`` documents from files or URLs
"""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from pydantic import TypeAdapter, ValidationError

from rolemanager.common import Role, User
from rolemanager.fixtures import DEFAULT_ROLES, DEFAULT_USERS

from .errors import SourceUnavailableError

if TYPE_CHECKING:
    from collections.abc import Sequence

LOGGER = logging.getLogger(__name__)

_USERS_ADAPTER = TypeAdapter(list[User])
_ROLES_ADAPTER = TypeAdapter(list[Role])
_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
_DEFAULT_HTTP_TIMEOUT = 10.0


class SourceBackend(StrEnum):
    """Names accepted by :func:`create_source`."""

    MEMORY = "memory"
    JSON = "json"
    XML = "xml"


def is_remote(location: str) -> bool:
    """Check whether a location is fetched over HTTP rather than read from disk."""
    return location.startswith(("http://", "https://"))


def copy_users(users: Sequence[User]) -> list[User]:
    return [user.model_copy(deep=True) for user in users]


def copy_roles(roles: Sequence[Role]) -> list[Role]:
    return [role.model_copy(deep=True) for role in roles]


class UserRoleSource(ABC):
    """Interface every backing source implements."""

    name: str = "source"

    @abstractmethod
    async def load_users(self) -> list[User]:
        """Load the full user collection.

        :raises SourceUnavailableError: If the data cannot be read or parsed
        """

    @abstractmethod
    async def load_roles(self) -> list[Role]:
        """Load the full role collection.

        :raises SourceUnavailableError: If the data cannot be read or parsed
        """

    @abstractmethod
    async def save_users(self, users: Sequence[User]) -> None:
        """Replace the stored user collection.

        :raises SourceUnavailableError: If the data cannot be written
        """


class MemorySource(UserRoleSource):
    """Source backed by lists held in this object.

    Loads hand out copies, so only :meth:`save_users` changes what later
    loads return. Data lives until the process exits.
    """

    name = "memory"

    def __init__(
        self,
        users: Sequence[User] | None = None,
        roles: Sequence[Role] | None = None,
    ) -> None:
        self._users = copy_users(DEFAULT_USERS if users is None else users)
        self._roles = copy_roles(DEFAULT_ROLES if roles is None else roles)

    async def load_users(self) -> list[User]:
        return copy_users(self._users)

    async def load_roles(self) -> list[Role]:
        return copy_roles(self._roles)

    async def save_users(self, users: Sequence[User]) -> None:
        self._users = copy_users(users)


class DocumentSource(UserRoleSource):
    """Base for sources that parse text documents from a path or URL.

    :param users_location: File path or ``http(s)`` URL of the users document
    :param roles_location: File path or ``http(s)`` URL of the roles document
    :param timeout: HTTP timeout in seconds for remote locations
    :param transport: Optional httpx transport, e.g. a mock transport in tests
    """

    def __init__(
        self,
        users_location: str,
        roles_location: str,
        timeout: float = _DEFAULT_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.users_location = users_location
        self.roles_location = roles_location
        self._timeout = timeout
        self._transport = transport

    @abstractmethod
    def parse_users(self, text: str) -> list[User]: ...

    @abstractmethod
    def parse_roles(self, text: str) -> list[Role]: ...

    @abstractmethod
    def dump_users(self, users: Sequence[User]) -> str: ...

    async def load_users(self) -> list[User]:
        text = await self._read(self.users_location)
        users = self._parse(self.parse_users, text, self.users_location)
        LOGGER.debug("Loaded %d users from %s", len(users), self.users_location)
        return users

    async def load_roles(self) -> list[Role]:
        text = await self._read(self.roles_location)
        roles = self._parse(self.parse_roles, text, self.roles_location)
        LOGGER.debug("Loaded %d roles from %s", len(roles), self.roles_location)
        return roles

    async def save_users(self, users: Sequence[User]) -> None:
        if is_remote(self.users_location):
            msg = f"Cannot write users back to remote source {self.users_location}"
            raise SourceUnavailableError(msg)

        text = self.dump_users(users)
        try:
            await asyncio.to_thread(
                Path(self.users_location).write_text,
                text,
                encoding="utf-8",
            )
        except OSError as e:
            msg = f"Failed to write users to {self.users_location}"
            raise SourceUnavailableError(msg) from e
        LOGGER.info("Wrote %d users to %s", len(users), self.users_location)

    async def _read(self, location: str) -> str:
        if is_remote(location):
            return await self._fetch(location)

        try:
            return await asyncio.to_thread(Path(location).read_text, encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read {location}"
            raise SourceUnavailableError(msg) from e

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            LOGGER.warning("Fetching %s failed: %s", url, e)
            msg = f"Failed to fetch {url}"
            raise SourceUnavailableError(msg) from e
        return response.text

    @staticmethod
    def _parse(parser, text: str, location: str) -> list:
        try:
            return parser(text)
        except (ValidationError, ValueError, ET.ParseError) as e:
            msg = f"Malformed document at {location}"
            raise SourceUnavailableError(msg) from e


class JSONSource(DocumentSource):
    """Source reading JSON arrays shaped like :class:`User` and :class:`Role`."""

    name = "json"

    def parse_users(self, text: str) -> list[User]:
        return _USERS_ADAPTER.validate_json(text)

    def parse_roles(self, text: str) -> list[Role]:
        return _ROLES_ADAPTER.validate_json(text)

    def dump_users(self, users: Sequence[User]) -> str:
        return dump_users_json(users)


def dump_users_json(users: Sequence[User]) -> str:
    """Serialize users as the pretty-printed JSON array the sources read."""
    return _USERS_ADAPTER.dump_json(list(users), indent=2).decode()


def _child_text(element: ET.Element, tag: str, *, required: bool = True) -> str:
    child = element.find(tag)
    if child is None:
        if required:
            msg = f"<{element.tag}> is missing <{tag}>"
            raise ValueError(msg)
        return ""
    return (child.text or "").strip()


class XMLSource(DocumentSource):
    """Source reading XML documents.

    Users look like::

        <users>
          <user>
            <id>1</id><name>Alice</name><email>alice@example.com</email>
            <roles><role>Admin</role></roles>
          </user>
        </users>

    and roles like ``<roles><role><id/><name/><description/></role></roles>``.
    """

    name = "xml"

    def parse_users(self, text: str) -> list[User]:
        root = ET.fromstring(text)
        users = []
        for element in root.iter("user"):
            roles_element = element.find("roles")
            roles = (
                []
                if roles_element is None
                else [
                    (role.text or "").strip()
                    for role in roles_element.findall("role")
                    if role.text and role.text.strip()
                ]
            )
            users.append(
                User(
                    id=_child_text(element, "id"),
                    name=_child_text(element, "name"),
                    email=_child_text(element, "email"),
                    roles=roles,
                ),
            )
        return users

    def parse_roles(self, text: str) -> list[Role]:
        root = ET.fromstring(text)
        return [
            Role(
                id=_child_text(element, "id"),
                name=_child_text(element, "name"),
                description=_child_text(element, "description", required=False),
            )
            for element in root.iter("role")
        ]

    def dump_users(self, users: Sequence[User]) -> str:
        root = ET.Element("users")
        for user in users:
            element = ET.SubElement(root, "user")
            ET.SubElement(element, "id").text = user.id
            ET.SubElement(element, "name").text = user.name
            ET.SubElement(element, "email").text = user.email
            roles_element = ET.SubElement(element, "roles")
            for role in user.roles:
                ET.SubElement(roles_element, "role").text = role
        ET.indent(root)
        return _XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"


def create_source(
    backend: str,
    users_location: str | None = None,
    roles_location: str | None = None,
    timeout: float = _DEFAULT_HTTP_TIMEOUT,
) -> UserRoleSource:
    """Build the source variant named by ``backend``.

    :param backend: One of :class:`SourceBackend`
    :param users_location: Path or URL of the users document (document sources)
    :param roles_location: Path or URL of the roles document (document sources)
    :param timeout: HTTP timeout for remote documents
    :return: The configured source
    :raises ValueError: If the backend is unknown or a location is missing
    """
    try:
        kind = SourceBackend(backend.lower())
    except ValueError as e:
        msg = f"Unknown store backend: {backend}"
        raise ValueError(msg) from e

    if kind is SourceBackend.MEMORY:
        return MemorySource()

    if not users_location or not roles_location:
        msg = f"The {kind} backend needs both a users and a roles location"
        raise ValueError(msg)

    source_class = JSONSource if kind is SourceBackend.JSON else XMLSource
    return source_class(users_location, roles_location, timeout=timeout)
