"""Sinks notified with the full user collection after a successful update."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .errors import OperationFailedError
from .sources import dump_users_json

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rolemanager.common import User

LOGGER = logging.getLogger(__name__)


class PersistenceSink(Protocol):
    """Anything that can record the updated user collection."""

    async def persist(self, users: Sequence[User]) -> None: ...


class LogSink:
    """Logs the serialized user array instead of storing it."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    async def persist(self, users: Sequence[User]) -> None:
        LOGGER.log(self.level, "Updated users:\n%s", dump_users_json(users))


class ExportSink:
    """Writes the serialized user array to an export file.

    The file is overwritten on every update, so it always holds the latest
    state, like a freshly downloaded ``users.json``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def persist(self, users: Sequence[User]) -> None:
        text = dump_users_json(users)
        try:
            await asyncio.to_thread(self._write, text)
        except OSError as e:
            msg = f"Failed to export users to {self.path}"
            raise OperationFailedError(msg) from e
        LOGGER.info("Exported %d users to %s", len(users), self.path)

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")
