"""Unit tests for the RoleStore data access layer."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from rolemanager.common import Role, UpdateUserRolesRequest, User
from rolemanager.store import (
    CachePolicy,
    ExportSink,
    FaultInjector,
    JSONSource,
    Latency,
    MemorySource,
    OperationFailedError,
    RoleStore,
    SimulatedFailureError,
    SourceUnavailableError,
    UserNotFoundError,
)
from rolemanager.store.sources import dump_users_json
from rolemanager.store.store import SIMULATED_FAILURE_MESSAGE

if TYPE_CHECKING:
    from pathlib import Path
    from unittest.mock import MagicMock


def _roles_by_id(users: list[User]) -> dict[str, list[str]]:
    return {user.id: user.roles for user in users}


@pytest.mark.asyncio
class TestListing:
    """Test suite for cached listing."""

    async def test_first_call_loads_then_reuses_cache(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source)

        with patch.object(
            memory_source,
            "load_users",
            wraps=memory_source.load_users,
        ) as load_users:
            await store.list_users()
            await store.list_users()

        assert load_users.await_count == 1
        assert store.users_cached

    async def test_invalidate_forces_refetch(self, memory_source: MemorySource) -> None:
        store = RoleStore(memory_source)
        await store.list_users()
        await store.list_roles()

        store.invalidate()

        assert not store.users_cached
        assert not store.roles_cached
        with patch.object(
            memory_source,
            "load_roles",
            wraps=memory_source.load_roles,
        ) as load_roles:
            await store.list_roles()
        load_roles.assert_awaited_once()

    async def test_listing_returns_copies(self, store: RoleStore) -> None:
        users = await store.list_users()
        users[0].roles.clear()

        assert (await store.list_users())[0].roles == ["Editor"]

    async def test_list_roles(self, store: RoleStore, roles: list[Role]) -> None:
        assert await store.list_roles() == roles

    async def test_listing_waits_simulated_latency(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, latency=Latency(users=0.8, roles=0.3))

        with patch(
            "rolemanager.store.store.simulate_delay",
            new_callable=AsyncMock,
        ) as mock_delay:
            await store.list_users()
            await store.list_roles()

        assert [c.args[0] for c in mock_delay.await_args_list] == [0.8, 0.3]

    async def test_source_failure_propagates(self) -> None:
        source = AsyncMock(spec=MemorySource)
        source.name = "broken"
        source.load_users.side_effect = SourceUnavailableError("Failed to read users")
        store = RoleStore(source)

        with pytest.raises(OperationFailedError, match="Failed to read users"):
            await store.list_users()
        assert not store.users_cached


@pytest.mark.asyncio
class TestUpdateUserRoles:
    """Test suite for role updates."""

    async def test_update_then_list_returns_new_roles(self) -> None:
        store = RoleStore(
            MemorySource(
                [User(id="1", name="A", email="a@example.com", roles=["Editor"])],
                [],
            ),
        )

        updated = await store.update_user_roles("1", ["Admin", "Viewer"])

        assert updated.roles == ["Admin", "Viewer"]
        assert (await store.list_users())[0].roles == ["Admin", "Viewer"]

    async def test_apply_update_request(self, store: RoleStore) -> None:
        request = UpdateUserRolesRequest(user_id="6", roles=["Admin", "Editor"])

        updated = await store.apply_update(request)

        assert updated.id == "6"
        assert updated.roles == ["Admin", "Editor"]
        assert _roles_by_id(await store.list_users())["6"] == ["Admin", "Editor"]

    async def test_unknown_user_fails_and_changes_nothing(
        self,
        store: RoleStore,
    ) -> None:
        before = _roles_by_id(await store.list_users())

        with pytest.raises(UserNotFoundError, match="User not found"):
            await store.update_user_roles("missing", ["Admin"])

        assert _roles_by_id(await store.list_users()) == before

    async def test_injected_failure_happens_before_mutation(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, faults=FaultInjector.always())
        before = _roles_by_id(await store.list_users())

        with pytest.raises(SimulatedFailureError) as exc_info:
            await store.update_user_roles("1", ["Admin"])

        assert str(exc_info.value) == SIMULATED_FAILURE_MESSAGE
        assert _roles_by_id(await store.list_users()) == before

    async def test_unknown_role_names_are_kept(self, store: RoleStore) -> None:
        updated = await store.update_user_roles("4", ["Nonexistent"])

        assert updated.roles == ["Nonexistent"]

    async def test_roles_are_copied_from_argument(self, store: RoleStore) -> None:
        roles = ["Admin"]
        await store.update_user_roles("1", roles)
        roles.append("Viewer")

        assert (await store.list_users())[0].roles == ["Admin"]

    async def test_patch_policy_keeps_cache(self, memory_source: MemorySource) -> None:
        store = RoleStore(memory_source, cache_policy=CachePolicy.PATCH)
        await store.list_users()

        await store.update_user_roles("1", ["Admin"])

        assert store.users_cached
        assert (await store.list_users())[0].roles == ["Admin"]

    async def test_patch_without_write_back_lasts_until_cache_reset(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, cache_policy=CachePolicy.PATCH)

        await store.update_user_roles("1", ["Admin"])
        store.invalidate_users()

        assert (await store.list_users())[0].roles == ["Editor"]

    async def test_invalidate_policy_refetches_written_back_data(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(
            memory_source,
            cache_policy=CachePolicy.INVALIDATE,
            write_back=True,
        )

        await store.update_user_roles("1", ["Admin"])

        assert not store.users_cached
        assert (await store.list_users())[0].roles == ["Admin"]

    async def test_write_back_failure_leaves_cache_unchanged(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, write_back=True)
        await store.list_users()

        with (
            patch.object(
                memory_source,
                "save_users",
                side_effect=SourceUnavailableError("disk full"),
            ),
            pytest.raises(SourceUnavailableError, match="disk full"),
        ):
            await store.update_user_roles("1", ["Admin"])

        assert (await store.list_users())[0].roles == ["Editor"]

    async def test_sinks_receive_full_updated_collection(self, store: RoleStore) -> None:
        sink = AsyncMock()
        store.sinks.append(sink)

        await store.update_user_roles("2", ["Viewer"])

        persisted: list[User] = sink.persist.await_args.args[0]
        assert len(persisted) == 7
        assert _roles_by_id(persisted)["2"] == ["Viewer"]

    async def test_concurrent_updates_to_same_user_last_write_wins(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, latency=Latency(users=0, roles=0, update=0.01))

        await asyncio.gather(
            store.update_user_roles("1", ["Admin"]),
            store.update_user_roles("1", ["Viewer"]),
        )

        assert (await store.list_users())[0].roles == ["Viewer"]

    async def test_concurrent_updates_to_different_users_are_all_written(
        self,
        tmp_path: Path,
        users: list[User],
    ) -> None:
        users_path = tmp_path / "users.json"
        users_path.write_text(dump_users_json(users))
        source = JSONSource(str(users_path), str(tmp_path / "roles.json"))
        store = RoleStore(source, write_back=True)

        await asyncio.gather(
            store.update_user_roles("1", ["Admin"]),
            store.update_user_roles("2", ["Viewer"]),
        )
        store.invalidate()

        reloaded = _roles_by_id(await store.list_users())
        assert reloaded["1"] == ["Admin"]
        assert reloaded["2"] == ["Viewer"]

    async def test_concurrent_updates_reach_memory_source_and_export(
        self,
        tmp_path: Path,
        memory_source: MemorySource,
    ) -> None:
        export_path = tmp_path / "export.json"
        store = RoleStore(
            memory_source,
            latency=Latency(users=0, roles=0, update=0.01),
            write_back=True,
            sinks=[ExportSink(export_path)],
        )

        await asyncio.gather(
            store.update_user_roles("1", ["Admin"]),
            store.update_user_roles("2", ["Viewer"]),
            store.update_user_roles("4", ["Editor"]),
        )

        expected = {"1": ["Admin"], "2": ["Viewer"], "4": ["Editor"]}
        saved = _roles_by_id(await memory_source.load_users())
        exported = _roles_by_id(
            [User.model_validate(item) for item in json.loads(export_path.read_text())],
        )
        for user_id, roles in expected.items():
            assert saved[user_id] == roles
            assert exported[user_id] == roles

    async def test_failed_persist_restores_only_that_user(
        self,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(memory_source, write_back=True)
        await store.list_users()
        original_save = memory_source.save_users

        async def save_users(snapshot: list[User]) -> None:
            if _roles_by_id(snapshot)["2"] == ["Viewer"]:
                raise SourceUnavailableError("disk full")
            await original_save(snapshot)

        with patch.object(memory_source, "save_users", side_effect=save_users):
            results = await asyncio.gather(
                store.update_user_roles("1", ["Admin"]),
                store.update_user_roles("2", ["Viewer"]),
                return_exceptions=True,
            )

        assert isinstance(results[1], SourceUnavailableError)
        cached = _roles_by_id(await store.list_users())
        assert cached["1"] == ["Admin"]
        assert cached["2"] == ["Admin"]
        saved = _roles_by_id(await memory_source.load_users())
        assert saved["1"] == ["Admin"]
        assert saved["2"] == ["Admin"]

    @patch("rolemanager.store.store.simulate_delay", new_callable=AsyncMock)
    async def test_update_waits_before_failing(
        self,
        mock_delay: MagicMock,
        memory_source: MemorySource,
    ) -> None:
        store = RoleStore(
            memory_source,
            faults=FaultInjector.always(),
            latency=Latency(update=0.5),
        )

        with pytest.raises(SimulatedFailureError):
            await store.update_user_roles("1", ["Admin"])

        mock_delay.assert_awaited_once_with(0.5)
