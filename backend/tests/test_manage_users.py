"""Tests for the manage_users admin CLI."""

from unittest.mock import patch

import pytest

from manage_users import build_parser, run_command
from modules.auth.models import UserStatus
from modules.auth.store import UserStore


async def _run(store: UserStore, *argv: str) -> int:
    return await run_command(store, build_parser().parse_args(list(argv)))


class TestManageUsers:
    @pytest.mark.asyncio
    async def test_create_and_list(self, store: UserStore, capsys):
        """create should add an account that list then shows."""
        code = await _run(
            store, "create", "--name", "Ana", "--email", "Ana@Example.com", "--password", "secret123"
        )
        assert code == 0
        assert (await store.get_by_email("ana@example.com")).name == "Ana"

        await _run(store, "list")
        assert "ana@example.com" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_set_status(self, store: UserStore):
        """set-status should change the account status."""
        user = await store.create({"name": "Ana", "email": "ana@example.com", "password": "secret123"})
        await _run(store, "set-status", user.id, "suspended")
        assert (await store.get_by_id(user.id)).status == UserStatus.SUSPENDED

    @pytest.mark.asyncio
    async def test_reset_password(self, store: UserStore):
        """reset-password should make the new password the valid one."""
        await store.create({"name": "Ana", "email": "ana@example.com", "password": "secret123"})
        await _run(store, "reset-password", "ana@example.com", "brandnew1")
        assert await store.verify_credentials("ana@example.com", "brandnew1") is not None

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, store: UserStore):
        """delete should abort unless confirmed."""
        user = await store.create({"name": "Ana", "email": "ana@example.com", "password": "secret123"})
        with patch("builtins.input", return_value="n"):
            assert await _run(store, "delete", user.id) == 1
        assert await store.get_by_id(user.id) is not None

        assert await _run(store, "delete", user.id, "--yes") == 0
        assert await store.get_by_id(user.id) is None

    def test_invalid_status_rejected_by_parser(self):
        """Unknown statuses should be rejected at argument parsing."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["set-status", "user_1", "banished"])
