"""Unit tests for elevated batch removal."""

from unittest.mock import AsyncMock, patch

import pytest
from molectl.cleaning.privileged import BatchResult, PrivilegedRemover, batched, build_command
from molectl.utils.shell import CommandResult


class TestBatched:
    """Tests for batched."""

    def test_splits_in_order(self) -> None:
        """Items are split into consecutive groups."""
        assert list(batched(list(range(7)), 3)) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_empty(self) -> None:
        """No items, no batches."""
        assert list(batched([], 10)) == []

    def test_invalid_size(self) -> None:
        """Batch size must be positive."""
        with pytest.raises(ValueError):
            list(batched([1], 0))


class TestBuildCommand:
    """Tests for build_command."""

    def test_sudo(self) -> None:
        """sudo removes all paths in one call, options terminated."""
        assert build_command(["/a", "/b c"], "sudo") == ["sudo", "rm", "-rf", "--", "/a", "/b c"]

    def test_osascript_quotes_paths(self) -> None:
        """osascript wraps a shell-quoted rm in an AppleScript string."""
        cmd = build_command(["/Library/Caches/it's here"], "osascript")

        assert cmd[:2] == ["osascript", "-e"]
        script = cmd[2]
        assert script.startswith('do shell script "rm -rf -- ')
        assert script.endswith('" with administrator privileges')
        assert "it'\\\"'\\\"'s here" in script


class TestPrivilegedRemover:
    """Tests for PrivilegedRemover.remove."""

    async def test_success(self) -> None:
        """A zero exit marks the batch successful."""
        mock = AsyncMock(return_value=CommandResult("", "", 0))
        with (
            patch("molectl.cleaning.privileged.command_exists", return_value=True),
            patch("molectl.cleaning.privileged.run_command_async", mock),
        ):
            result = await PrivilegedRemover().remove(["/a", "/b"])

        assert result == BatchResult(("/a", "/b"), success=True)
        assert mock.call_args.args[0] == ["sudo", "rm", "-rf", "--", "/a", "/b"]

    async def test_refused(self) -> None:
        """A non-zero exit fails the whole batch with stderr as detail."""
        mock = AsyncMock(return_value=CommandResult("", "User cancelled.\n", 1))
        with (
            patch("molectl.cleaning.privileged.command_exists", return_value=True),
            patch("molectl.cleaning.privileged.run_command_async", mock),
        ):
            result = await PrivilegedRemover("osascript").remove(["/a"])

        assert result.success is False
        assert result.detail == "User cancelled."

    async def test_timeout(self) -> None:
        """A timed-out elevation fails without raising."""
        with (
            patch("molectl.cleaning.privileged.command_exists", return_value=True),
            patch("molectl.cleaning.privileged.run_command_async", AsyncMock(side_effect=TimeoutError)),
        ):
            result = await PrivilegedRemover(timeout=0.1).remove(["/a"])

        assert result.success is False
        assert result.detail == "elevation timed out"

    async def test_missing_tool(self) -> None:
        """A missing elevation tool fails the batch."""
        with patch("molectl.cleaning.privileged.command_exists", return_value=False):
            result = await PrivilegedRemover().remove(["/a"])
        assert result == BatchResult(("/a",), success=False, detail="sudo not available")
