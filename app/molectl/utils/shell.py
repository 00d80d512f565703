"""Shell execution utilities.

Provides subprocess execution for the external tools molectl consults
(Spotlight, locate, flatpak, snap, sudo, osascript) in both a blocking and
an asyncio flavour.
"""

import asyncio
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    def output_lines(self) -> list[str]:
        """Stripped, non-empty lines of stdout."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


def run_command(
    args: list[str],
    *,
    timeout: float | None = 60.0,
) -> CommandResult:
    """Execute a command and return the result.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


async def run_command_async(
    args: list[str],
    *,
    timeout: float | None = 60.0,
) -> CommandResult:
    """Execute a command without blocking the event loop.

    The child is killed when the timeout expires.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        TimeoutError: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise

    return CommandResult(
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None
