"""DevOps tasks for molectl.

Usage: uv run devops.py <task>
Tasks: fmt, lint, test, clean
"""

import subprocess
import sys


def _run(commands: list[list[str]]) -> None:
    """Execute a sequence of shell commands, exiting on first failure."""
    for cmd in commands:
        try:
            subprocess.run(cmd, check=True)  # nosec: B603, B607
        except subprocess.CalledProcessError as e:
            print(f"Command failed: {' '.join(e.cmd)}", file=sys.stderr)
            sys.exit(e.returncode)


def format_code() -> None:
    """Format the codebase with Ruff."""
    _run(
        [
            ["ruff", "format", "."],
            ["ruff", "check", "--fix", "."],
        ]
    )


def lint() -> None:
    """Check formatting and lint rules without changing files."""
    _run(
        [
            ["ruff", "format", "--check", "."],
            ["ruff", "check", "."],
        ]
    )


def test() -> None:
    """Run the unit tests with pytest."""
    _run([["uv", "run", "pytest", "-q"]])


def clean() -> None:
    """Remove caches and build artifacts."""
    _run(
        [
            ["find", ".", "-type", "d", "-name", "__pycache__", "-exec", "rm", "-rf", "{}", "+"],
            ["find", ".", "-type", "f", "-name", "*.pyc", "-delete"],
            ["rm", "-rf", ".pytest_cache", ".ruff_cache", "dist", "build"],
        ]
    )


TASKS = {
    "fmt": format_code,
    "lint": lint,
    "test": test,
    "clean": clean,
}


if __name__ == "__main__":
    if len(sys.argv) != 2 or sys.argv[1] not in TASKS:
        print(f"Usage: uv run devops.py <{'|'.join(TASKS)}>", file=sys.stderr)
        sys.exit(2)
    TASKS[sys.argv[1]]()
