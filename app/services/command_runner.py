"""
Command Runner - Async subprocess execution for git, gh and package managers.

Every external command the tools invoke goes through run_command so that
timeouts, non-interactive git and error reporting behave the same way.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Captured output of a finished command."""
    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a command exits with a nonzero status."""

    def __init__(self, message: str, result: Optional[CommandResult] = None):
        super().__init__(message)
        self.result = result


class CommandTimeoutError(TimeoutError):
    """Raised when a command exceeds its timeout."""


async def run_command(
    cmd: List[str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
) -> CommandResult:
    """
    Run a command without a shell and capture its output.

    Args:
        cmd: Program and arguments.
        cwd: Working directory.
        timeout: Seconds before the process is killed. Defaults to
            settings.command_timeout_seconds.
        env: Extra environment variables merged over os.environ.
        check: Raise CommandError on a nonzero exit status.

    Returns:
        CommandResult with decoded stdout/stderr.

    Raises:
        CommandTimeoutError: If the timeout expires.
        CommandError: If the program is missing, or exits nonzero with check=True.
    """
    if timeout is None:
        timeout = get_settings().command_timeout_seconds

    command_str = " ".join(cmd)
    run_env = os.environ.copy()
    run_env["GIT_TERMINAL_PROMPT"] = "0"
    if env:
        run_env.update(env)

    logger.debug(f"Running: {command_str}")
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=run_env,
        )
    except FileNotFoundError as e:
        raise CommandError(f"Command not found: {cmd[0]}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(f"Command timed out after {timeout}s: {command_str}")

    result = CommandResult(
        command=command_str,
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )

    if check and not result.ok:
        message = result.stderr.strip() or f"exit status {result.returncode}"
        raise CommandError(message, result)

    return result
