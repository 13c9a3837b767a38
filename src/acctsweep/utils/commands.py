"""Command execution utilities for host administration."""
from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)


class CommandExecutionError(RuntimeError):
    """Raised when a command cannot be executed or exits with error."""

    def __init__(
        self,
        command: Sequence[str],
        stdout: str,
        stderr: str,
        returncode: int,
    ) -> None:
        super().__init__(
            f"Command '{' '.join(command)}' failed with code {returncode}: {stderr.strip()}"
        )
        self.command = list(command)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


@dataclass
class CommandResult:
    """Container for command outputs."""

    stdout: str
    stderr: str
    returncode: int
    elapsed_time: float = 0.0
    command: Sequence[str] = field(default_factory=list)


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in command)


def run_command(
    command: Sequence[str],
    *,
    timeout: float | None = None,
    check: bool = False,
    ok_codes: Iterable[int] = (0,),
) -> CommandResult:
    """Execute a system command.

    Calls block until the command exits; there is no timeout unless one is
    given explicitly.

    Args:
        command: Command with arguments.
        timeout: Timeout in seconds, or None to wait indefinitely.
        check: Raise CommandExecutionError when the exit code is not in ok_codes.
        ok_codes: Exit codes treated as success when check=True.

    Returns:
        CommandResult with stdout, stderr, return code, and timing.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds an explicit timeout.
        FileNotFoundError: If the command cannot be located.
        CommandExecutionError: When check=True and the command fails.
    """
    if not command:
        raise ValueError("Command cannot be empty")

    cmd_str = format_command(command)
    start_time = time.perf_counter()
    logger.debug("Running command: %s", cmd_str)
    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.error("Command timed out after %ss: %s", timeout, cmd_str)
        raise
    except FileNotFoundError:
        logger.error("Command not found: %s", command[0])
        raise

    result = CommandResult(
        stdout=completed.stdout.strip(),
        stderr=completed.stderr.strip(),
        returncode=completed.returncode,
        elapsed_time=time.perf_counter() - start_time,
        command=list(command),
    )
    logger.debug("Command finished in %.2fs: %s", result.elapsed_time, cmd_str)

    if check and completed.returncode not in tuple(ok_codes):
        logger.warning(
            "Command exited with non-zero code %s: %s", completed.returncode, cmd_str
        )
        raise CommandExecutionError(command, result.stdout, result.stderr, completed.returncode)

    return result


def which(executable: str) -> str | None:
    """Return full path for executable if available."""

    if not executable:
        raise ValueError("Executable name cannot be empty")
    path = shutil.which(executable)
    if path:
        logger.debug("Found executable %s at %s", executable, path)
    else:
        logger.debug("Executable %s not found", executable)
    return path


def run_first_available(
    commands: Iterable[Sequence[str]],
    *,
    timeout: float | None = None,
    check: bool = False,
) -> CommandResult:
    """Run the first command that exists in the system."""

    for cmd in commands:
        if which(cmd[0]):
            return run_command(cmd, timeout=timeout, check=check)
    raise FileNotFoundError("No runnable command found in provided list")
