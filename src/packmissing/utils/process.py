import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Iterable

from ..errors import SyncError

logger = logging.getLogger(__name__)

# (command, cwd) -> captured stdout
CommandRunner = Callable[[list[str], Path], Awaitable[str]]


async def run_command(command: list[str], cwd: Path) -> str:
    """Run a command in a directory and return its standard output.

    Raises:
        SyncError: The process could not be started or exited with a nonzero status
    """
    logger.debug(f"Running {' '.join(command)} in {cwd}")

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, 'GIT_TERMINAL_PROMPT': '0'})
    except OSError as e:
        raise SyncError(command, None, str(e)) from e

    stdout, stderr = await process.communicate()
    output = stdout.decode(errors='replace')
    if output:
        logger.debug(output.rstrip())

    if process.returncode != 0:
        raise SyncError(command, process.returncode, stderr.decode(errors='replace'))

    return output


async def run_series(commands: Iterable[list[str]], cwd: Path, runner: CommandRunner = run_command) -> list[str]:
    """Run commands one after another, stopping at the first failure."""
    outputs = []
    for command in commands:
        outputs.append(await runner(command, cwd))
    return outputs
