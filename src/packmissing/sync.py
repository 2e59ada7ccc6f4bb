import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple

from .catalog import RepositoryCoordinates
from .utils.keyed_lock import KeyedLock
from .utils.process import CommandRunner, run_command, run_series

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Awaitable[None]]


class SyncedTree(NamedTuple):
    """A local working copy checked out at a version."""
    path: Path
    version: str


def update_commands(version: str) -> list[list[str]]:
    """Commands bringing an existing working copy to the latest state of version, in order."""
    return [
        ['git', 'stash'],
        ['git', 'remote', 'update'],
        ['git', 'fetch'],
        ['git', 'checkout', version],
        ['git', 'pull'],
    ]


class RepositorySynchronizer:
    """Keeps local clones of pack repositories under a root directory.

    Each repository gets its own directory named after the repository. Updates to one
    working copy are serialized; different working copies are synchronized concurrently.
    Overlapping synchronizations from separate processes are not guarded against.
    """

    def __init__(self, root: str | os.PathLike, runner: CommandRunner = run_command):
        """
        Args:
            root: Directory holding the local clones
            runner: Coroutine function running one command in a directory
        """
        self._root = Path(root)
        self._runner = runner
        self._keyed_lock = KeyedLock()

    @property
    def root(self) -> Path:
        return self._root

    def local_path(self, coordinates: RepositoryCoordinates) -> Path:
        return self._root / coordinates.repo

    async def sync(
            self,
            coordinates: RepositoryCoordinates,
            version: str,
            label: str | None = None,
            on_progress: ProgressCallback | None = None) -> SyncedTree:
        """Clone the repository if needed and check it out at the latest state of version.

        Args:
            coordinates: Repository to synchronize
            version: Branch or tag to check out
            label: Human-readable name used in progress messages (defaults to the repository name)
            on_progress: Called with a step description before cloning and before updating

        Returns:
            The local working copy

        Raises:
            SyncError: A git command failed; the remaining steps are not run
        """
        cwd = self.local_path(coordinates)
        label = label or coordinates.repo

        async with self._keyed_lock.lock(cwd):
            if not (cwd / '.git').exists():
                if on_progress is not None:
                    await on_progress(f"Downloading `{label}` pack…")
                logger.info(f"Cloning {coordinates.url} into {cwd}")
                cwd.mkdir(parents=True, exist_ok=True)
                await self._runner(['git', 'clone', coordinates.url, '.'], cwd)

            if on_progress is not None:
                await on_progress(f"Updating {label} with latest version of `{version}` known…")
            logger.info(f"Updating {cwd} to {version}")
            await run_series(update_commands(version), cwd, self._runner)

        logger.info(f"Synchronized {coordinates.org}/{coordinates.repo} at {version}")
        return SyncedTree(cwd, version)
