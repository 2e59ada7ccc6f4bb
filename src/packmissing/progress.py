"""Best-effort update of progress displays (e.g. a voice channel named "progress-87.5%")."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Mapping

from .catalog import CatalogClient
from .errors import CatalogUnavailableError, DisplayReconciliationError
from .results import DiffResult

logger = logging.getLogger(__name__)

PROGRESS_CHANNELS_SETTING = 'discord.channels.pack_progress'

# Last run of digits and dots in a display name
COMPLETION_PATTERN = re.compile(r'[.\d+]+(?!.*[.\d+])')


class DisplayChannel(ABC):
    """A display entity whose name embeds a completion number."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def rename(self, name: str) -> None:
        ...


class DisplayService(ABC):
    """Resolves channel identifiers to live display entities."""

    @abstractmethod
    async def resolve(self, channel_id: str) -> DisplayChannel | None:
        """Return the channel, or None if it doesn't exist or can't be fetched."""


def update_display_name(name: str, completion: float) -> str | None:
    """Replace the completion number embedded in a display name.

    Returns:
        The new name, or None when the name carries no number or already shows completion

    Examples:
        >>> update_display_name("progress-87.5%", 88.0)
        'progress-88.0%'
        >>> update_display_name("progress-87.5%", 87.5) is None
        True
    """
    match = COMPLETION_PATTERN.search(name)
    value = str(completion)
    if match is None or match.group(0) == value:
        return None

    return name[:match.start()] + value + name[match.end():]


class ProgressChannelReconciler:
    """Keeps progress displays in line with freshly computed completion numbers.

    The pack/edition to channel mapping is read from the catalog setting
    discord.channels.pack_progress, falling back once to a secondary catalog when the
    primary request fails. Packs and editions without a mapped, live channel are skipped.
    Nothing raised here reaches the caller.
    """

    def __init__(self, catalog: CatalogClient, display: DisplayService, fallback_catalog: CatalogClient | None = None):
        self._catalog = catalog
        self._display = display
        self._fallback_catalog = fallback_catalog

    async def reconcile(self, result: DiffResult) -> bool:
        """Update the display for a result's pack and edition.

        Returns:
            True if a rename was issued, False otherwise (including on failure)
        """
        try:
            return await self._reconcile(result)
        except Exception:
            logger.exception(f"Failed to update progress display for {result.pack} ({result.edition})")
            return False

    async def fetch_progress_channels(self) -> Mapping[str, Mapping[str, str]]:
        """Read the pack -> edition -> channel id mapping.

        Raises:
            DisplayReconciliationError: Neither catalog returned a usable mapping
        """
        try:
            channels = await self._catalog.get_setting(PROGRESS_CHANNELS_SETTING)
        except CatalogUnavailableError as e:
            if self._fallback_catalog is None:
                raise DisplayReconciliationError("Progress channel settings unavailable") from e

            logger.warning(f"Primary catalog failed ({e}), reading progress channels from "
                           f"{self._fallback_catalog.base_url}")
            try:
                channels = await self._fallback_catalog.get_setting(PROGRESS_CHANNELS_SETTING)
            except CatalogUnavailableError as fallback_error:
                raise DisplayReconciliationError("Progress channel settings unavailable") from fallback_error

        if not isinstance(channels, dict):
            raise DisplayReconciliationError(f"Malformed progress channel settings: {channels!r}")

        return channels

    async def _reconcile(self, result: DiffResult) -> bool:
        channels = await self.fetch_progress_channels()

        pack_channels = channels.get(result.pack)
        if not isinstance(pack_channels, dict) or not pack_channels.get(result.edition):
            return False

        channel_id = pack_channels[result.edition]
        try:
            channel = await self._display.resolve(channel_id)
        except Exception as e:
            logger.debug(f"Progress channel {channel_id!r} could not be resolved: {e}")
            return False
        if channel is None:
            return False

        current_name = channel.name
        updated_name = update_display_name(current_name, result.completion)
        if updated_name is None:
            return False

        try:
            await channel.rename(updated_name)
        except Exception as e:
            raise DisplayReconciliationError(f"Renaming {current_name!r} to {updated_name!r} failed: {e}") from e

        logger.info(f"Renamed progress display {current_name!r} to {updated_name!r}")
        return True
