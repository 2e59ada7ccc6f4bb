"""Missing-content computation: per-edition diff engine and the edition fan-out around it."""

import asyncio
import logging
from asyncio import TaskGroup

from ..catalog import CatalogClient, PackReference
from ..errors import CatalogUnavailableError, EmptyBaselineError, PackMissingError, UnsupportedEditionError
from ..filters import FilterConfig, FilterSet
from ..progress import ProgressChannelReconciler
from ..report.format import format_report
from ..results import DiffResult, TaskOutcome
from ..sync import ProgressCallback, RepositorySynchronizer
from ..utils.walker import list_files_async

logger = logging.getLogger(__name__)

# Requested edition expanding to every edition known to the catalog
ALL_EDITIONS = 'all'

# Bedrock has no version history worth pinning
BEDROCK_EDITION = 'bedrock'
BEDROCK_VERSION = 'latest'

# Pack-only files are reported as non-conforming only under these roots
CONTENT_ROOTS = ('/assets/minecraft/textures', '/assets/realms', '/textures')

# Never reported as non-conforming
SENTINEL_FILENAME = 'huge_chungus.png'


def find_missing(baseline_paths: list[str], candidate_paths: list[str]) -> list[str]:
    """Baseline paths absent from the candidate, in baseline order."""
    check = set(candidate_paths)
    return [path for path in baseline_paths if path not in check]


def find_nonconforming(baseline_paths: list[str], candidate_paths: list[str], filter_set: FilterSet) -> list[str]:
    """Candidate-only paths that lie inside a recognized content root.

    Paths that are themselves in the ignore list, and the sentinel file, are left out.
    """
    baseline = set(baseline_paths)
    nonconforming = []
    for path in candidate_paths:
        normalized_path = path.replace('\\', '/')
        if not normalized_path.startswith(CONTENT_ROOTS):
            continue
        if path in baseline or path in filter_set or normalized_path.endswith(SENTINEL_FILENAME):
            continue
        nonconforming.append(path)
    return nonconforming


def compute_completion(missing_count: int, total: int) -> float:
    """Percentage of baseline files present, rounded to two decimals (e.g. 87.5, 100.0).

    Raises:
        ValueError: total is not positive, so completion is undefined
    """
    if total <= 0:
        raise ValueError("completion is undefined for an empty baseline")

    return round(100 * (1 - missing_count / total), 2)


async def _no_progress(step: str) -> None:
    pass


class MissingComputer:
    """Computes how complete a pack is compared to the baseline pack.

    Each edition is computed independently: both repositories are synchronized, walked
    with the edition's filter set and compared by relative path. Computations for
    different editions share only the catalog client and the immutable filter config.
    Callers must not run two computations for the same pack and edition at once from
    different processes, since they would share the same local working copies.
    """

    def __init__(
            self,
            catalog: CatalogClient,
            synchronizer: RepositorySynchronizer,
            filters: FilterConfig,
            baseline_pack: str = 'default',
            reconciler: ProgressChannelReconciler | None = None):
        """
        Args:
            catalog: Source of packs, editions and versions
            synchronizer: Keeps the local working copies
            filters: Ignore lists applied to both trees
            baseline_pack: Key of the pack every other pack is compared against
            reconciler: Updates progress displays after successful computations
        """
        self._catalog = catalog
        self._synchronizer = synchronizer
        self._filters = filters
        self._baseline_pack = baseline_pack
        self._reconciler = reconciler

    async def compute(
            self,
            pack: str,
            edition: str,
            version: str | None,
            check_modded: bool = False,
            on_progress: ProgressCallback | None = None) -> list[TaskOutcome]:
        """Compute missing results for a pack, for one edition or all of them.

        Args:
            pack: Pack key
            edition: Edition to compute, or "all"
            version: Requested version; unknown versions fall back to the latest known one
            check_modded: Include modded textures (java only)
            on_progress: Called with a description before each step; may be called concurrently

        Returns:
            One outcome per computed edition, in catalog order for "all"

        Raises:
            CatalogUnavailableError: The edition list for "all" couldn't be fetched
        """
        if edition == ALL_EDITIONS:
            editions = await self._catalog.get_editions()
            logger.info(f"Computing {pack} for editions {', '.join(editions)}")

            # independent repositories per edition, so editions can run in parallel
            async with TaskGroup() as tg:
                tasks = [
                    tg.create_task(self._compute_isolated(pack, e, version, check_modded, on_progress))
                    for e in editions
                ]
            outcomes = [task.result() for task in tasks]
        else:
            outcomes = [await self._compute_isolated(pack, edition, version, check_modded, on_progress)]

        if self._reconciler is not None:
            # a display failure must never cost the caller its outcomes
            reconciled = await asyncio.gather(*(
                self._reconciler.reconcile(outcome.result)
                for outcome in outcomes
                if outcome.result is not None
            ), return_exceptions=True)
            for failure in reconciled:
                if isinstance(failure, BaseException):
                    logger.error(f"Progress display update failed: {failure!r}")

        return outcomes

    async def _compute_isolated(
            self,
            pack: str,
            edition: str,
            version: str | None,
            check_modded: bool,
            on_progress: ProgressCallback | None) -> TaskOutcome:
        """Run compute_edition, turning any failure into an outcome carrying a message."""
        if edition == BEDROCK_EDITION:
            version = BEDROCK_VERSION

        try:
            result = await self.compute_edition(pack, edition, version, check_modded, on_progress)
        except PackMissingError as e:
            logger.warning(f"Computing {pack} ({edition} {version}) failed: {e}")
            message = f"Couldn't compute missing textures for {pack} ({edition} {version}): {e}"
            return TaskOutcome(pack, edition, version, error=message)
        except Exception as e:
            logger.exception(f"Unexpected error computing {pack} ({edition} {version})")
            message = f"An error occurred computing missing textures for {pack} ({edition} {version}).\n\n" \
                      f"Information: {e!r}"
            return TaskOutcome(pack, edition, version, error=message)

        return TaskOutcome(pack, edition, result.version, result=result)

    async def resolve_version(self, edition: str, version: str | None) -> str:
        """Resolve a requested version against the versions known for an edition.

        An unknown version falls back to the most recent known version instead of failing.
        Bedrock always resolves to "latest".
        """
        if edition == BEDROCK_EDITION:
            return BEDROCK_VERSION

        versions = await self._catalog.get_versions(edition)
        if version in versions:
            return version

        if not versions:
            raise CatalogUnavailableError(f"No versions known for {edition}")

        logger.warning(f"Unknown version {version!r} for {edition}, using {versions[0]}")
        return versions[0]

    async def compute_edition(
            self,
            pack: str,
            edition: str,
            version: str | None,
            check_modded: bool = False,
            on_progress: ProgressCallback | None = None) -> DiffResult:
        """Compute missing results for one pack, edition and version.

        Raises:
            UnsupportedEditionError: The pack (or the baseline) has no repository for the edition
            CatalogUnavailableError: Pack or version data couldn't be fetched
            SyncError: A repository couldn't be cloned or updated
            EmptyBaselineError: The filtered baseline tree is empty
        """
        if on_progress is None:
            on_progress = _no_progress

        packs = await self._catalog.get_packs()
        candidate = self._pack_for_edition(packs, pack, edition)
        baseline = self._pack_for_edition(packs, self._baseline_pack, edition)

        version = await self.resolve_version(edition, version)

        # the two repositories are independent, sync them at the same time
        baseline_tree, candidate_tree = await asyncio.gather(
            self._synchronizer.sync(
                baseline.repositories[edition], version, f"{baseline.name} ({edition})", on_progress),
            self._synchronizer.sync(
                candidate.repositories[edition], version, f"{candidate.name} ({edition})", on_progress))

        await on_progress("Searching for differences…")

        filter_set = self._filters.for_edition(edition, check_modded)
        baseline_paths, candidate_paths = await asyncio.gather(
            list_files_async(baseline_tree.path, filter_set),
            list_files_async(candidate_tree.path, filter_set))

        if not baseline_paths:
            raise EmptyBaselineError(edition, baseline_tree.path)

        missing = find_missing(baseline_paths, candidate_paths)
        nonconforming = find_nonconforming(baseline_paths, candidate_paths, filter_set)
        completion = compute_completion(len(missing), len(baseline_paths))

        logger.info(f"{pack} ({edition} {version}): {completion}% complete, "
                    f"{len(missing)} missing, {len(nonconforming)} non-conforming")

        return DiffResult(
            pack=pack,
            edition=edition,
            version=version,
            completion=completion,
            total=len(baseline_paths),
            missing=missing,
            missing_report=format_report(missing),
            nonconforming=nonconforming,
            nonconforming_report=format_report(nonconforming) if nonconforming else None)

    @staticmethod
    def _pack_for_edition(packs: dict[str, PackReference], key: str, edition: str) -> PackReference:
        pack = packs.get(key)
        if pack is None:
            raise UnsupportedEditionError(key, edition)
        if pack.repository_for(edition) is None:
            raise UnsupportedEditionError(pack.name, edition)
        return pack
