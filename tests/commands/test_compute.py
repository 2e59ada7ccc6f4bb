import asyncio
import tempfile
import unittest
from pathlib import Path

from packmissing.commands.compute import (
    MissingComputer,
    compute_completion,
    find_missing,
    find_nonconforming,
)
from packmissing.errors import CatalogUnavailableError, EmptyBaselineError, UnsupportedEditionError
from packmissing.filters import FilterConfig, FilterSet
from packmissing.progress import PROGRESS_CHANNELS_SETTING, ProgressChannelReconciler
from packmissing.sync import RepositorySynchronizer

from ..test_progress import FailingDisplayService, FakeChannel, FakeDisplayService
from ..test_utils import FakeCatalog, FakeGitRunner, make_packs_payload, texture_paths

PACKS = make_packs_payload(
    ('default', 'Minecraft', {
        'java': ('Faithful-Resource-Pack', 'Default-Java'),
        'bedrock': ('Faithful-Resource-Pack', 'Default-Bedrock'),
    }),
    ('faithful_32x', 'Faithful 32x', {
        'java': ('Faithful-Resource-Pack', 'Faithful-Java-32x'),
        'bedrock': ('Faithful-Resource-Pack', 'Faithful-Bedrock-32x'),
    }),
    ('classic_faithful_32x', 'Classic Faithful 32x', {
        'java': ('ClassicFaithful', '32x-Jappa'),
    }),
)

VERSIONS = {'java': ['1.21', '1.20.6', '1.19.4'], 'bedrock': ['latest']}


class FindMissingTest(unittest.TestCase):
    def test_missing_is_baseline_minus_candidate(self):
        baseline = ["/assets/minecraft/textures/a.png", "/assets/minecraft/textures/b.png"]
        candidate = ["/assets/minecraft/textures/a.png"]

        self.assertEqual(["/assets/minecraft/textures/b.png"], find_missing(baseline, candidate))

    def test_identical_sets_have_nothing_missing(self):
        paths = texture_paths(10)

        self.assertEqual([], find_missing(paths, list(reversed(paths))))

    def test_baseline_order_preserved(self):
        baseline = ["/c.png", "/a.png", "/b.png", "/d.png"]

        self.assertEqual(["/c.png", "/b.png"], find_missing(baseline, ["/d.png", "/a.png"]))

    def test_missing_never_exceeds_baseline(self):
        baseline = texture_paths(5)

        self.assertEqual(baseline, find_missing(baseline, []))
        self.assertEqual(baseline, find_missing(baseline, texture_paths(3, "/elsewhere")))


class FindNonconformingTest(unittest.TestCase):
    def setUp(self):
        self.baseline = ["/assets/minecraft/textures/block/stone.png"]

    def test_candidate_only_paths_in_content_roots(self):
        candidate = self.baseline + [
            "/assets/minecraft/textures/block/extra.png",
            "/assets/realms/textures/extra.png",
            "/textures/blocks/extra.png",
        ]

        self.assertEqual(candidate[1:], find_nonconforming(self.baseline, candidate, FilterSet(frozenset())))

    def test_paths_outside_content_roots_are_never_reported(self):
        candidate = ["/assets/custom/textures/thing.png", "/pack.png", "/assets/minecraft/optifine/sky.png"]

        self.assertEqual([], find_nonconforming(self.baseline, candidate, FilterSet(frozenset())))

    def test_ignored_paths_are_not_reported(self):
        candidate = ["/assets/minecraft/textures/block/ignored.png"]
        filter_set = FilterSet(frozenset({"/assets/minecraft/textures/block/ignored.png"}))

        self.assertEqual([], find_nonconforming(self.baseline, candidate, filter_set))

    def test_sentinel_file_is_never_reported(self):
        candidate = ["/assets/minecraft/textures/painting/huge_chungus.png"]

        self.assertEqual([], find_nonconforming(self.baseline, candidate, FilterSet(frozenset())))

    def test_backslash_paths_match_content_roots(self):
        candidate = ["\\assets\\minecraft\\textures\\block\\extra.png"]

        self.assertEqual(candidate, find_nonconforming(self.baseline, candidate, FilterSet(frozenset())))


class ComputeCompletionTest(unittest.TestCase):
    def test_half_missing(self):
        self.assertEqual(50.0, compute_completion(1, 2))

    def test_nothing_missing(self):
        self.assertEqual(100, compute_completion(0, 10))
        self.assertEqual("100.0", str(compute_completion(0, 10)))

    def test_two_decimals_without_trailing_zeros(self):
        self.assertEqual("87.5", str(compute_completion(1, 8)))
        self.assertEqual(66.67, compute_completion(1, 3))
        self.assertEqual(0.0, compute_completion(7, 7))

    def test_monotonically_decreasing(self):
        values = [compute_completion(missing, 40) for missing in range(41)]

        self.assertEqual(sorted(values, reverse=True), values)
        self.assertTrue(all(0 <= value <= 100 for value in values))
        self.assertTrue(all(round(value, 2) == value for value in values))

    def test_empty_baseline_is_undefined(self):
        with self.assertRaises(ValueError):
            compute_completion(0, 0)


class FakeReconciler:
    def __init__(self):
        self.results = []

    async def reconcile(self, result):
        self.results.append(result)
        return True


class BrokenReconciler:
    async def reconcile(self, result):
        raise RuntimeError("display gone")


class MissingComputerTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name)
        self.runner = FakeGitRunner({
            'Default-Java': [
                "assets/minecraft/textures/block/a.png",
                "assets/minecraft/textures/block/b.png",
                "assets/forge/textures/gui/icon.png",
                "assets/minecraft/textures/font/ascii.png",
                "pack.mcmeta",
            ],
            'Faithful-Java-32x': [
                "assets/minecraft/textures/block/a.png",
                "assets/minecraft/textures/block/extra.png",
                "assets/minecraft/textures/painting/huge_chungus.png",
                "assets/custom/textures/thing.png",
            ],
            'Default-Bedrock': texture_paths(10, "textures/blocks"),
            'Faithful-Bedrock-32x': texture_paths(10, "textures/blocks"),
            '32x-Jappa': [],
        })
        self.catalog = FakeCatalog(PACKS, ['java', 'bedrock'], VERSIONS)
        self.filters = FilterConfig.from_mapping({
            'modded': ['/assets/forge'],
            'java': ['/assets/minecraft/textures/font'],
        })
        self.reconciler = FakeReconciler()
        self.computer = self.make_computer()

    def tearDown(self):
        self._tmpdir.cleanup()

    def make_computer(self, **kwargs):
        return MissingComputer(
            self.catalog,
            RepositorySynchronizer(self.root, self.runner),
            self.filters,
            reconciler=self.reconciler,
            **kwargs)

    def test_half_complete_edition(self):
        result = asyncio.run(self.computer.compute_edition('faithful_32x', 'java', '1.21'))

        self.assertEqual(["/assets/minecraft/textures/block/b.png"], result.missing)
        self.assertEqual(2, result.total)
        self.assertEqual(50.0, result.completion)
        self.assertEqual('1.21', result.version)
        self.assertEqual(b"block/b.png", result.missing_report)
        self.assertEqual(["/assets/minecraft/textures/block/extra.png"], result.nonconforming)
        self.assertEqual(b"block/extra.png", result.nonconforming_report)

    def test_identical_trees_are_complete(self):
        result = asyncio.run(self.computer.compute_edition('faithful_32x', 'bedrock', 'latest'))

        self.assertEqual(100, result.completion)
        self.assertEqual(10, result.total)
        self.assertEqual([], result.missing)
        self.assertIsNone(result.nonconforming_report)

    def test_modded_textures_counted_when_checking_modded_on_java(self):
        result = asyncio.run(self.computer.compute_edition('faithful_32x', 'java', '1.21', check_modded=True))

        self.assertEqual(3, result.total)
        self.assertIn("/assets/forge/textures/gui/icon.png", result.missing)

    def test_unknown_version_falls_back_to_latest_known(self):
        result = asyncio.run(self.computer.compute_edition('faithful_32x', 'java', '1.8.9-typo'))

        self.assertEqual('1.21', result.version)
        self.assertIn(['git', 'checkout', '1.21'], self.runner.commands_for('Faithful-Java-32x'))

    def test_known_version_is_used(self):
        asyncio.run(self.computer.compute_edition('faithful_32x', 'java', '1.20.6'))

        self.assertIn(['git', 'checkout', '1.20.6'], self.runner.commands_for('Default-Java'))
        self.assertIn(['git', 'checkout', '1.20.6'], self.runner.commands_for('Faithful-Java-32x'))

    def test_bedrock_always_uses_latest(self):
        outcomes = asyncio.run(self.computer.compute('faithful_32x', 'bedrock', '1.21'))

        self.assertEqual('latest', outcomes[0].version)
        self.assertIn(['git', 'checkout', 'latest'], self.runner.commands_for('Default-Bedrock'))
        self.assertNotIn('versions/bedrock', self.catalog.requests)

    def test_unsupported_edition_raises(self):
        with self.assertRaises(UnsupportedEditionError) as cm:
            asyncio.run(self.computer.compute_edition('classic_faithful_32x', 'bedrock', 'latest'))

        self.assertIn("Classic Faithful 32x doesn't support Bedrock Edition", str(cm.exception))

    def test_unknown_pack_raises_unsupported_edition(self):
        with self.assertRaises(UnsupportedEditionError):
            asyncio.run(self.computer.compute_edition('no_such_pack', 'java', '1.21'))

    def test_empty_baseline_raises(self):
        computer = self.make_computer(baseline_pack='classic_faithful_32x')

        with self.assertRaises(EmptyBaselineError):
            asyncio.run(computer.compute_edition('faithful_32x', 'java', '1.21'))

    def test_progress_steps(self):
        steps = []

        async def on_progress(step):
            steps.append(step)

        asyncio.run(self.computer.compute_edition('faithful_32x', 'java', '1.21', on_progress=on_progress))

        self.assertIn("Downloading `Minecraft (java)` pack…", steps)
        self.assertIn("Downloading `Faithful 32x (java)` pack…", steps)
        self.assertIn("Updating Faithful 32x (java) with latest version of `1.21` known…", steps)
        self.assertEqual("Searching for differences…", steps[-1])

    def test_single_edition_returns_one_outcome(self):
        outcomes = asyncio.run(self.computer.compute('faithful_32x', 'java', '1.21'))

        self.assertEqual(1, len(outcomes))
        self.assertTrue(outcomes[0].ok)
        self.assertEqual(50.0, outcomes[0].result.completion)

    def test_single_edition_failure_becomes_outcome(self):
        outcomes = asyncio.run(self.computer.compute('classic_faithful_32x', 'bedrock', None))

        self.assertEqual(1, len(outcomes))
        self.assertFalse(outcomes[0].ok)
        self.assertIn('classic_faithful_32x', outcomes[0].error)
        self.assertIn('bedrock', outcomes[0].error)
        self.assertIn('latest', outcomes[0].error)

    def test_all_editions(self):
        outcomes = asyncio.run(self.computer.compute('faithful_32x', 'all', '1.21'))

        self.assertEqual(['java', 'bedrock'], [outcome.edition for outcome in outcomes])
        self.assertEqual([50.0, 100.0], [outcome.result.completion for outcome in outcomes])

    def test_all_editions_isolates_failing_sync(self):
        self.runner.failing.add('Faithful-Java-32x')

        outcomes = asyncio.run(self.computer.compute('faithful_32x', 'all', '1.21'))

        java, bedrock = outcomes
        self.assertFalse(java.ok)
        self.assertIn('faithful_32x', java.error)
        self.assertIn('java', java.error)
        self.assertIn('1.21', java.error)
        self.assertIn('unable to access repository', java.error)
        self.assertTrue(bedrock.ok)
        self.assertEqual(100, bedrock.result.completion)
        self.assertEqual(10, bedrock.result.total)

    def test_all_editions_needs_catalog(self):
        self.catalog.unavailable = True

        with self.assertRaises(CatalogUnavailableError):
            asyncio.run(self.computer.compute('faithful_32x', 'all', '1.21'))

    def test_unexpected_errors_become_outcomes(self):
        async def broken_get_packs():
            raise RuntimeError("unexpected payload")

        self.catalog.get_packs = broken_get_packs

        outcomes = asyncio.run(self.computer.compute('faithful_32x', 'java', '1.21'))

        self.assertFalse(outcomes[0].ok)
        self.assertIn('unexpected payload', outcomes[0].error)

    def test_successful_results_are_reconciled(self):
        self.runner.failing.add('Faithful-Java-32x')

        asyncio.run(self.computer.compute('faithful_32x', 'all', '1.21'))

        self.assertEqual(['bedrock'], [result.edition for result in self.reconciler.results])

    def test_reconciler_failure_keeps_outcomes(self):
        self.reconciler = BrokenReconciler()

        with self.assertLogs('packmissing.commands.compute', level='ERROR'):
            outcomes = asyncio.run(self.make_computer().compute('faithful_32x', 'bedrock', None))

        self.assertEqual(1, len(outcomes))
        self.assertTrue(outcomes[0].ok)

    def test_progress_channel_is_renamed_after_compute(self):
        channel = FakeChannel("bedrock-90.0%")
        self.catalog.settings[PROGRESS_CHANNELS_SETTING] = {'faithful_32x': {'bedrock': '1'}}
        self.reconciler = ProgressChannelReconciler(self.catalog, FakeDisplayService({'1': channel}))

        outcomes = asyncio.run(self.make_computer().compute('faithful_32x', 'bedrock', None))

        self.assertTrue(outcomes[0].ok)
        self.assertEqual(["bedrock-100.0%"], channel.renames)

    def test_failing_display_service_keeps_outcomes(self):
        self.catalog.settings[PROGRESS_CHANNELS_SETTING] = {'faithful_32x': {'bedrock': '1'}}
        self.reconciler = ProgressChannelReconciler(self.catalog, FailingDisplayService())

        outcomes = asyncio.run(self.make_computer().compute('faithful_32x', 'bedrock', None))

        self.assertEqual(1, len(outcomes))
        self.assertTrue(outcomes[0].ok)

    def test_malformed_progress_channels_keep_outcomes(self):
        self.catalog.settings[PROGRESS_CHANNELS_SETTING] = {'faithful_32x': 'oops'}
        self.reconciler = ProgressChannelReconciler(self.catalog, FakeDisplayService({}))

        outcomes = asyncio.run(self.make_computer().compute('faithful_32x', 'all', '1.21'))

        self.assertEqual(['java', 'bedrock'], [outcome.edition for outcome in outcomes])
        self.assertTrue(all(outcome.ok for outcome in outcomes))


if __name__ == '__main__':
    unittest.main()
