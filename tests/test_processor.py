"""Tests for the per-document detection state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from bigfile.document import DETECTED_FLAG, DetectionState, Document
from bigfile.errors import UnresolvedFeatureError
from bigfile.evaluator import RuleEvaluator
from bigfile.features import FeatureRegistry
from bigfile.host import EventKind, LocalHost
from bigfile.processor import DocumentProcessor
from bigfile.registrar import RuleSetRegistrar
from bigfile.rules import Rule, RuleSet
from bigfile.size import SizeProbe

UNIT = 10


@dataclass(eq=False)
class RecordingFeature:
    """Feature that appends its name to a shared log when disabled."""

    name: str
    log: list[str]
    deferred: bool = False
    calls: list[Document] = field(default_factory=list)

    def disable(self, document: Document) -> None:
        self.log.append(self.name)
        self.calls.append(document)


@pytest.fixture
def log() -> list[str]:
    """Shared disable log."""
    return []


@pytest.fixture
def registry(log: list[str]) -> FeatureRegistry:
    """Registry with two immediate and two deferred recording features."""
    return FeatureRegistry(
        [
            RecordingFeature("F1", log),
            RecordingFeature("F2", log, deferred=True),
            RecordingFeature("F3", log),
            RecordingFeature("F4", log, deferred=True),
        ]
    )


@pytest.fixture
def host() -> LocalHost:
    """Create a local host."""
    return LocalHost()


@pytest.fixture
def processor(host: LocalHost, registry: FeatureRegistry) -> DocumentProcessor:
    """Create a processor with 10-byte size units."""
    return DocumentProcessor(host, RuleEvaluator(SizeProbe(unit=UNIT), registry))


def _register(host: LocalHost, processor: DocumentProcessor, *rules: Rule) -> RuleSet:
    ruleset = RuleSet(rules)
    RuleSetRegistrar(host).register(ruleset, processor.on_pre_load)
    return ruleset


def _file(tmp_path: Path, units: int, name: str = "big.txt") -> Path:
    path = tmp_path / name
    path.write_bytes(b"x" * (units * UNIT))
    return path


class TestLoadCycle:
    """End-to-end load cycles through LocalHost."""

    def test_immediate_at_pre_load_deferred_at_post_load(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """F1 disabled before post-load, F2 at post-load, ends DONE."""
        _register(host, processor, Rule(threshold=1, patterns=("*",), feature_names=("F1", "F2")))
        seen_at_post_load: list[list[str]] = []
        host.subscribe(EventKind.POST_LOAD, lambda d: seen_at_post_load.append(list(log)))

        document = host.open(_file(tmp_path, 2))

        assert seen_at_post_load == [["F1"]]
        assert log == ["F1", "F2"]
        assert processor.detection(document).state is DetectionState.DONE

    def test_small_file_untouched(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Below threshold nothing is disabled and the flag is never written."""
        _register(host, processor, Rule(threshold=1, feature_names=("F1", "F2")))

        document = host.open(_file(tmp_path, 0))

        assert log == []
        assert processor.detection(document).state is DetectionState.UNSET
        assert DETECTED_FLAG not in document.variables
        assert host.subscriptions(EventKind.POST_LOAD) == []

    def test_reopen_after_done_is_noop(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Reloading a DONE document disables nothing again."""
        _register(host, processor, Rule(threshold=1, feature_names=("F1", "F2")))
        path = _file(tmp_path, 2)
        document = host.open(path)
        log.clear()

        host.reload(document)
        host.open(path)

        assert log == []
        assert processor.detection(document).done

    def test_unresolved_feature_disables_nothing(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """An unknown name raises before any feature is disabled."""
        _register(host, processor, Rule(threshold=1, feature_names=("F1", "ghost", "F2")))

        with pytest.raises(UnresolvedFeatureError, match="ghost"):
            host.open(_file(tmp_path, 2))

        assert log == []

    def test_unknown_size_never_fires(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Missing files and scratch documents stay UNSET."""
        _register(host, processor, Rule(threshold=0, feature_names=("F1",)))

        missing = host.open(tmp_path / "missing.txt")
        scratch = host.open()
        processor.on_pre_load(scratch, Rule(threshold=0, feature_names=("F1",)))

        assert log == []
        assert processor.detection(missing).state is DetectionState.UNSET
        assert processor.detection(scratch).state is DetectionState.UNSET

    def test_empty_feature_list_never_done(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """A firing rule with no features leaves the document re-evaluable."""
        _register(host, processor, Rule(threshold=1, feature_names=()))

        document = host.open(_file(tmp_path, 2))

        assert log == []
        assert processor.detection(document).state is DetectionState.IN_PROGRESS
        assert not processor.detection(document).done

    def test_pattern_mismatch(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Big files that do not match the pattern are left alone."""
        _register(host, processor, Rule(threshold=1, patterns=("*.log",), feature_names=("F1",)))

        document = host.open(_file(tmp_path, 5, "big.txt"))

        assert log == []
        assert processor.detection(document).state is DetectionState.UNSET


class TestOrderingAndOnce:
    """Tests for ordering and exactly-once disabling."""

    def test_order_within_partitions(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Immediate ones run first in rule order, then deferred in rule order."""
        _register(host, processor, Rule(threshold=1, feature_names=("F4", "F1", "F2", "F3")))

        host.open(_file(tmp_path, 3))

        assert log == ["F1", "F3", "F4", "F2"]

    def test_every_feature_disabled_exactly_once(
        self, host: LocalHost, processor: DocumentProcessor, registry: FeatureRegistry, tmp_path: Path
    ) -> None:
        """Each matched feature is disabled once per cycle, for the right document."""
        _register(host, processor, Rule(threshold=1, feature_names=("F1", "F2", "F3", "F4")))

        document = host.open(_file(tmp_path, 3))

        for feature in registry:
            assert feature.calls == [document]  # type: ignore[attr-defined]

    def test_multiple_patterns_of_one_rule_fire_once(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """A file matching several patterns of one rule is processed once."""
        _register(host, processor, Rule(threshold=1, patterns=("*", "*.txt"), feature_names=("F1", "F2")))

        host.open(_file(tmp_path, 2))

        assert log == ["F1", "F2"]

    def test_rules_evaluated_independently(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Each rule fires on its own threshold; no cross-rule short-circuit."""
        _register(
            host,
            processor,
            Rule(threshold=5, feature_names=("F3",)),
            Rule(threshold=1, feature_names=("F1", "F2")),
        )

        small = host.open(_file(tmp_path, 2, "small.txt"))
        assert log == ["F1", "F2"]
        assert processor.detection(small).done

        log.clear()
        host.open(_file(tmp_path, 6, "huge.txt"))
        assert log == ["F3", "F1", "F2"]

    def test_disabled_features_report(
        self, host: LocalHost, processor: DocumentProcessor, tmp_path: Path
    ) -> None:
        """The processor reports what it disabled, in order."""
        _register(host, processor, Rule(threshold=1, feature_names=("F2", "F1")))

        document = host.open(_file(tmp_path, 2))

        assert [f.name for f in processor.disabled_features(document)] == ["F1", "F2"]


class TestStateMachine:
    """Direct tests of on_pre_load and the post-load continuation."""

    def test_pre_load_sets_in_progress_with_pending_rule(
        self, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Firing writes IN_PROGRESS and disables immediate features only."""
        document = Document(handle=1, path=_file(tmp_path, 2))
        rule = RuleSet([Rule(threshold=1, feature_names=("F1", "F2"))])[0]

        processor.on_pre_load(document, rule)

        detection = processor.detection(document)
        assert detection.state is DetectionState.IN_PROGRESS
        assert detection.pending == {rule.rule_id}
        assert log == ["F1"]

    def test_missing_post_load_leaves_in_progress(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Without post-load deferred features never run and nothing breaks."""
        document = Document(handle=1, path=_file(tmp_path, 2))

        processor.on_pre_load(document, Rule(threshold=1, feature_names=("F1", "F2")))

        assert log == ["F1"]
        assert processor.detection(document).state is DetectionState.IN_PROGRESS

    def test_post_load_fires_after_interrupted_load(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """A pending continuation completes on the next load without re-disabling."""
        document = Document(handle=1, path=_file(tmp_path, 2))
        rule = Rule(threshold=1, feature_names=("F1", "F2"))
        processor.on_pre_load(document, rule)

        processor.on_pre_load(document, rule)
        host.dispatch(EventKind.POST_LOAD, document)

        assert log == ["F1", "F2"]
        assert processor.detection(document).done

    def test_forget_cancels_continuations(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Forgetting a document drops its deferred work."""
        document = Document(handle=1, path=_file(tmp_path, 2))
        processor.on_pre_load(document, Rule(threshold=1, feature_names=("F1", "F2")))

        assert processor.forget(document) == 1
        host.dispatch(EventKind.POST_LOAD, document)

        assert log == ["F1"]
        assert [f.name for f in processor.disabled_features(document)] == ["F1"]

    def test_close_drops_pending_continuations(
        self, host: LocalHost, processor: DocumentProcessor, log: list[str], tmp_path: Path
    ) -> None:
        """Closing documents mid-load leaves no per-document state behind."""
        path = _file(tmp_path, 2)
        for _ in range(3):
            document = host.open(path)
            processor.on_pre_load(document, Rule(threshold=1, feature_names=("F1", "F2")))
            assert len(processor._continuations) == 1

            host.close(document)

            assert processor._continuations == {}
            assert host.subscriptions(EventKind.POST_LOAD) == []

        assert log == ["F1", "F1", "F1"]

    def test_disabled_record_lives_in_detection_flag(
        self, host: LocalHost, processor: DocumentProcessor, tmp_path: Path
    ) -> None:
        """The disabled list is stored on the document, not in the processor."""
        _register(host, processor, Rule(threshold=1, feature_names=("F1", "F2")))

        document = host.open(_file(tmp_path, 2))

        assert [f.name for f in document.variables[DETECTED_FLAG].disabled] == ["F1", "F2"]
        assert not hasattr(processor, "_disabled")

    def test_disable_error_propagates_and_stops_batch(
        self, host: LocalHost, registry: FeatureRegistry, log: list[str], tmp_path: Path
    ) -> None:
        """A failing disable action aborts the rest of its batch."""

        class Broken:
            name = "broken"
            deferred = False

            def disable(self, document: Document) -> None:
                raise RuntimeError("cannot disable")

        registry.register(Broken())
        processor = DocumentProcessor(host, RuleEvaluator(SizeProbe(unit=UNIT), registry))
        document = Document(handle=1, path=_file(tmp_path, 2))

        with pytest.raises(RuntimeError, match="cannot disable"):
            processor.on_pre_load(document, Rule(threshold=1, feature_names=("broken", "F1")))

        assert log == []
