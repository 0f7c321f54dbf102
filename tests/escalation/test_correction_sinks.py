"""Tests for correction storage."""

import json
import logging
from pathlib import Path

import pytest

from vintagevision.escalation.requests import ExpertCorrection
from vintagevision.escalation.sinks import CorrectionSink, CorrectionStore, InMemoryCorrectionSink


def correction(field: str, corrected: object = "fixed") -> ExpertCorrection:
    return ExpertCorrection(
        field=field,
        original_value="ai",
        corrected_value=corrected,
        explanation="Hallmark reads differently",
        confidence=0.9,
    )


@pytest.fixture
def store(tmp_path: Path) -> CorrectionStore:
    return CorrectionStore(tmp_path / "nested" / "corrections.json")


class TestSinkProtocol:
    def test_implementations_satisfy_protocol(self, store: CorrectionStore) -> None:
        assert isinstance(InMemoryCorrectionSink(), CorrectionSink)
        assert isinstance(store, CorrectionSink)


class TestCorrectionStore:
    """Tests for the JSON-file store."""

    def test_creates_file(self, store: CorrectionStore) -> None:
        assert store.path.exists()
        assert json.loads(store.path.read_text()) == {"corrections": []}

    def test_record_and_read_back(self, store: CorrectionStore) -> None:
        store.record("exp-1", [correction("maker"), correction("era", 1920)])

        records = store.get_all()

        assert [r.correction.field for r in records] == ["maker", "era"]
        assert records[1].correction.corrected_value == 1920
        assert records[0].request_id == "exp-1"

    def test_append_only(self, store: CorrectionStore) -> None:
        store.record("exp-1", [correction("maker")])
        store.record("exp-2", [correction("maker"), correction("style")])

        assert store.count() == 3
        assert [r.correction.field for r in store.get_by_request("exp-2")] == ["maker", "style"]

    def test_empty_batch_is_noop(self, store: CorrectionStore) -> None:
        store.record("exp-1", [])
        assert store.count() == 0

    def test_field_counts(self, store: CorrectionStore) -> None:
        store.record("exp-1", [correction("maker"), correction("era")])
        store.record("exp-2", [correction("maker")])

        assert store.field_counts() == {"maker": 2, "era": 1}

    def test_corrupt_file_reads_empty(self, store: CorrectionStore) -> None:
        store.path.write_text("{not json")
        assert store.get_all() == []
        assert store.path.read_text() == "{not json"

    def test_record_moves_corrupt_file_aside(
        self, store: CorrectionStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        store.path.write_text('{"corrections": [{"requestId": "exp-0"')

        with caplog.at_level(logging.WARNING, logger="vintagevision.escalation.sinks"):
            store.record("exp-1", [correction("maker")])

        backups = list(store.path.parent.glob("corrections.json.corrupt-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == '{"corrections": [{"requestId": "exp-0"'
        assert [r.request_id for r in store.get_all()] == ["exp-1"]
        assert any(str(backups[0]) in r.getMessage() for r in caplog.records)

    def test_clear(self, store: CorrectionStore) -> None:
        store.record("exp-1", [correction("maker")])
        store.clear()
        assert store.count() == 0

    def test_persists_across_instances(self, store: CorrectionStore) -> None:
        store.record("exp-1", [correction("maker")])
        assert CorrectionStore(store.path).count() == 1


class TestInMemorySink:
    def test_keeps_arrival_order(self) -> None:
        sink = InMemoryCorrectionSink()
        sink.record("a", [correction("maker")])
        sink.record("b", [correction("era"), correction("style")])

        assert [r.request_id for r in sink.records] == ["a", "b", "b"]
        assert [c.field for c in sink.corrections] == ["maker", "era", "style"]
