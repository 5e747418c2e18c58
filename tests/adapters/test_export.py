from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from exportables.adapters.export import (
    JsonDirectoryProvider,
    RecordImportError,
    export_record,
    import_record,
    import_records,
)
from exportables.domain.defaults import DefaultsRegistry, collect_defaults
from exportables.domain.model import Status
from tests.helpers.records import WIDGET, make_record

if TYPE_CHECKING:
    from pathlib import Path


def test_export_writes_provenance_and_payload() -> None:
    record = make_record("alpha", status=Status.FIXED, module="core", size=1)

    document = json.loads(export_record(record, WIDGET))

    assert document == {
        "format": 1,
        "type": "widget",
        "name": "alpha",
        "module": "core",
        "fixed": True,
        "payload": {"size": 1},
    }


def test_export_then_import_keeps_content() -> None:
    record = make_record("alpha", status=Status.IN_CODE, module="core", size=1)

    imported = import_record(export_record(record))

    assert imported.name == "alpha"
    assert imported.payload == {"size": 1}
    assert imported.status == Status(0)
    assert imported.id != record.id


def test_import_ignores_unknown_fields_and_reads_fixed_flag() -> None:
    imported = import_record('{"name": "alpha", "fixed": true, "extra": 1}')

    assert imported.status == Status.FIXED
    assert imported.payload == {}


@pytest.mark.parametrize(
    "text",
    [
        '{"payload": {}}',
        '{"name": ""}',
        "not json",
        '{"name": "alpha", "format": 99}',
    ],
)
def test_invalid_documents_are_rejected(text: str) -> None:
    with pytest.raises(RecordImportError):
        import_record(text)


def test_import_records_accepts_lists() -> None:
    records = import_records(b'[{"name": "a"}, {"name": "b", "payload": {"x": 1}}]')

    assert [r.name for r in records] == ["a", "b"]
    assert records[1].payload == {"x": 1}


def test_directory_provider_declares_exported_records(tmp_path: Path) -> None:
    (tmp_path / "10-base.json").write_text(
        json.dumps([{"name": "alpha", "payload": {"v": 1}}, {"name": "beta"}])
    )
    (tmp_path / "20-override.json").write_text(json.dumps({"name": "alpha", "payload": {"v": 2}}))
    (tmp_path / "notes.txt").write_text("ignored")
    registry = DefaultsRegistry()
    registry.register_type(WIDGET)
    registry.register_provider(
        WIDGET.default_hook, JsonDirectoryProvider(tmp_path), module="files"
    )

    declared = collect_defaults(WIDGET, registry)

    assert sorted(declared) == ["alpha", "beta"]
    assert declared["alpha"].payload == {"v": 2}
    assert declared["alpha"].module == "files"


def test_missing_directory_declares_nothing(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    provider = JsonDirectoryProvider(tmp_path / "absent")

    with caplog.at_level(logging.WARNING):
        assert provider() == {}
    assert "does not exist" in caplog.text
