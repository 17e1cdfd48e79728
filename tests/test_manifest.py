import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mediaeraser.common.errors import ManifestError
from mediaeraser.common.manifest import DuplicatesManifest, ManifestEntry
from mediaeraser.common.models import DuplicateGroup, DuplicateReport, DuplicateType

def sample_report():
    return DuplicateReport(
        groups=[
            DuplicateGroup([Path("/m/a.jpg"), Path("/m/b.jpg"), Path("/m/c.jpg")], DuplicateType.EXACT),
            DuplicateGroup([Path("/m/x.png"), Path("/m/y.png")], DuplicateType.PERCEPTUAL),
        ],
        total_files=10,
        errors=1,
    )

def test_from_report_keeps_first_file():
    manifest = DuplicatesManifest.from_report(sample_report())

    assert manifest.total_files_scanned == 10
    assert manifest.duplicate_groups == 2
    assert manifest.total_duplicates == 3
    assert manifest.entries[0].original == Path("/m/a.jpg")
    assert manifest.entries[0].duplicates == [Path("/m/b.jpg"), Path("/m/c.jpg")]
    assert manifest.entries[1].duplicate_type is DuplicateType.PERCEPTUAL

def test_save_then_load(tmp_path):
    scanned_at = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)
    manifest = DuplicatesManifest.from_report(sample_report(), scanned_at=scanned_at)
    target = tmp_path / "duplicates.json"

    manifest.save(target)
    loaded = DuplicatesManifest.load(target)

    assert loaded.entries == manifest.entries
    assert loaded.scanned_at == scanned_at
    assert loaded.total_files_scanned == 10
    assert loaded.version == "1.0"

def test_saved_document_layout(tmp_path):
    target = tmp_path / "duplicates.json"
    DuplicatesManifest.from_report(sample_report()).save(target)

    data = json.loads(target.read_text())

    assert set(data) == {"version", "scanned_at", "total_files_scanned",
                         "duplicate_groups", "total_duplicates", "entries"}
    assert data["scanned_at"].endswith("Z")
    assert data["duplicate_groups"] == 2
    assert data["total_duplicates"] == 3
    assert data["entries"][1] == {"original": "/m/x.png", "duplicates": ["/m/y.png"],
                                  "duplicate_type": "perceptual"}
    assert list(tmp_path.iterdir()) == [target]

def test_save_overwrites(tmp_path):
    target = tmp_path / "duplicates.json"
    target.write_text("old")

    DuplicatesManifest().save(target)

    assert json.loads(target.read_text())["entries"] == []

def test_load_missing_file(tmp_path):
    with pytest.raises(ManifestError, match="not found"):
        DuplicatesManifest.load(tmp_path / "duplicates.json")

def test_load_invalid_json(tmp_path):
    target = tmp_path / "duplicates.json"
    target.write_text("{ not json")

    with pytest.raises(ManifestError):
        DuplicatesManifest.load(target)
    assert target.read_text() == "{ not json"

@pytest.mark.parametrize("document", [
    [],
    {"version": "1.0", "scanned_at": "2024-01-01T00:00:00Z", "total_files_scanned": 1},
    {"version": "1.0", "scanned_at": "yesterday", "total_files_scanned": 1, "entries": []},
    {"version": "1.0", "scanned_at": "2024-01-01T00:00:00Z", "total_files_scanned": -1, "entries": []},
    {"version": "1.0", "scanned_at": "2024-01-01T00:00:00Z", "total_files_scanned": 1,
     "entries": [{"original": "/a", "duplicates": "/b", "duplicate_type": "exact"}]},
    {"version": "1.0", "scanned_at": "2024-01-01T00:00:00Z", "total_files_scanned": 1,
     "entries": [{"original": "/a", "duplicates": ["/b"], "duplicate_type": "fuzzy"}]},
])
def test_load_rejects_schema_violations(tmp_path, document):
    target = tmp_path / "duplicates.json"
    target.write_text(json.dumps(document))

    with pytest.raises(ManifestError):
        DuplicatesManifest.load(target)

def test_unknown_version_is_accepted(tmp_path):
    target = tmp_path / "duplicates.json"
    target.write_text(json.dumps({
        "version": "9.9",
        "scanned_at": "2024-01-01T00:00:00Z",
        "total_files_scanned": 2,
        "duplicate_groups": 1,
        "total_duplicates": 1,
        "entries": [{"original": "/a", "duplicates": ["/b"], "duplicate_type": "exact"}],
    }))

    manifest = DuplicatesManifest.load(target)

    assert manifest.version == "9.9"
    assert manifest.entries == [ManifestEntry(Path("/a"), [Path("/b")], DuplicateType.EXACT)]

def test_all_duplicates_flattens_without_repeats():
    manifest = DuplicatesManifest(entries=[
        ManifestEntry(Path("/a"), [Path("/b"), Path("/c")]),
        ManifestEntry(Path("/d"), [Path("/c"), Path("/e")]),
    ])

    assert manifest.all_duplicates() == [Path("/b"), Path("/c"), Path("/e")]
    assert not manifest.is_empty()
    assert DuplicatesManifest().is_empty()
