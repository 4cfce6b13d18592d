from __future__ import annotations

import shutil

import pytest

from site_capture.errors import StagingIOError
from site_capture.staging import StagingArea


def test_create_makes_unique_directories(staging_parent):
    a = StagingArea.create(staging_parent)
    b = StagingArea.create(staging_parent)
    assert a.root != b.root
    assert a.root.is_dir() and b.root.is_dir()
    assert a.root.parent == staging_parent


def test_create_fails_when_parent_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    with pytest.raises(StagingIOError):
        StagingArea.create(blocker)


def test_write_entry_overwrites(staging_parent):
    area = StagingArea.create(staging_parent)
    area.write_entry("a.txt", b"one")
    area.write_entry("a.txt", "two")
    assert (area.root / "a.txt").read_text(encoding="utf-8") == "two"
    assert [p.name for p in area.files()] == ["a.txt"]


@pytest.mark.parametrize("name", ["", ".", "..", "sub/x.txt"])
def test_write_entry_rejects_non_bare_names(staging_parent, name):
    area = StagingArea.create(staging_parent)
    with pytest.raises(StagingIOError):
        area.write_entry(name, b"x")


def test_teardown_is_idempotent(staging_parent):
    area = StagingArea.create(staging_parent)
    area.write_entry("x.bin", b"1")
    area.teardown()
    assert not area.root.exists()
    assert area.torn_down
    area.teardown()
    assert list(staging_parent.iterdir()) == []


def test_teardown_swallows_removal_errors(staging_parent, monkeypatch, caplog):
    area = StagingArea.create(staging_parent)

    def boom(path):
        raise PermissionError("denied")

    monkeypatch.setattr(shutil, "rmtree", boom)
    area.teardown()
    assert "Cleanup failed" in caplog.text


def test_context_manager_tears_down(staging_parent):
    with StagingArea.create(staging_parent) as area:
        area.write_entry("i.html", "<p>")
    assert not area.root.exists()
