from __future__ import annotations

import io
import zipfile

from site_capture.archive import ArchiveStreamer, StreamOutcome
from site_capture.staging import StagingArea


def _staged(staging_parent) -> StagingArea:
    area = StagingArea.create(staging_parent)
    area.write_entry("index.html", "<html></html>")
    area.write_entry("style.css", "body{}" * 1000)
    area.write_entry("big.bin", bytes(range(256)) * 2048)
    return area


def test_stream_to_writes_flat_zip(staging_parent):
    area = _staged(staging_parent)
    sink = io.BytesIO()
    outcome = ArchiveStreamer(area.root, chunk_size=4096).stream_to(sink)

    assert outcome is StreamOutcome.COMPLETED
    with zipfile.ZipFile(io.BytesIO(sink.getvalue())) as zf:
        assert sorted(zf.namelist()) == ["big.bin", "index.html", "style.css"]
        assert zf.read("big.bin") == bytes(range(256)) * 2048
        assert zf.testzip() is None


def test_iter_chunks_yields_incrementally(staging_parent):
    area = _staged(staging_parent)
    chunks = list(ArchiveStreamer(area.root, chunk_size=1024).iter_chunks())
    assert len(chunks) > 1
    with zipfile.ZipFile(io.BytesIO(b"".join(chunks))) as zf:
        assert zf.read("index.html") == b"<html></html>"


class _BrokenSink:
    def __init__(self) -> None:
        self.writes = 0

    def write(self, data: bytes) -> int:
        self.writes += 1
        raise BrokenPipeError("client went away")


def test_disconnected_sink_is_reported(staging_parent):
    area = _staged(staging_parent)
    sink = _BrokenSink()
    assert ArchiveStreamer(area.root).stream_to(sink) is StreamOutcome.DISCONNECTED
    assert sink.writes == 1


def test_unreadable_entry_reports_failure(staging_parent, monkeypatch):
    area = _staged(staging_parent)
    streamer = ArchiveStreamer(area.root)
    real_entries = streamer._entries

    def vanishing():
        entries = real_entries()
        entries[0].unlink()
        return entries

    monkeypatch.setattr(streamer, "_entries", vanishing)
    assert streamer.stream_to(io.BytesIO()) is StreamOutcome.FAILED


def test_empty_root_gives_empty_archive(staging_parent):
    area = StagingArea.create(staging_parent)
    sink = io.BytesIO()
    assert ArchiveStreamer(area.root).stream_to(sink) is StreamOutcome.COMPLETED
    with zipfile.ZipFile(io.BytesIO(sink.getvalue())) as zf:
        assert zf.namelist() == []


def test_closed_sink_is_reported_as_disconnected(staging_parent):
    area = _staged(staging_parent)
    sink = io.BytesIO()
    sink.close()
    assert ArchiveStreamer(area.root).stream_to(sink) is StreamOutcome.DISCONNECTED
