"""End-to-end tests for the chart pipeline: render, write, notify."""

import stat
import struct

import pytest

from chart_service.chart.request_model import parse_chart_request
from chart_service.errors import ArtifactIOError, EmptySeries, InvalidColor, SchemaError
from chart_service.pipeline import ChartPipeline
from chart_service.transport import LocalArtifactStore, artifact_filename
from conftest import T0, RecordingNotifier, build_payload


@pytest.fixture
def pipeline(tmp_path, notifier):
    return ChartPipeline(LocalArtifactStore(tmp_path), notifier=notifier)


def test_process_writes_png_and_notifies(pipeline, notifier, tmp_path):
    artifact = pipeline.process_payload(build_payload(chat_id=42))

    path = tmp_path / "TEST_1h.png"
    assert artifact.path == str(path)
    assert (artifact.ticker, artifact.timeframe) == ("TEST", "1h")

    data = path.read_bytes()
    assert data.startswith(b'\x89PNG\r\n\x1a\n')
    assert struct.unpack('>II', data[16:24]) == (1280, 960)

    assert len(notifier.calls) == 1
    request, notified = notifier.calls[0]
    assert notified == artifact
    assert request.chat_id == 42


def test_no_temp_files_left_behind(pipeline, tmp_path):
    pipeline.process_payload(build_payload())
    assert [p.name for p in tmp_path.iterdir()] == ["TEST_1h.png"]


def test_empty_series_writes_nothing(pipeline, notifier, tmp_path):
    with pytest.raises(EmptySeries):
        pipeline.process_payload(build_payload(data=[], candle_colors=[]))

    assert list(tmp_path.iterdir()) == []
    assert notifier.calls == []


def test_invalid_overlay_color_aborts_before_writing(pipeline, notifier, tmp_path):
    payload = build_payload(plots={"marks": [{"time": T0, "position": "above", "color": "blue"}]})

    with pytest.raises(InvalidColor):
        pipeline.process_payload(payload)
    assert list(tmp_path.iterdir()) == []
    assert notifier.calls == []


def test_schema_error_for_missing_fields(pipeline):
    payload = build_payload()
    del payload["ticker"]
    with pytest.raises(SchemaError):
        pipeline.process_payload(payload)


def test_distinct_image_filenames_do_not_collide(pipeline, tmp_path):
    first = pipeline.process_payload(build_payload(image_filename="a.png"))
    second = pipeline.process_payload(build_payload(image_filename="b.png"))

    assert first.path != second.path
    assert sorted(p.name for p in tmp_path.iterdir()) == ["a.png", "b.png"]


def test_same_default_filename_last_writer_wins(pipeline, tmp_path):
    pipeline.process_payload(build_payload(title="first"))
    pipeline.process_payload(build_payload(title="second"))
    assert [p.name for p in tmp_path.iterdir()] == ["TEST_1h.png"]


def test_filename_cannot_escape_output_directory(pipeline, tmp_path):
    artifact = pipeline.process_payload(build_payload(image_filename="../escape.png"))
    assert artifact.path == str(tmp_path / "escape.png")


@pytest.mark.parametrize("name", ["....//escape.png", "..././escape.png"])
def test_crafted_filename_is_refused(tmp_path, notifier, name):
    pipeline = ChartPipeline(LocalArtifactStore(tmp_path / "out"), notifier=notifier)

    with pytest.raises(ArtifactIOError):
        pipeline.process_payload(build_payload(image_filename=name))

    assert not (tmp_path / "escape.png").exists()
    assert notifier.calls == []


def test_nested_filename_stays_inside_output_directory(pipeline, tmp_path):
    artifact = pipeline.process_payload(build_payload(image_filename="btc/4h.png"))
    assert artifact.path == str(tmp_path / "btc" / "4h.png")
    assert (tmp_path / "btc" / "4h.png").exists()


def test_written_image_is_world_readable(pipeline, tmp_path):
    pipeline.process_payload(build_payload())
    assert stat.S_IMODE((tmp_path / "TEST_1h.png").stat().st_mode) == 0o644


def test_default_filename_from_ticker_and_timeframe():
    request = parse_chart_request(build_payload(ticker="BTCUSDT", timeframe="4h"))
    assert artifact_filename(request) == "BTCUSDT_4h.png"


def test_unwritable_output_directory(tmp_path, notifier):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("occupied")
    pipeline = ChartPipeline(LocalArtifactStore(blocker / "charts"), notifier=notifier)

    with pytest.raises(ArtifactIOError):
        pipeline.process_payload(build_payload())
    assert notifier.calls == []


def test_notification_failure_keeps_artifact(tmp_path):
    failing = RecordingNotifier(succeed=False)
    pipeline = ChartPipeline(LocalArtifactStore(tmp_path), notifier=failing)

    artifact = pipeline.process_payload(build_payload())

    assert len(failing.calls) == 1
    assert (tmp_path / "TEST_1h.png").exists()
    assert artifact.path.endswith("TEST_1h.png")


def test_notifications_can_be_disabled(tmp_path):
    pipeline = ChartPipeline(LocalArtifactStore(tmp_path), notifier=None)
    artifact = pipeline.process_payload(build_payload())
    assert (tmp_path / "TEST_1h.png").exists()
    assert artifact.ticker == "TEST"


def test_output_directory_is_created(tmp_path):
    target = tmp_path / "nested" / "charts"
    pipeline = ChartPipeline(LocalArtifactStore(target))
    pipeline.process_payload(build_payload())
    assert (target / "TEST_1h.png").exists()


def test_render_returns_png_without_writing(pipeline, tmp_path):
    image = pipeline.render(parse_chart_request(build_payload()))
    assert image.startswith(b'\x89PNG')
    assert list(tmp_path.iterdir()) == []
