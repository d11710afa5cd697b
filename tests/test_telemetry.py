"""Tests for click telemetry, interval summaries and the timeline render."""

import asyncio

import pytest
from PIL import Image

from humanclicker.clicker import telemetry
from humanclicker.clicker.analysis import _quantile, click_gaps_ms, summarize_intervals
from humanclicker.clicker.render import _multiplier_to_rgb, save_click_timeline_jpeg
from humanclicker.clicker.telemetry import ClickEvent


def _session(click_recorder):
    click_recorder.events.extend(
        [
            ClickEvent("profile", 0.0, multiplier=1.1),
            ClickEvent("click", 0.1, 10, 10, delay_ms=100.0, multiplier=1.1),
            ClickEvent("click", 0.2, 10, 10, delay_ms=90.0, multiplier=1.1),
            ClickEvent("skip", 0.25, gate="active"),
            ClickEvent("click", 1.2, 10, 10, delay_ms=110.0, multiplier=1.1),
        ]
    )
    click_recorder.skip_counts["active"] = 9
    return click_recorder


class TestClickRecorder:
    def test_repeated_skips_collapse_into_one_event(self, click_recorder):
        for _ in range(5):
            click_recorder.log_skip("active")
        click_recorder.log_skip("cursor")
        click_recorder.log_skip("cursor")
        skips = [e for e in click_recorder.events if e.kind == "skip"]
        assert [e.gate for e in skips] == ["active", "cursor"]
        assert click_recorder.skip_counts == {"active": 5, "cursor": 2}

    def test_click_reopens_skip_run(self, click_recorder):
        click_recorder.log_skip("active")
        click_recorder.log_click(1, 2, 80.0, 1.0)
        click_recorder.log_skip("active")
        assert [e.kind for e in click_recorder.events] == ["skip", "click", "skip"]

    def test_disabled_records_nothing(self, click_recorder):
        click_recorder.enabled = False
        click_recorder.log_click(1, 2, 80.0, 1.0)
        click_recorder.log_skip("app")
        click_recorder.log_profile(1.0)
        click_recorder.log_failure(1, 2)
        assert click_recorder.events == []
        assert click_recorder.skip_counts == {}

    def test_reset(self, click_recorder):
        click_recorder.log_click(1, 2, 80.0, 1.0)
        click_recorder.log_skip("app")
        click_recorder.reset()
        assert click_recorder.events == []
        assert click_recorder.skip_counts == {}


class TestAnalysis:
    def test_quantile(self):
        assert _quantile([], 0.5) == 0.0
        assert _quantile([1.0, 3.0], 0.5) == pytest.approx(2.0)
        assert _quantile([5.0, 1.0, 3.0], 1.0) == 5.0

    def test_gaps(self, click_recorder):
        gaps = click_gaps_ms(_session(click_recorder))
        assert gaps == [pytest.approx(100.0), pytest.approx(1000.0)]

    def test_empty_summary(self, click_recorder):
        assert summarize_intervals(click_recorder) == "No clicks recorded"

    def test_summary_fields(self, click_recorder):
        summary = summarize_intervals(_session(click_recorder))
        assert summary.startswith("clicks=3")
        assert "profiles=1" in summary
        assert "multipliers=1.10" in summary
        assert "skipped cycles: active=9" in summary
        assert "failed" not in summary

    def test_failures_reported(self, click_recorder):
        _session(click_recorder).log_failure(1, 1)
        assert "failed clicks=1" in summarize_intervals(click_recorder)


class TestTimelineRender:
    def test_color_ramp_endpoints(self):
        assert _multiplier_to_rgb(0.85, 0.85, 1.25) == (0, 120, 255)
        assert _multiplier_to_rgb(1.25, 0.85, 1.25) == (255, 60, 60)
        assert _multiplier_to_rgb(5.0, 1.0, 1.0) == (0, 120, 255)

    @pytest.mark.asyncio
    async def test_writes_jpeg(self, click_recorder, tmp_path):
        outfile = tmp_path / "timeline.jpg"
        path = await save_click_timeline_jpeg(
            str(outfile), recorder=_session(click_recorder), width=200, height=100
        )
        assert path == str(outfile)
        with Image.open(outfile) as image:
            assert image.format == "JPEG"
            assert image.size == (200 + 60 + 90, 100 + 60)

    @pytest.mark.asyncio
    async def test_empty_session_still_renders(self, click_recorder, tmp_path):
        outfile = tmp_path / "empty.jpg"
        await save_click_timeline_jpeg(str(outfile), recorder=click_recorder)
        assert outfile.exists()

    @pytest.mark.asyncio
    async def test_callback_receives_path(self, click_recorder, tmp_path):
        received = []

        async def callback(path):
            received.append(path)

        telemetry.set_timeline_callback(callback)
        try:
            await save_click_timeline_jpeg(
                str(tmp_path / "cb.jpg"), recorder=_session(click_recorder)
            )
            await asyncio.sleep(0.01)
        finally:
            telemetry.set_timeline_callback(None)
        assert [p.name for p in received] == ["cb.jpg"]
