import re

import pytest

from comchan.core.session import PlotSession, build_frame
from comchan.core.spikes import SpikeDetector

from conftest import FakePort, FakeRenderer


def test_junk_lines_discarded_then_readings_share_one_sample_index() -> None:
    port = FakePort([b"junk\ngarbage\nboot ok\n1,2,3\n"])
    renderer = FakeRenderer(iterations=1)
    session = PlotSession(transport=port, renderer=renderer, max_points=100)

    registry = session.run()

    assert registry.names() == ["Channel 0", "Channel 1", "Channel 2"]
    assert [c.points for c in registry] == [[(0.0, 1.0)], [(0.0, 2.0)], [(0.0, 3.0)]]
    assert session.sample_index == 1.0
    assert session.stop_event.is_set()


def test_redraw_happens_every_iteration_even_without_data() -> None:
    renderer = FakeRenderer(iterations=3)
    session = PlotSession(transport=FakePort(), renderer=renderer)
    session.run()
    assert len(renderer.frames) == 3
    assert renderer.frames[0].series == []
    assert renderer.frames[0].bounds.x_min == 0.0


def test_lines_without_readings_do_not_advance_x() -> None:
    session = PlotSession(transport=FakePort(), renderer=FakeRenderer(0), discard_lines=0)
    session.process_bytes(b"hello\nT:1\n\nT:2\n")
    assert session.registry.get("T").points == [(0.0, 1.0), (1.0, 2.0)]


def test_partial_lines_are_completed_across_reads() -> None:
    port = FakePort([b"T:2", b"5\n"])
    session = PlotSession(transport=port, renderer=FakeRenderer(2), discard_lines=0)
    session.run()
    assert session.registry.get("T").points == [(0.0, 25.0)]


def test_rolling_window_per_channel() -> None:
    session = PlotSession(
        transport=FakePort(), renderer=FakeRenderer(0), max_points=2, discard_lines=0
    )
    session.process_bytes(b"1\n2\n3\n")
    channel = session.registry.get("Value")
    assert channel.points == [(1.0, 2.0), (2.0, 3.0)]
    assert channel.min_y == 1.0


def test_detector_sees_same_sample_index() -> None:
    detector = SpikeDetector(z_threshold=1.9)
    session = PlotSession(
        transport=FakePort([b"1\n2\n3\n4\n100\n"]),
        renderer=FakeRenderer(1),
        discard_lines=0,
        detector=detector,
    )
    registry = session.run()

    assert len(registry.get("Value")) == 5
    (spike,) = detector.spikes
    assert spike.timestamp == 4.0
    assert spike.mean == pytest.approx(22.0)


def test_read_errors_are_logged_and_loop_continues(serial_log, log_stream, serial_error) -> None:
    port = FakePort([serial_error, b"T:1\n"])
    renderer = FakeRenderer(iterations=2)
    session = PlotSession(transport=port, renderer=renderer, discard_lines=0, log=serial_log)

    session.run()

    assert len(renderer.frames) == 2
    assert session.registry.get("T").points == [(0.0, 1.0)]
    entries = log_stream.getvalue().splitlines()
    assert re.fullmatch(r"ERROR \[\d+\.\d{3}\]: Serial read error: .+", entries[0])
    assert re.fullmatch(r"RX \[\d+\.\d{3}\]: T:1", entries[1])


def test_stop_event_ends_loop_before_reading() -> None:
    port = FakePort([b"T:1\n"])
    session = PlotSession(transport=port, renderer=FakeRenderer(10), discard_lines=0)
    session.stop_event.set()
    assert session.step() is False
    assert port.chunks == [b"T:1\n"]


def test_build_frame_carries_colors_and_bounds() -> None:
    session = PlotSession(transport=FakePort(), renderer=FakeRenderer(0), discard_lines=0)
    session.process_bytes(b"A:1\nB:3\n")
    frame = build_frame(session.registry)
    assert [(s.name, s.color_id) for s in frame.series] == [("A", 0), ("B", 1)]
    assert frame.by_name["B"].points == [(1.0, 3.0)]
    assert (frame.bounds.x_min, frame.bounds.x_max) == (0.0, 1.0)


def test_unplugged_port_is_reported_and_loop_keeps_running(serial_log, log_stream) -> None:
    port = FakePort()
    port.in_waiting_error = OSError(5, "Input/output error")
    renderer = FakeRenderer(iterations=3)
    session = PlotSession(transport=port, renderer=renderer, log=serial_log)

    session.run()

    assert len(renderer.frames) == 3
    entries = log_stream.getvalue().splitlines()
    assert len(entries) == 3
    assert all("Input/output error" in entry for entry in entries)
    assert all(entry.startswith("ERROR [") for entry in entries)


def test_build_frame_resolves_palette_colors() -> None:
    session = PlotSession(transport=FakePort(), renderer=FakeRenderer(0), discard_lines=0)
    session.process_bytes(b"A:1\nB:3\n")
    frame = build_frame(session.registry)
    assert [s.color for s in frame.series] == [
        session.registry.color_of(c) for c in session.registry
    ]
    assert frame.series[0].color == "tab:cyan"
