import sys

import numpy as np
import pygame
import pytest

import viewer
from escapetime import Julia, Mandelbrot, Orientation, Viewport, encode


def resolve(*args):
    parser = viewer.build_parser()
    opt = parser.parse_args(list(args))
    return viewer.resolve_render_config(opt, parser)


def test_defaults():
    config = resolve()
    assert config.variant == Mandelbrot(2)
    assert config.viewport == Viewport(-2.5, 1.0, -1.0, 1.0)
    assert config.params.max_iterations == 1000
    assert config.params.escape_radius == 2.0
    assert config.params.orientation is Orientation.BOTTOM_UP
    assert not config.lock_aspect

    opt = viewer.build_parser().parse_args([])
    assert (opt.width, opt.height) == (700, 400)


def test_julia_options():
    config = resolve(
        "--variant", "julia", "--power", "3", "--julia-real", "0.285", "--julia-imag", "0.01",
        "--orientation", "top-down", "--escape-radius", "4", "--max-iterations", "250", "--workers", "2",
    )
    assert config.variant == Julia(3, complex(0.285, 0.01))
    assert config.params.orientation is Orientation.TOP_DOWN
    assert config.params.escape_radius == 4.0
    assert config.params.max_iterations == 250
    assert config.params.workers == 2


@pytest.mark.parametrize(
    "args",
    [
        ("--power", "1"),
        ("--left", "2", "--right", "1"),
        ("--bottom", "1", "--top", "1"),
        ("--max-iterations", "0"),
        ("--escape-radius", "-2"),
        ("--workers", "0"),
        ("--width", "0"),
        ("--orientation", "sideways"),
    ],
)
def test_invalid_options_exit(args):
    with pytest.raises(SystemExit):
        resolve(*args)


def test_lock_aspect_follows_window_shape():
    config = resolve("--lock-aspect")
    view = config.viewport_for(700, 350)
    assert (view.left, view.right) == (-2.5, 1.0)
    assert view.height == pytest.approx(1.75)
    assert resolve().viewport_for(700, 350) == Viewport(-2.5, 1.0, -1.0, 1.0)


@pytest.fixture
def surface():
    window = viewer.WindowSurface(4, 3)
    yield window
    window.close()


def test_buffer_is_reused_until_resize(surface):
    first = surface.acquire_buffer(4, 3)
    assert first.shape == (12,)
    assert first.dtype == np.uint32
    assert surface.acquire_buffer(4, 3) is first
    assert surface.acquire_buffer(5, 3).shape == (15,)


def test_present_lays_out_rows(surface):
    buffer = surface.acquire_buffer(4, 3)
    buffer[:] = [encode(i + 1, 12) for i in range(12)]
    surface.present(buffer)
    for index in range(12):
        x, y = index % 4, index // 4
        level = (index + 1) * 255 // 12
        color = surface.canvas.get_at((x, y))
        assert (color.r, color.g, color.b) == (level, level, level)


def test_redraw_renders_window_sized_frame(surface):
    config = resolve("--max-iterations", "20", "--workers", "1")
    viewer.redraw(surface, config)
    width, height = surface.size
    assert surface.canvas.get_size() == (width, height)
    color = surface.canvas.get_at((0, 0))
    assert color.r == color.g == color.b


def test_present_before_acquire_fails_clearly(surface):
    with pytest.raises(RuntimeError):
        surface.present(np.zeros(12, dtype=np.uint32))


class EmptyWindow:
    size = (0, 0)

    def acquire_buffer(self, width, height):
        raise AssertionError("no buffer should be requested for an empty window")

    def present(self, buffer):
        raise AssertionError("nothing should be presented for an empty window")


def test_redraw_skips_empty_window(monkeypatch):
    calls = []
    monkeypatch.setattr(viewer, "render_frame", lambda *args, **kwargs: calls.append(args))
    viewer.redraw(EmptyWindow(), resolve())
    assert calls == []


def run_main(monkeypatch, events, *args):
    """Run ``viewer.main`` against a scripted event sequence; return the redrawn sizes."""

    queue = iter(events)
    monkeypatch.setattr(viewer.pygame.event, "wait", lambda: next(queue))
    monkeypatch.setattr(sys, "argv", ["viewer", "--max-iterations", "10", "--workers", "1", *args])

    sizes = []
    real_redraw = viewer.redraw

    def recording_redraw(surface, config):
        real_redraw(surface, config)
        sizes.append((surface.size, surface.canvas.get_size()))

    monkeypatch.setattr(viewer, "redraw", recording_redraw)
    viewer.main()
    return sizes


def test_main_stops_on_quit(monkeypatch, capsys):
    sizes = run_main(
        monkeypatch,
        [pygame.event.Event(pygame.QUIT)],
        "--width", "8", "--height", "6",
    )
    assert sizes == [((8, 6), (8, 6))]
    assert "The close button was pressed; stopping" in capsys.readouterr().out


def test_main_redraws_after_resize_and_expose(monkeypatch):
    sizes = run_main(
        monkeypatch,
        [
            pygame.event.Event(pygame.VIDEORESIZE, w=12, h=5, size=(12, 5)),
            pygame.event.Event(pygame.VIDEOEXPOSE),
            pygame.event.Event(pygame.QUIT),
        ],
        "--width", "8", "--height", "6",
    )
    assert sizes == [
        ((8, 6), (8, 6)),
        ((12, 5), (12, 5)),
        ((12, 5), (12, 5)),
    ]


def test_main_ignores_unrelated_events(monkeypatch):
    sizes = run_main(
        monkeypatch,
        [
            pygame.event.Event(pygame.MOUSEMOTION, pos=(1, 1), rel=(0, 0), buttons=(0, 0, 0)),
            pygame.event.Event(pygame.QUIT),
        ],
        "--width", "8", "--height", "6",
    )
    assert len(sizes) == 1
