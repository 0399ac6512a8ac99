import os
import sys
import time
from dataclasses import dataclass

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import numpy as np
import pygame
import pygame.surfarray
import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

from escapetime import (
    DEFAULT_ESCAPE_RADIUS,
    DEFAULT_MAX_ITERATIONS,
    FractalVariant,
    Julia,
    Mandelbrot,
    Orientation,
    RenderParameters,
    Viewport,
    render_frame,
)

log("TensorFlow version: %s" % tf.__version__)

# Place the escape-time kernel on the first visible GPU when TensorFlow finds
# one, otherwise fall back to the CPU.
gpus = tf.config.list_physical_devices('GPU')
if gpus:
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
        DEVICE = '/GPU:0'
        log("GPU found, using %s" % gpus[0].name)
    except RuntimeError as e:
        log(e)
        DEVICE = '/CPU:0'
else:
    DEVICE = '/CPU:0'
    log("No GPU found, using CPU")

from argparse import ArgumentParser

WINDOW_CAPTION = "Escape-time fractal"


@dataclass(frozen=True)
class RenderConfig:
    variant: FractalVariant
    viewport: Viewport
    params: RenderParameters
    lock_aspect: bool = False

    def viewport_for(self, width: int, height: int) -> Viewport:
        """Viewport to use for a window of ``width`` x ``height`` pixels."""

        if not self.lock_aspect:
            return self.viewport
        return self.viewport.with_aspect(height / width)


def build_parser():
    parser = ArgumentParser(description="Render a Mandelbrot or Julia set in a resizable window.")

    parser.add_argument('--variant', choices=['mandelbrot', 'julia'], default='mandelbrot',
                        help='fractal family to render')

    parser.add_argument('--power', type=int,
                        dest='power', help='exponent of the recurrence z = z**POWER + c (>= 2)',
                        metavar='POWER', default=2)

    parser.add_argument('--julia-real', type=float,
                        dest='julia_real', help='real part of the Julia constant',
                        metavar='JULIA_REAL', default=-0.8)

    parser.add_argument('--julia-imag', type=float,
                        dest='julia_imag', help='imaginary part of the Julia constant',
                        metavar='JULIA_IMAG', default=0.156)

    parser.add_argument('--left', type=float,
                        dest='left', help='real coordinate of the left edge of the viewport',
                        metavar='LEFT', default=-2.5)

    parser.add_argument('--right', type=float,
                        dest='right', help='real coordinate of the right edge of the viewport',
                        metavar='RIGHT', default=1.0)

    parser.add_argument('--bottom', type=float,
                        dest='bottom', help='imaginary coordinate of the bottom edge of the viewport',
                        metavar='BOTTOM', default=-1.0)

    parser.add_argument('--top', type=float,
                        dest='top', help='imaginary coordinate of the top edge of the viewport',
                        metavar='TOP', default=1.0)

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration budget per pixel',
                        metavar='MAX_ITERATIONS', default=DEFAULT_MAX_ITERATIONS)

    parser.add_argument('--escape-radius', type=float,
                        dest='escape_radius', help='orbit magnitude beyond which a point is considered divergent',
                        metavar='ESCAPE_RADIUS', default=DEFAULT_ESCAPE_RADIUS)

    parser.add_argument('--orientation', choices=[o.value for o in Orientation], default=Orientation.BOTTOM_UP.value,
                        help='"bottom-up" maps the first pixel row to --bottom, "top-down" maps it to --top.')

    parser.add_argument('--width', type=int,
                        dest='width', help='initial window width in pixels',
                        metavar='WIDTH', default=700)

    parser.add_argument('--height', type=int,
                        dest='height', help='initial window height in pixels',
                        metavar='HEIGHT', default=400)

    parser.add_argument('--workers', type=int, default=None,
                        help='number of render threads (default: one per CPU).')

    parser.add_argument('--lock-aspect', action='store_true',
                        help='Recompute --bottom/--top from the window aspect on every redraw to avoid stretching.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def resolve_render_config(opt, parser: ArgumentParser) -> RenderConfig:
    if opt.width <= 0 or opt.height <= 0:
        parser.error(f"Window size must be positive, got {opt.width}x{opt.height}.")

    try:
        if opt.variant == 'julia':
            variant = Julia(power=opt.power, constant=complex(opt.julia_real, opt.julia_imag))
        else:
            variant = Mandelbrot(power=opt.power)
        viewport = Viewport(left=opt.left, right=opt.right, bottom=opt.bottom, top=opt.top)
        params = RenderParameters(
            max_iterations=opt.max_iterations,
            escape_radius=opt.escape_radius,
            orientation=Orientation(opt.orientation),
            workers=opt.workers,
        )
    except ValueError as exc:
        parser.error(str(exc))

    return RenderConfig(
        variant=variant,
        viewport=viewport,
        params=params,
        lock_aspect=bool(opt.lock_aspect),
    )


class WindowSurface:
    """Resizable pygame window that accepts flat 0x00RRGGBB pixel buffers."""

    def __init__(self, width: int, height: int, caption: str = WINDOW_CAPTION) -> None:
        pygame.init()
        self._window = pygame.display.set_mode((width, height), pygame.RESIZABLE)
        pygame.display.set_caption(caption)
        self._pixels: np.ndarray | None = None
        self._canvas: pygame.Surface | None = None

    @property
    def size(self) -> tuple[int, int]:
        return self._window.get_size()

    @property
    def canvas(self) -> pygame.Surface | None:
        return self._canvas

    def resize(self, width: int, height: int) -> None:
        self._window = pygame.display.set_mode((width, height), pygame.RESIZABLE)

    def acquire_buffer(self, width: int, height: int) -> np.ndarray:
        """Return a flat ``uint32`` buffer for a ``width`` x ``height`` frame.

        The buffer and its backing canvas are reused until the size changes.
        """

        if self._canvas is None or self._canvas.get_size() != (width, height):
            self._canvas = pygame.Surface((width, height), 0, 32)
            self._pixels = np.zeros(width * height, dtype=np.uint32)
        return self._pixels

    def present(self, buffer) -> None:
        if self._canvas is None:
            raise RuntimeError("present() needs a frame from acquire_buffer() first.")
        width, height = self._canvas.get_size()
        rows = np.asarray(buffer, dtype=np.uint32).reshape(height, width)
        pygame.surfarray.blit_array(self._canvas, rows.T)
        self._window.blit(self._canvas, (0, 0))
        pygame.display.flip()

    def close(self) -> None:
        pygame.quit()


def redraw(surface: WindowSurface, config: RenderConfig) -> None:
    width, height = surface.size
    if width <= 0 or height <= 0:
        log("Window has no area, skipping redraw")
        return

    buffer = surface.acquire_buffer(width, height)
    viewport = config.viewport_for(width, height)
    started = time.perf_counter()
    render_frame(buffer, width, height, config.variant, viewport, config.params, device=DEVICE)
    log("rendered {0}x{1} in {2:.3f}s".format(width, height, time.perf_counter() - started))
    surface.present(buffer)


def main():
    parser = build_parser()
    opt = parser.parse_args()

    config = resolve_render_config(opt, parser)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    log("variant: %r, viewport: %r" % (config.variant, config.viewport))

    surface = WindowSurface(opt.width, opt.height)
    needs_redraw = True
    try:
        while True:
            if needs_redraw:
                redraw(surface, config)
                needs_redraw = False

            event = pygame.event.wait()
            if event.type == pygame.QUIT:
                print("The close button was pressed; stopping")
                break
            elif event.type == pygame.VIDEORESIZE:
                surface.resize(event.w, event.h)
                needs_redraw = True
            elif event.type == pygame.VIDEOEXPOSE:
                needs_redraw = True
    finally:
        surface.close()


if __name__ == '__main__':
    main()
