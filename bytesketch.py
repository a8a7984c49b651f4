#!/usr/bin/env python3
"""bytesketch.py

Turn an arbitrary byte string (a hash, a hex digest, any text) into a
deterministic line drawing rendered to SVG.

Every input byte decodes to one pen instruction, and a turtle replays the
instructions on a bounded square canvas. Leaving the canvas snaps the pen back
to the centre and points it away from the edge it crossed.

Run:
  python bytesketch.py render 9f86d081884c7d65 out.svg
  python bytesketch.py decode 9f86d081884c7d65
  python bytesketch.py random out.svg --seed 123
  python bytesketch.py --help
"""

from __future__ import annotations

import argparse
import json
import logging
import multiprocessing as mp
import os
import random
import sys
import time
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union, cast

logger = logging.getLogger(__name__)


# -------------------------
# Errors / Validation
# -------------------------


class ConfigError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_float(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool),
        f"{path} must be a number",
    )
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_bool(x: Any, path: str) -> bool:
    _require(isinstance(x, bool), f"{path} must be a boolean")
    return cast(bool, x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


# -------------------------
# Data model
# -------------------------


class Orientation(Enum):
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"


_LEFT_OF = {
    Orientation.NORTH: Orientation.WEST,
    Orientation.WEST: Orientation.SOUTH,
    Orientation.SOUTH: Orientation.EAST,
    Orientation.EAST: Orientation.NORTH,
}
_RIGHT_OF = {
    Orientation.NORTH: Orientation.EAST,
    Orientation.EAST: Orientation.SOUTH,
    Orientation.SOUTH: Orientation.WEST,
    Orientation.WEST: Orientation.NORTH,
}


@dataclass(frozen=True)
class Advance:
    distance: int


@dataclass(frozen=True)
class TurnLeft:
    pass


@dataclass(frozen=True)
class TurnRight:
    pass


@dataclass(frozen=True)
class Recenter:
    pass


@dataclass(frozen=True)
class Unrecognized:
    byte: int


Operation = Union[Advance, TurnLeft, TurnRight, Recenter, Unrecognized]


class DrawMode(Enum):
    MOVE_TO = "M"
    LINE_TO = "L"


@dataclass(frozen=True)
class PathPoint:
    x: int
    y: int
    mode: DrawMode = DrawMode.LINE_TO


@dataclass(frozen=True)
class CanvasConfig:
    """Canvas bounds. The pen lives on ``0 <= x <= width``, ``0 <= y <= height``."""

    width: int = 400
    height: int = 400

    def __post_init__(self) -> None:
        _as_int(self.width, "canvas.width")
        _as_int(self.height, "canvas.height")
        _require(self.width > 0, "canvas.width must be > 0")
        _require(self.height > 0, "canvas.height must be > 0")

    @property
    def home_x(self) -> int:
        return self.width // 2

    @property
    def home_y(self) -> int:
        return self.height // 2

    @property
    def home(self) -> tuple[int, int]:
        return (self.home_x, self.home_y)

    @property
    def unit(self) -> int:
        # One digit step is a tenth of the canvas height.
        return self.height // 10


DEFAULT_CANVAS = CanvasConfig()


@dataclass(frozen=True)
class SvgStyle:
    stroke: str = "#2f2f2f"
    stroke_width: float = 5.0
    stroke_opacity: float = 0.9
    border_stroke: str = "#cccccc"


@dataclass(frozen=True)
class RenderConfig:
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    style: SvgStyle = field(default_factory=SvgStyle)
    precision: int = 3
    background: str | None = "#ffffff"
    border: bool = True


# -------------------------
# Decoder
# -------------------------

_HOME_BYTE = ord("0")
_LEFT_BYTES = frozenset(b"abc")
_RIGHT_BYTES = frozenset(b"def")


def decode_byte(byte: int, canvas: CanvasConfig = DEFAULT_CANVAS) -> Operation:
    if byte == _HOME_BYTE:
        return Recenter()
    if _HOME_BYTE < byte <= ord("9"):
        return Advance((byte - _HOME_BYTE) * canvas.unit)
    if byte in _LEFT_BYTES:
        return TurnLeft()
    if byte in _RIGHT_BYTES:
        return TurnRight()
    return Unrecognized(byte)


def _as_bytes(data: bytes | bytearray | str) -> bytes:
    if isinstance(data, str):
        # Bytes that were not valid UTF-8 in argv or stdin arrive as lone
        # surrogates; surrogateescape gives the original byte back.
        try:
            return data.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError:
            return data.encode("utf-8", "surrogatepass")
    _require(
        isinstance(data, (bytes, bytearray)),
        f"input must be str or bytes, got {type(data).__name__}",
    )
    return bytes(data)


def _decode_chunk(
    args: tuple[int, bytes, CanvasConfig],
) -> tuple[int, list[Operation]]:
    """Decode one index range (for multiprocessing)."""
    start, chunk, canvas = args
    return start, [decode_byte(b, canvas) for b in chunk]


def decode(
    data: bytes | bytearray | str,
    canvas: CanvasConfig = DEFAULT_CANVAS,
    *,
    workers: int = 1,
    chunk_size: int = 4096,
) -> list[Operation]:
    """Decode every byte of ``data`` to exactly one operation, in input order.

    A ``str`` is decoded as its UTF-8 bytes, with lone surrogates mapped back
    to the raw bytes they stand for. With ``workers > 1`` and input
    longer than ``chunk_size``, ranges of ``chunk_size`` bytes are decoded in a
    process pool. Chunks come back in completion order and are put back in
    index order before returning.
    """
    _require(workers >= 1, "workers must be >= 1")
    _require(chunk_size >= 1, "chunk_size must be >= 1")
    raw = _as_bytes(data)

    if workers == 1 or len(raw) <= chunk_size:
        return [decode_byte(b, canvas) for b in raw]

    args_list = [
        (start, raw[start : start + chunk_size], canvas)
        for start in range(0, len(raw), chunk_size)
    ]

    by_start: dict[int, list[Operation]] = {}
    with mp.Pool(min(workers, len(args_list))) as pool:
        for start, ops in pool.imap_unordered(_decode_chunk, args_list):
            by_start[start] = ops

    operations: list[Operation] = []
    for start in sorted(by_start):
        operations.extend(by_start[start])
    return operations


# -------------------------
# Turtle simulator
# -------------------------


@dataclass
class Pen:
    """The turtle: a position on the canvas and a heading.

    Headings map to axes as follows: NORTH is +y, SOUTH is -y, EAST is -x and
    WEST is +x.
    """

    x: int
    y: int
    heading: Orientation = Orientation.NORTH

    @classmethod
    def at_home(cls, canvas: CanvasConfig = DEFAULT_CANVAS) -> Pen:
        return cls(x=canvas.home_x, y=canvas.home_y, heading=Orientation.NORTH)

    def advance(self, distance: int) -> None:
        if self.heading is Orientation.NORTH:
            self.y += distance
        elif self.heading is Orientation.SOUTH:
            self.y -= distance
        elif self.heading is Orientation.WEST:
            self.x += distance
        else:
            self.x -= distance

    def turn_left(self) -> None:
        self.heading = _LEFT_OF[self.heading]

    def turn_right(self) -> None:
        self.heading = _RIGHT_OF[self.heading]

    def recenter(self, canvas: CanvasConfig = DEFAULT_CANVAS) -> None:
        self.x, self.y = canvas.home

    def wrap(self, canvas: CanvasConfig = DEFAULT_CANVAS) -> None:
        """Pull an out-of-bounds pen back to the centre line.

        x is checked before y, and a y correction overrides the heading set
        by an x correction in the same step. Changing that order changes the
        drawing.
        """
        if self.x < 0:
            self.x = canvas.home_x
            self.heading = Orientation.WEST
        elif self.x > canvas.width:
            self.x = canvas.home_x
            self.heading = Orientation.EAST

        if self.y < 0:
            self.y = canvas.home_y
            self.heading = Orientation.NORTH
        elif self.y > canvas.height:
            self.y = canvas.home_y
            self.heading = Orientation.SOUTH

    def apply(self, op: Operation, canvas: CanvasConfig = DEFAULT_CANVAS) -> None:
        if isinstance(op, Advance):
            self.advance(op.distance)
        elif isinstance(op, TurnLeft):
            self.turn_left()
        elif isinstance(op, TurnRight):
            self.turn_right()
        elif isinstance(op, Recenter):
            self.recenter(canvas)
        elif isinstance(op, Unrecognized):
            logger.warning("illegal byte encountered: %d (0x%02x)", op.byte, op.byte)
        else:
            raise TypeError(f"Expected an Operation, got {type(op).__name__}")


def replay(
    operations: Iterable[Operation],
    canvas: CanvasConfig = DEFAULT_CANVAS,
    points: list[PathPoint] | None = None,
) -> Pen:
    """Fold ``operations`` over a fresh pen and return the final pen.

    When ``points`` is given, one line-to at the wrapped position is appended
    per operation.
    """
    pen = Pen.at_home(canvas)
    for op in operations:
        pen.apply(op, canvas)
        pen.wrap(canvas)
        if points is not None:
            points.append(PathPoint(pen.x, pen.y, DrawMode.LINE_TO))
    return pen


def simulate(
    operations: Iterable[Operation], canvas: CanvasConfig = DEFAULT_CANVAS
) -> list[PathPoint]:
    """Replay ``operations`` in order and return the absolute path.

    The first point is a move to the canvas home; each operation then adds
    exactly one line-to at the pen's wrapped position.
    """
    points = [PathPoint(canvas.home_x, canvas.home_y, DrawMode.MOVE_TO)]
    replay(operations, canvas, points)
    return points


# -------------------------
# SVG writing
# -------------------------


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def _write_text(path: str, text: str) -> None:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _fmt(x: float, precision: int) -> str:
    # Normalise -0.0 so it never produces "-0" in SVG output.
    if not x:
        x = 0.0
    # Strip trailing zeros for nicer SVG.
    s = f"{x:.{precision}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def _xml_char(ch: str) -> str:
    code = ord(ch)
    if code < 0x20:
        return ch if ch in "\t\n\r" else ""
    if 0xD800 <= code <= 0xDFFF or code in (0xFFFE, 0xFFFF):
        return "\ufffd"
    return ch


def _escape(text: str) -> str:
    # XML 1.0 has no encoding for most C0 controls, and lone surrogates
    # cannot be written as UTF-8.
    text = "".join(_xml_char(ch) for ch in text)
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def path_data(points: Sequence[PathPoint]) -> str:
    return " ".join(f"{p.mode.value}{p.x},{p.y}" for p in points)


def build_svg(
    points: Sequence[PathPoint],
    *,
    canvas: CanvasConfig = DEFAULT_CANVAS,
    style: SvgStyle | None = None,
    precision: int = 3,
    background: str | None = "#ffffff",
    border: bool = True,
    title: str | None = None,
) -> str:
    _require(len(points) > 0, "No path points to draw.")
    if style is None:
        style = SvgStyle()

    w, h = canvas.width, canvas.height
    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        "<svg xmlns=\"http://www.w3.org/2000/svg\" version=\"1.1\" "
        f"viewBox=\"0 0 {w} {h}\" width=\"{w}\" height=\"{h}\">"
    )

    if title:
        lines.append(f"  <title>{_escape(title)}</title>")

    if background and background.lower() != "none":
        lines.append(
            f'  <rect x="0" y="0" width="{w}" height="{h}" '
            f'fill="{_escape(background)}" />'
        )

    lines.append(
        f'  <path d="{path_data(points)}" fill="none" '
        f'stroke="{_escape(style.stroke)}" '
        f'stroke-width="{_fmt(style.stroke_width, precision)}" '
        f'stroke-opacity="{_fmt(style.stroke_opacity, precision)}" />'
    )

    if border:
        # Drawn last so the frame covers strokes that touch the edge.
        lines.append(
            f'  <rect x="0" y="0" width="{w}" height="{h}" fill="none" '
            f'fill-opacity="0" stroke="{_escape(style.border_stroke)}" '
            f'stroke-width="{_fmt(3 * style.stroke_width, precision)}" />'
        )

    lines.append("</svg>")
    return "\n".join(lines) + "\n"


def write_svg(
    points: Sequence[PathPoint],
    *,
    out_path: str,
    canvas: CanvasConfig = DEFAULT_CANVAS,
    style: SvgStyle | None = None,
    precision: int = 3,
    background: str | None = "#ffffff",
    border: bool = True,
    title: str | None = None,
) -> None:
    document = build_svg(
        points,
        canvas=canvas,
        style=style,
        precision=precision,
        background=background,
        border=border,
        title=title,
    )
    _write_text(out_path, document)


# -------------------------
# Config parsing
# -------------------------


def parse_config(obj: dict[str, Any]) -> RenderConfig:
    obj = _as_dict(obj, "root")

    canvas_obj = _as_dict(obj.get("canvas", {}), "canvas")
    canvas = CanvasConfig(
        width=_as_int(canvas_obj.get("width", 400), "canvas.width"),
        height=_as_int(canvas_obj.get("height", 400), "canvas.height"),
    )

    svg = _as_dict(obj.get("svg", {}), "svg")
    precision = _as_int(svg.get("precision", 3), "svg.precision")
    _require(0 <= precision <= 10, "svg.precision must be between 0 and 10")
    border = _as_bool(svg.get("border", True), "svg.border")

    background = svg.get("background", "#ffffff")
    if background is not None:
        background = _as_str(background, "svg.background")

    style_obj = _as_dict(svg.get("style", {}), "svg.style")
    stroke_width = _as_float(style_obj.get("stroke_width", 5), "svg.style.stroke_width")
    _require(stroke_width > 0, "svg.style.stroke_width must be > 0")
    stroke_opacity = _as_float(
        style_obj.get("stroke_opacity", 0.9), "svg.style.stroke_opacity"
    )
    _require(
        0 <= stroke_opacity <= 1, "svg.style.stroke_opacity must be between 0 and 1"
    )
    style = SvgStyle(
        stroke=_as_str(style_obj.get("stroke", "#2f2f2f"), "svg.style.stroke"),
        stroke_width=stroke_width,
        stroke_opacity=stroke_opacity,
        border_stroke=_as_str(
            style_obj.get("border_stroke", "#cccccc"), "svg.style.border_stroke"
        ),
    )

    return RenderConfig(
        canvas=canvas,
        style=style,
        precision=precision,
        background=background,
        border=border,
    )


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


# -------------------------
# Random input
# -------------------------

_HEX_DIGITS = "0123456789abcdef"


def random_input(seed: int | None = None, length: int = 64) -> str:
    """Return ``length`` random lowercase hex digits, reproducible by seed."""
    _require(length >= 1, "length must be >= 1")
    rng = random.Random(seed)
    return "".join(rng.choice(_HEX_DIGITS) for _ in range(length))


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
INPUT ALPHABET

Each byte of INPUT is one pen instruction:

  '0'          return the pen to the canvas centre (heading unchanged)
  '1' .. '9'   move forward digit * (canvas height / 10)
  'a' 'b' 'c'  turn left 90 degrees
  'd' 'e' 'f'  turn right 90 degrees
  anything     ignored with a warning; draws a zero-length segment

The pen starts at the centre facing north (+y). Whenever it leaves the
canvas it is put back on the centre line of the axis it left and turned to
face away from that edge.

CONFIG JSON (render --config)

  {
    "canvas": {"width": 400, "height": 400},
    "svg": {
      "precision": 3,
      "background": "#ffffff",      (null or "none" to omit)
      "border": true,
      "style": {
        "stroke": "#2f2f2f",
        "stroke_width": 5,
        "stroke_opacity": 0.9,
        "border_stroke": "#cccccc"
      }
    }
  }

Every key is optional.
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bytesketch.py",
        description="Draw a byte string as a turtle path and save it as SVG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug details."
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only log errors."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser(
        "render",
        help="Render INPUT to an SVG file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pr.add_argument("input", help="The string to draw, or '-' to read stdin.")
    pr.add_argument(
        "output", nargs="?", default=None, help="SVG path (default: INPUT.svg)."
    )
    pr.add_argument("--config", default=None, help="Path to a JSON render config.")
    pr.add_argument(
        "--size", type=int, default=None, help="Square canvas size in units."
    )
    pr.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Processes used to decode large inputs (default: 1).",
    )

    pd = sub.add_parser(
        "decode",
        help="Decode INPUT and print a summary without writing a file.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pd.add_argument("input", help="The string to decode, or '-' to read stdin.")
    pd.add_argument(
        "--size", type=int, default=None, help="Square canvas size in units."
    )

    pg = sub.add_parser(
        "random",
        help="Draw a random hex string.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pg.add_argument("output", help="Where to write the SVG.")
    pg.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )
    pg.add_argument(
        "--length", type=int, default=64, help="Number of hex digits (default: 64)."
    )
    pg.add_argument(
        "--size", type=int, default=None, help="Square canvas size in units."
    )

    return p


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _read_input(text: str) -> str:
    if text == "-":
        raw = sys.stdin.buffer.read().rstrip(b"\n")
        return raw.decode("utf-8", "surrogateescape")
    return text


def _with_size(cfg: RenderConfig, size: int | None) -> RenderConfig:
    if size is None:
        return cfg
    return replace(cfg, canvas=CanvasConfig(width=size, height=size))


# -------------------------
# Commands
# -------------------------


def _render(text: str, output_path: str, cfg: RenderConfig, workers: int) -> None:
    start = time.perf_counter()
    operations = decode(text, cfg.canvas, workers=workers)
    points = simulate(operations, cfg.canvas)
    document = build_svg(
        points,
        canvas=cfg.canvas,
        style=cfg.style,
        precision=cfg.precision,
        background=cfg.background,
        border=cfg.border,
        title=text,
    )
    end = time.perf_counter()
    logger.debug("decoded %d operations into %d points", len(operations), len(points))
    print(f"duration: {end - start:.6f}s")

    _write_text(output_path, document)


def cmd_render(
    input_text: str,
    output_path: str | None,
    *,
    config_path: str | None = None,
    size: int | None = None,
    workers: int = 1,
) -> None:
    text = _read_input(input_text)
    if output_path is None:
        _require(input_text != "-", "an output path is required when reading stdin")
        output_path = f"{text}.svg"

    cfg = parse_config(load_json(config_path)) if config_path else RenderConfig()
    cfg = _with_size(cfg, size)
    _render(text, output_path, cfg, workers)


def cmd_decode(input_text: str, size: int | None = None) -> None:
    text = _read_input(input_text)
    canvas = _with_size(RenderConfig(), size).canvas

    operations = decode(text, canvas)
    kinds = Counter(type(op).__name__ for op in operations)

    pen = replay(operations, canvas)

    print(f"bytes: {len(operations)}")
    print(
        f"canvas: {canvas.width}x{canvas.height} "
        f"home=({canvas.home_x},{canvas.home_y})"
    )
    for name in ("Advance", "TurnLeft", "TurnRight", "Recenter", "Unrecognized"):
        print(f"{name}: {kinds.get(name, 0)}")
    print(f"final pen: ({pen.x},{pen.y}) heading={pen.heading.value}")


def cmd_random(
    output_path: str, seed: int | None, length: int, size: int | None = None
) -> None:
    text = random_input(seed, length)
    print(text)
    _render(text, output_path, _with_size(RenderConfig(), size), workers=1)


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    _configure_logging(args.verbose, args.quiet)

    try:
        if args.cmd == "render":
            cmd_render(
                args.input,
                args.output,
                config_path=args.config,
                size=args.size,
                workers=args.workers,
            )
        elif args.cmd == "decode":
            cmd_decode(args.input, args.size)
        elif args.cmd == "random":
            cmd_random(args.output, args.seed, args.length, args.size)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
