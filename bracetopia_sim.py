#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# =============================================================================
# File name: bracetopia_sim.py
# Author: INV 802 / JJW 50
# Date created: 2026-10-19
# Version = "1.0"
# License =  "CC0 1.0"
# Listening = "Trond Kallevåg - Twins of Træna (2025)"
# =============================================================================
""" Grid segregation simulation of endline and newline brace partisans"""
# =============================================================================


from __future__ import annotations
import argparse
import curses
import logging
import re
import signal
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple
import numpy as np
from scipy.ndimage import label
import matplotlib.pyplot as plt
import mplcyberpunk  # noqa: F401  (registers the "cyberpunk" style)

logger = logging.getLogger(__name__)

# -------------------------
# Defaults / parameters
# -------------------------
DIMENSION: int = 15
PREF_STRENGTH: int = 50
VACANCY: int = 20
ENDLINE: int = 60
CYCLE_DELAY: int = 900000  # microseconds
SEED: int = 41

EXIT_SUCCESS: int = 0
EXIT_FAILURE: int = 1

# color map constants
ORANGE_RGB: np.ndarray = np.array([1.0, 0.549, 0.0])
BLUE_RGB: np.ndarray = np.array([0.0, 0.753, 1.0])
VACANT_RGB: np.ndarray = np.array([0.13, 0.12, 0.2])


class Cell(IntEnum):
    """Cell states stored in the grid."""
    VACANT = 0
    ENDLINE = 1
    NEWLINE = 2


CELL_CHARS: Dict[int, str] = {Cell.VACANT: ".", Cell.ENDLINE: "e", Cell.NEWLINE: "n"}

# (row, column) offsets in the order the relocation search tries them:
# up-left, up, up-right, left, right, down-left, down, down-right
NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0), (1, 0),
    (-1, 1), (0, 1), (1, 1),
)


# -------------------------
# Configuration
# -------------------------
class ConfigError(ValueError):
    """Raised when a simulation parameter is out of range."""


# option name -> (diagnostic, lowest, highest)
_LIMITS: Dict[str, Tuple[str, int, Optional[int]]] = {
    "dimension": ("dimension (%d) must be a value in [5...39]", 5, 39),
    "preference_strength": ("preference strength (%d) must be a value in [1...99]", 1, 99),
    "vacancy": ("vacancy (%d) must be a value in [1...99]", 1, 99),
    "endline": ("endline proportion (%d) must be a value in [1...99]", 1, 99),
    "max_cycles": ("count (%d) must be a non-negative integer.", 0, None),
    "cycle_delay": ("cycle delay (%d) must be a positive integer.", 1, None),
}


def check_option(name: str, value: int) -> int:
    """Return value unchanged if it lies inside the limits for option name.

    Raises:
        ConfigError: with the diagnostic printed by the command line.
    """
    message, lowest, highest = _LIMITS[name]
    if value < lowest or (highest is not None and value > highest):
        raise ConfigError(message % value)
    return value


@dataclass(frozen=True)
class SimConfig:
    """Immutable parameters of one simulation run.

    Attributes:
        dimension: width and height of the square grid.
        preference_strength: happiness threshold in percent.
        vacancy: percent of cells left vacant.
        endline: percent of occupied cells holding endline agents.
        cycle_delay: pause between cycles in microseconds.
        max_cycles: last cycle index printed in bounded mode, None for live mode.
        seed: seed of the shuffle generator.
        symmetric_edges: let cells at index 1 see their neighbours at index 0.
    """

    dimension: int = DIMENSION
    preference_strength: int = PREF_STRENGTH
    vacancy: int = VACANCY
    endline: int = ENDLINE
    cycle_delay: int = CYCLE_DELAY
    max_cycles: Optional[int] = None
    seed: int = SEED
    symmetric_edges: bool = False

    def validate(self) -> "SimConfig":
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _LIMITS and value is not None:
                check_option(f.name, value)
        return self

    @property
    def bounded(self) -> bool:
        return self.max_cycles is not None

    def summary(self) -> str:
        return (f"dim: {self.dimension}, %strength of preference: {self.preference_strength}%"
                f", %vacancy: {self.vacancy}%, %end: {self.endline}% ")


# -------------------------
# Random source
# -------------------------
class GlibcRandom:
    """The C library rand() generator as seeded by srand(seed).

    The 31-word state is filled by the Park-Miller LCG, then the additive
    feedback r[i] = r[i-31] + r[i-3] runs 310 rounds before the first output.
    Outputs are r[i] >> 1, so the same seed yields the same grid as the C
    program built against glibc.
    """

    _MODULUS: int = 2147483647

    def __init__(self, seed: int = SEED) -> None:
        if seed == 0:
            seed = 1
        r = [seed]
        for i in range(1, 31):
            r.append((16807 * r[i - 1]) % self._MODULUS)
        for i in range(31, 34):
            r.append(r[i - 31])
        self._state = deque(r, maxlen=34)
        for _ in range(310):
            self._advance()

    def _advance(self) -> int:
        value = (self._state[-31] + self._state[-3]) & 0xFFFFFFFF
        self._state.append(value)
        return value

    def rand(self) -> int:
        return self._advance() >> 1


# -------------------------
# Initialization
# -------------------------
def population_counts(dimension: int, vacancy: int, endline: int) -> Tuple[int, int, int]:
    """Return exact (vacant, endline, newline) cell counts for a grid."""
    cells = dimension * dimension
    num_vacant = (cells * vacancy) // 100
    num_endline = ((cells - num_vacant) * endline) // 100
    return num_vacant, num_endline, cells - num_vacant - num_endline


def initialize_grid(dimension: int = DIMENSION,
                    vacancy: int = VACANCY,
                    endline: int = ENDLINE,
                    rand: Optional[Callable[[], int]] = None) -> np.ndarray:
    """Create a grid with exact category counts at shuffled positions.

    The flat cell list holds vacancies, then endline, then newline agents.
    A Fisher-Yates pass driven by rand() shuffles it before it is laid out
    row by row.

    Args:
        dimension: side length of the grid.
        vacancy: percent of vacant cells.
        endline: percent of occupied cells given to endline agents.
        rand: zero-argument source of non-negative ints, GlibcRandom(SEED) if None.

    Returns:
        np.ndarray: (dimension, dimension) int8 grid of Cell values.
    """
    if rand is None:
        rand = GlibcRandom(SEED).rand
    num_vacant, num_endline, num_newline = population_counts(dimension, vacancy, endline)
    values: List[int] = ([Cell.VACANT] * num_vacant + [Cell.ENDLINE] * num_endline
                         + [Cell.NEWLINE] * num_newline)
    upper = len(values) - 1
    for i in range(len(values) - 1):
        j = rand() % (upper - i + 1) + i
        values[i], values[j] = values[j], values[i]
    logger.info("initialized %dx%d grid: %d vacant, %d endline, %d newline",
                dimension, dimension, num_vacant, num_endline, num_newline)
    return np.array(values, dtype=np.int8).reshape((dimension, dimension))


@dataclass
class SimulationState:
    """Grid and cycle counters owned by one run."""

    config: SimConfig
    grid: np.ndarray
    cycle: int = 0
    moves_this_cycle: int = 0

    @classmethod
    def create(cls, config: SimConfig,
               rand: Optional[Callable[[], int]] = None) -> "SimulationState":
        if rand is None:
            rand = GlibcRandom(config.seed).rand
        grid = initialize_grid(config.dimension, config.vacancy, config.endline, rand=rand)
        return cls(config=config, grid=grid)


# -------------------------
# Happiness & relocation
# -------------------------
def neighbor_positions(x: int, y: int, dimension: int,
                       symmetric_edges: bool = False) -> Iterator[Tuple[int, int]]:
    """Yield in-bounds Moore neighbours of (x, y) in NEIGHBOR_OFFSETS order.

    A shifted axis must land in [lower, dimension). lower is 1 unless
    symmetric_edges is set, so index 0 is never seen from index 1.
    """
    lower = 0 if symmetric_edges else 1
    for dx, dy in NEIGHBOR_OFFSETS:
        nx, ny = x + dx, y + dy
        if (dx == 0 or lower <= nx < dimension) and (dy == 0 or lower <= ny < dimension):
            yield nx, ny


def cell_happiness(grid: np.ndarray, x: int, y: int, symmetric_edges: bool = False) -> float:
    """Fraction of occupied neighbours sharing the kind of cell (x, y).

    Vacant neighbours are ignored. A cell without occupied neighbours is
    fully happy (1.0). Vacant cells may be scored too; every occupied
    neighbour then counts as different.

    Args:
        grid: square grid of Cell values.
        x: row of the cell.
        y: column of the cell.
        symmetric_edges: see neighbor_positions.

    Returns:
        float in [0, 1].
    """
    kind = grid[x, y]
    same = 0
    different = 0
    for nx, ny in neighbor_positions(x, y, grid.shape[0], symmetric_edges):
        other = grid[nx, ny]
        if other == Cell.VACANT:
            continue
        if other == kind:
            same += 1
        else:
            different += 1
    if same + different == 0:
        return 1.0
    return same / (same + different)


def team_happiness(grid: np.ndarray, symmetric_edges: bool = False) -> float:
    """Mean cell_happiness over every cell of the grid, vacancies included."""
    dimension = grid.shape[0]
    total = 0.0
    for x in range(dimension):
        for y in range(dimension):
            total += cell_happiness(grid, x, y, symmetric_edges)
    return total / grid.size


def perform_moves(grid: np.ndarray, preference_strength: int,
                  symmetric_edges: bool = False) -> int:
    """Run one relocation scan over the grid in place.

    Cells are visited row by row. An agent whose happiness is below
    preference_strength percent takes the first vacant neighbour in
    NEIGHBOR_OFFSETS order. Moves are visible to the rest of the scan, and
    an agent that already moved is not visited again.

    Args:
        grid: square grid of Cell values, mutated in place.
        preference_strength: happiness threshold in percent.
        symmetric_edges: see neighbor_positions.

    Returns:
        int: number of agents moved.
    """
    dimension = grid.shape[0]
    threshold = preference_strength / 100.0
    moved = np.zeros(grid.shape, dtype=bool)
    moves = 0
    for x in range(dimension):
        for y in range(dimension):
            if grid[x, y] == Cell.VACANT or moved[x, y]:
                continue
            if cell_happiness(grid, x, y, symmetric_edges) >= threshold:
                continue
            for nx, ny in neighbor_positions(x, y, dimension, symmetric_edges):
                if grid[nx, ny] == Cell.VACANT:
                    grid[nx, ny] = grid[x, y]
                    grid[x, y] = Cell.VACANT
                    moved[nx, ny] = True
                    moves += 1
                    break
    return moves


def count_clusters(grid: np.ndarray) -> int:
    """Count 8-connected groups of same-kind agents.

    Fewer clusters for the same population means a more segregated grid.
    """
    struct = np.ones((3, 3), dtype=int)
    total = 0
    for kind in (Cell.ENDLINE, Cell.NEWLINE):
        mask = grid == kind
        if mask.any():
            _, ncomp = label(mask, structure=struct)
            total += ncomp
    return total


# -------------------------
# Cycle driver
# -------------------------
def format_frame(state: SimulationState) -> str:
    """Render the grid and the four metric lines as one text frame."""
    config = state.config
    rows = ["".join(CELL_CHARS[int(c)] for c in row) for row in state.grid]
    happiness = team_happiness(state.grid, config.symmetric_edges)
    lines = rows + [
        f"cycle: {state.cycle} ",
        f"moves this cycle: {state.moves_this_cycle} ",
        f"teams' \"happiness\": {happiness:f} ",
        config.summary(),
    ]
    frame = "\n".join(lines) + "\n"
    if not config.bounded:
        frame += "Use Control-C to quit."
    return frame


def run_cycles(state: SimulationState,
               render: Callable[[str], None],
               sleep: Optional[Callable[[float], object]] = None,
               stop_event: Optional[threading.Event] = None) -> int:
    """Alternate render and relocation passes until the run is over.

    Every pass renders the current frame, performs one scan, advances the
    cycle counter and pauses. A bounded run stops once the counter passes
    max_cycles; a live run stops only when stop_event is set. A grid where
    nobody moves keeps cycling.

    Args:
        state: simulation state, mutated in place.
        render: callable receiving each text frame.
        sleep: pause function taking seconds, stop_event.wait if None.
        stop_event: cancellation token checked between passes.

    Returns:
        int: the final cycle index.
    """
    if stop_event is None:
        stop_event = threading.Event()
    if sleep is None:
        sleep = stop_event.wait
    config = state.config
    delay = config.cycle_delay / 1_000_000
    while not stop_event.is_set():
        render(format_frame(state))
        state.moves_this_cycle = perform_moves(state.grid, config.preference_strength,
                                               config.symmetric_edges)
        state.cycle += 1
        logger.debug("cycle %d done, %d moves", state.cycle, state.moves_this_cycle)
        sleep(delay)
        if config.bounded and state.cycle > config.max_cycles:
            break
    return state.cycle


# -------------------------
# Render collaborators
# -------------------------
def print_frame(frame: str) -> None:
    """Print a frame linearly (bounded mode)."""
    print(frame, end="", flush=True)


class CursesScreen:
    """Redraw frames in place at the screen origin (live mode)."""

    def __init__(self, stdscr: "curses.window") -> None:
        self.stdscr = stdscr
        rows, cols = stdscr.getmaxyx()
        stdscr.move(rows - 1, cols // 4)
        stdscr.refresh()

    def __call__(self, frame: str) -> None:
        self.stdscr.move(0, 0)
        try:
            self.stdscr.addstr(frame)
        except curses.error:
            # frame taller or wider than the terminal, keep what fits
            pass
        self.stdscr.refresh()


def save_snapshot(grid: np.ndarray, path: str, title: Optional[str] = None) -> None:
    """Save the grid as an image in the cyberpunk style.

    Args:
        grid: square grid of Cell values.
        path: output image file.
        title: optional caption drawn above the grid.
    """
    rgb = np.zeros(grid.shape + (3,), dtype=float)
    rgb[grid == Cell.VACANT] = VACANT_RGB
    rgb[grid == Cell.ENDLINE] = ORANGE_RGB
    rgb[grid == Cell.NEWLINE] = BLUE_RGB
    with plt.style.context("cyberpunk"):
        fig, ax = plt.subplots(figsize=(6, 6))
        ax.imshow(rgb, interpolation="nearest")
        ax.axis('off')
        if title:
            ax.text(0.02, 1.02, title, transform=ax.transAxes)
        fig.savefig(path, bbox_inches="tight")
        plt.close(fig)
    logger.info("saved snapshot to %s", path)


# -------------------------
# CLI
# -------------------------
USAGE: str = "usage:\nbracetopia [-h] [-t N] [-c N] [-d dim] [-s %str] [-v %vac] [-e %end]\n"

HELP_TEXT: str = (
    "usage:\nbracetopia [-h][-t N] [-c N] [-d dim][-s %str] [-v %vac] [-e %end]\n"
    "Option      Default   Example   Description\n"
    "'-h'        NA        -h        print this usage message.\n"
    "'-t N'      900000    -t 5000   microseconds cycle delay.\n"
    "'-c N'      NA        -c4       count cycle maximum value.\n"
    "'-d dim'    15        -d 7      width and height dimension.\n"
    "'-s %str'  50        -s 30     strength of preference.\n"
    "'-v %vac'  20        -v30      percent vacancies.\n"
    "'-e %endl' 60        -e75      percent Endline braces. Others want Newline.\n"
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def print_usage_message() -> None:
    sys.stderr.write(USAGE)


def parse_int(text: str) -> int:
    """Read the leading integer of text like C strtol, 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class _BracetopiaParser(argparse.ArgumentParser):
    """ArgumentParser that walks options the way getopt does.

    Options are handled left to right and the first unknown one stops the
    parse, so an earlier out-of-range value still wins over a later bad flag.
    Operands are ignored, as getopt permutes them to the end.
    """

    def _takes_value(self, option: str) -> bool:
        return self._option_string_actions[option].nargs != 0

    def _scan_options(self, args: Sequence[str]) -> Tuple[List[str], Optional[str]]:
        """Split args into option tokens and the first unknown-option message."""
        kept: List[str] = []
        operands: List[str] = []
        tokens = iter(args)
        for token in tokens:
            if token == "--":
                operands.extend(tokens)
                break
            if token.startswith("--"):
                name = token.split("=", 1)[0]
                matches = [o for o in self._option_string_actions
                           if o.startswith("--") and o.startswith(name)]
                if not matches:
                    return kept, f"unrecognized option '{name}'"
                kept.append(token)
                if len(matches) == 1 and "=" not in token and self._takes_value(matches[0]):
                    value = next(tokens, None)
                    if value is not None:
                        kept.append(value)
                continue
            if not token.startswith("-") or token == "-":
                operands.append(token)
                continue
            for pos, char in enumerate(token[1:], start=1):
                option = "-" + char
                if option not in self._option_string_actions:
                    return kept, f"invalid option -- '{char}'"
                if self._takes_value(option):
                    kept.append(token)
                    if pos == len(token) - 1:
                        value = next(tokens, None)
                        if value is not None:
                            kept.append(value)
                    break
            else:
                kept.append(token)
        if operands:
            logger.debug("ignoring operands %s", operands)
        return kept, None

    def parse_known_args(self, args=None, namespace=None):
        if args is None:
            args = sys.argv[1:]
        kept, unknown = self._scan_options(list(args))
        if unknown is not None:
            super().parse_known_args(kept, namespace)
            self.error(unknown)
        return super().parse_known_args(kept, namespace)

    def error(self, message: str) -> None:
        sys.stderr.write(f"{self.prog}: {message}\n")
        print_usage_message()
        self.exit(EXIT_FAILURE)


class _HelpAction(argparse.Action):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs) -> None:
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        sys.stderr.write(HELP_TEXT)
        parser.exit(EXIT_SUCCESS)


class _CheckedIntAction(argparse.Action):
    """Store a strtol-read value, failing on the first out-of-range option."""

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        setattr(namespace, self.dest, check_option(self.dest, parse_int(values)))


class _DelayAction(argparse.Action):
    """Store the cycle delay only when it is positive."""

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        value = parse_int(values)
        if value > 0:
            setattr(namespace, self.dest, value)


def build_parser() -> argparse.ArgumentParser:
    parser = _BracetopiaParser(prog="bracetopia", add_help=False)
    parser.add_argument("-h", action=_HelpAction, help="print the usage message")
    parser.add_argument("-t", dest="cycle_delay", action=_DelayAction,
                        default=CYCLE_DELAY, help="microseconds cycle delay")
    parser.add_argument("-c", dest="max_cycles", action=_CheckedIntAction,
                        default=None, help="count cycle maximum value (print mode)")
    parser.add_argument("-d", dest="dimension", action=_CheckedIntAction,
                        default=DIMENSION, help="width and height dimension")
    parser.add_argument("-s", dest="preference_strength", action=_CheckedIntAction,
                        default=PREF_STRENGTH, help="strength of preference")
    parser.add_argument("-v", dest="vacancy", action=_CheckedIntAction,
                        default=VACANCY, help="percent vacancies")
    parser.add_argument("-e", dest="endline", action=_CheckedIntAction,
                        default=ENDLINE, help="percent endline braces")

    parser.add_argument("--snapshot", default=None,
                        help="save an image of the final grid (print mode)")
    parser.add_argument("--symmetric-edges", action="store_true",
                        help="let cells at index 1 see their neighbours at index 0")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="logging level on stderr")
    return parser


def _run_live(state: SimulationState) -> None:
    """Run until SIGINT or SIGTERM, redrawing frames with curses."""
    stop_event = threading.Event()

    def request_stop(signum: int, frame: object) -> None:
        logger.info("received signal %d, stopping", signum)
        stop_event.set()

    previous = {sig: signal.signal(sig, request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        curses.wrapper(lambda stdscr: run_cycles(state, CursesScreen(stdscr),
                                                 stop_event=stop_event))
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run the simulation and return the exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except ConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        print_usage_message()
        return EXIT_FAILURE + 1

    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = SimConfig(
        dimension=args.dimension,
        preference_strength=args.preference_strength,
        vacancy=args.vacancy,
        endline=args.endline,
        cycle_delay=args.cycle_delay,
        max_cycles=args.max_cycles,
        symmetric_edges=args.symmetric_edges,
    ).validate()
    state = SimulationState.create(config)

    if config.bounded:
        started = time.perf_counter()
        run_cycles(state, print_frame)
        logger.info("finished %d cycles in %.2fs", state.cycle, time.perf_counter() - started)
        if args.snapshot:
            title = (f"cycle {state.cycle} "
                     f"happiness={team_happiness(state.grid, config.symmetric_edges):.3f} "
                     f"clusters={count_clusters(state.grid)}")
            save_snapshot(state.grid, args.snapshot, title=title)
    else:
        _run_live(state)
    return EXIT_SUCCESS


def parse_and_run() -> None:
    """Console entry point."""
    sys.exit(main())


if __name__ == "__main__":
    parse_and_run()
