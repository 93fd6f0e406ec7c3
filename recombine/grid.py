"""Grid cell states and press/hold/release disambiguation.

Every cell of the physical grid shows one of a small set of states, derived
from the source slot's content and its mute flag:

	EMPTY          slot has no content for the track, muted
	ACTIVE_EMPTY   no content, but this is the track's playing slot
	FILLED         content, muted
	FILLED_SILENT  content, muted, while the track plays another slot
	ACTIVE_FILLED  content, and this is the track's playing slot
	OUT_OF_BOUNDS  beyond the last content track or at/after the recombination region

:class:`HoldTracker` turns raw button down/up events into taps and holds.
A hold fires once the button has been down for ``hold_time`` seconds
(detected when the idle loop polls), and the release that ends a hold must
not also count as a tap.
"""

import enum
import logging
import time
import typing

import recombine.constants

if typing.TYPE_CHECKING:
	from recombine.engine import Engine


logger = logging.getLogger(__name__)


class CellState (enum.Enum):

	EMPTY = "empty"
	ACTIVE_EMPTY = "active_empty"
	FILLED = "filled"
	FILLED_SILENT = "filled_silent"
	ACTIVE_FILLED = "active_filled"
	OUT_OF_BOUNDS = "out_of_bounds"


PALETTE: typing.Dict[CellState, int] = {
	CellState.EMPTY: recombine.constants.PALETTE_EMPTY,
	CellState.ACTIVE_EMPTY: recombine.constants.PALETTE_ACTIVE_EMPTY,
	CellState.FILLED: recombine.constants.PALETTE_FILLED,
	CellState.FILLED_SILENT: recombine.constants.PALETTE_FILLED_SILENT,
	CellState.ACTIVE_FILLED: recombine.constants.PALETTE_ACTIVE_FILLED,
	CellState.OUT_OF_BOUNDS: recombine.constants.PALETTE_OUT_OF_BOUNDS,
}

_CELL_CHARS: typing.Dict[CellState, str] = {
	CellState.EMPTY: ".",
	CellState.ACTIVE_EMPTY: "o",
	CellState.FILLED: "x",
	CellState.FILLED_SILENT: "-",
	CellState.ACTIVE_FILLED: "O",
	CellState.OUT_OF_BOUNDS: " ",
}


def classify_cell (engine: "Engine", track: int, slot: int) -> CellState:

	"""Work out the visual state of one logical (track, slot) position."""

	host = engine.host

	if track > host.content_track_count or slot >= host.slot_count:
		return CellState.OUT_OF_BOUNDS

	muted = host.is_slot_muted(track, slot)
	empty = host.track_is_empty(slot, track)

	if empty:
		return CellState.EMPTY if muted else CellState.ACTIVE_EMPTY

	if not muted:
		return CellState.ACTIVE_FILLED

	if track in engine.poly_counter:
		return CellState.FILLED_SILENT

	return CellState.FILLED


def render (engine: "Engine") -> typing.List[typing.List[CellState]]:

	"""
	Classify every cell of the visible grid.

	Returns a list of columns, each a list of rows: ``cells[column - 1][row - 1]``.
	"""

	viewport = engine.viewport
	cells: typing.List[typing.List[CellState]] = []

	for column in range(1, viewport.grid_width + 1):
		track = column + viewport.x_pos - 1
		cells.append([
			classify_cell(engine, track, row + viewport.y_pos - 1)
			for row in range(1, viewport.grid_height + 1)
		])

	return cells


def format_cells (cells: typing.List[typing.List[CellState]]) -> str:

	"""Render cells as text, one line per grid row (for logs and terminals)."""

	if not cells:
		return ""

	rows = len(cells[0])

	return "\n".join(
		"|" + " ".join(_CELL_CHARS[column[row]] for column in cells) + "|"
		for row in range(rows)
	)


class HoldTracker:

	"""
	Tracks buttons that are down, to tell a tap from a hold.

	Keys are any hashable button identity.  At most one button is
	remembered as *held* at a time: the release that follows a hold is
	swallowed, every other release of a pressed button is a tap.

	Example:
		```python
		tracker = HoldTracker(hold_time=0.5)
		tracker.press(("cell", 1, 2))

		# ...from the idle loop...
		for key in tracker.poll():
			on_hold(key)

		if tracker.release(("cell", 1, 2)):
			on_tap()
		```
	"""

	def __init__ (self, hold_time: float, clock: typing.Optional[typing.Callable[[], float]] = None) -> None:

		self.hold_time = hold_time
		self._clock = clock or time.monotonic
		self._pressed: typing.Dict[typing.Hashable, float] = {}
		self.held: typing.Optional[typing.Hashable] = None

	def press (self, key: typing.Hashable) -> None:

		self._pressed[key] = self._clock()

	def release (self, key: typing.Hashable) -> bool:

		"""Forget the button; return ``True`` if this release is a tap."""

		if self.held == key:
			self.held = None
			self._pressed.pop(key, None)
			return False

		return self._pressed.pop(key, None) is not None

	def poll (self) -> typing.List[typing.Hashable]:

		"""Return the buttons that crossed the hold threshold since the last poll."""

		now = self._clock()
		fired: typing.List[typing.Hashable] = []

		for key, pressed_at in list(self._pressed.items()):
			if now - pressed_at >= self.hold_time:
				del self._pressed[key]
				self.held = key
				fired.append(key)

		return fired

	def reset (self) -> None:

		self._pressed = {}
		self.held = None
