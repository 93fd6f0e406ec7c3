"""MIDI grid controller adapter.

Connects a Launchpad-style grid controller to the engine.  The device is
expected in *programmer mode*, where the 8x8 pads send notes laid out as
``10 * row_from_bottom + column`` (bottom-left pad is note 11, top-right is
88) and the arrow buttons along the top send control changes 91-94.

Incoming messages arrive on mido's callback thread.  They are queued and
only handed to the engine from :meth:`GridController.drain`, which the run
loop calls on the engine's thread, so the engine itself stays
single-threaded.

Outgoing LED updates follow the engine's repaint events: each cell's state
is sent as a ``note_on`` whose velocity picks a colour from the device
palette.  Only cells whose colour changed are sent.
"""

import logging
import queue
import typing

import mido

import recombine.constants
import recombine.engine
import recombine.grid
import recombine.viewport


logger = logging.getLogger(__name__)


# Launchpad Mini MK3: switch to programmer mode
PROGRAMMER_MODE_SYSEX = (0x00, 0x20, 0x29, 0x02, 0x0D, 0x0E, 0x01)

# Arrow buttons on the top row: (axis, forward)
NAVIGATION_CONTROLS: typing.Dict[int, typing.Tuple[recombine.viewport.Axis, bool]] = {
	91: (recombine.viewport.Axis.VERTICAL, False),
	92: (recombine.viewport.Axis.VERTICAL, True),
	93: (recombine.viewport.Axis.HORIZONTAL, False),
	94: (recombine.viewport.Axis.HORIZONTAL, True),
}


def cell_to_note (column: int, row: int, rows: int = 8) -> int:

	"""Programmer-mode note for a grid cell (row 1 is the top row)."""

	return 10 * (rows + 1 - row) + column


def note_to_cell (note: int, columns: int = 8, rows: int = 8) -> typing.Optional[typing.Tuple[int, int]]:

	"""Grid cell for a programmer-mode note, or ``None`` if the note is not a pad."""

	row_from_bottom, column = divmod(note, 10)

	if not 1 <= column <= columns or not 1 <= row_from_bottom <= rows:
		return None

	return column, rows + 1 - row_from_bottom


class GridController:

	"""
	Bridges a MIDI grid controller and an :class:`recombine.engine.Engine`.

	Example:
		```python
		controller = GridController(engine, "Launchpad Mini MK3 MIDI 2")
		controller.open()

		# ...once per tick, on the engine's thread...
		controller.drain()
		engine.on_idle_tick()
		```
	"""

	def __init__ (
		self,
		engine: recombine.engine.Engine,
		input_name: str,
		output_name: typing.Optional[str] = None,
		channel: int = 0,
		programmer_mode: bool = True
	) -> None:

		"""
		Parameters:
			engine: The engine to drive.
			input_name: MIDI input port name of the controller.
			output_name: MIDI output port name for LED feedback (defaults
				to ``input_name``).
			channel: MIDI channel for LED messages (0 = static colour).
			programmer_mode: Send the programmer-mode SysEx when opening.
		"""

		self._engine = engine
		self.input_name = input_name
		self.output_name = output_name or input_name
		self.channel = channel
		self.programmer_mode = programmer_mode

		self.midi_in: typing.Any = None
		self.midi_out: typing.Any = None

		self._queue: queue.Queue = queue.Queue()
		self._leds: typing.Dict[typing.Tuple[str, int], int] = {}

	@property
	def _columns (self) -> int:

		return self._engine.options.grid_width

	@property
	def _rows (self) -> int:

		return self._engine.options.grid_height

	def open (self) -> None:

		"""Open the MIDI ports and start following engine repaints."""

		if self.midi_in is not None:
			return

		self.midi_out = mido.open_output(self.output_name)
		self.midi_in = mido.open_input(self.input_name, callback=self._on_midi_input)

		logger.info(f"Controller connected (in: {self.input_name}, out: {self.output_name})")

		if self.programmer_mode:
			self._send(mido.Message("sysex", data=PROGRAMMER_MODE_SYSEX))

		self._engine.events.on(recombine.engine.GRID_CHANGED, self._on_grid_changed)
		self._engine.events.on(recombine.engine.NAVIGATION_CHANGED, self._on_navigation_changed)
		self._engine.events.on(recombine.engine.STATE_CHANGED, self._on_state_changed)

	def close (self) -> None:

		if self.midi_in is None:
			return

		self._engine.events.off(recombine.engine.GRID_CHANGED, self._on_grid_changed)
		self._engine.events.off(recombine.engine.NAVIGATION_CHANGED, self._on_navigation_changed)
		self._engine.events.off(recombine.engine.STATE_CHANGED, self._on_state_changed)

		self.clear_leds()

		self.midi_in.close()
		self.midi_in = None

		if self.midi_out is not None:
			self.midi_out.close()
			self.midi_out = None

		logger.info("Controller disconnected")

	# ------------------------------------------------------------------
	# Input
	# ------------------------------------------------------------------

	def _on_midi_input (self, message: typing.Any) -> None:

		"""Runs on mido's callback thread: just queue the message."""

		self._queue.put_nowait(message)

	def drain (self) -> int:

		"""Hand every queued message to the engine; returns how many were handled."""

		handled = 0

		while True:

			try:
				message = self._queue.get_nowait()
			except queue.Empty:
				break

			self.handle_message(message)
			handled += 1

		return handled

	def handle_message (self, message: typing.Any) -> None:

		"""Translate one controller message into engine input."""

		if message.type in ("note_on", "note_off"):

			cell = note_to_cell(message.note, self._columns, self._rows)

			if cell is None:
				return

			if message.type == "note_on" and message.velocity > 0:
				self._engine.press_cell(*cell)
			else:
				self._engine.release_cell(*cell)

		elif message.type == "control_change" and message.control in NAVIGATION_CONTROLS:

			axis, forward = NAVIGATION_CONTROLS[message.control]

			if message.value > 0:
				self._engine.press_navigation(axis, forward)
			else:
				self._engine.release_navigation(axis, forward)

	# ------------------------------------------------------------------
	# Output
	# ------------------------------------------------------------------

	def _send (self, message: mido.Message) -> None:

		if self.midi_out is None:
			return

		try:
			self.midi_out.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")

	def _set_led (self, kind: str, number: int, colour: int) -> None:

		if self._leds.get((kind, number)) == colour:
			return

		self._leds[(kind, number)] = colour

		if kind == "note":
			self._send(mido.Message("note_on", channel=self.channel, note=number, velocity=colour))
		else:
			self._send(mido.Message("control_change", channel=self.channel, control=number, value=colour))

	def _on_grid_changed (self, cells: typing.List[typing.List[recombine.grid.CellState]]) -> None:

		for column, states in enumerate(cells, start=1):
			for row, state in enumerate(states, start=1):
				self._set_led("note", cell_to_note(column, row, self._rows), recombine.grid.PALETTE[state])

	def _on_navigation_changed (self, axis: recombine.viewport.Axis, state: recombine.viewport.NavigationState) -> None:

		for control, (control_axis, forward) in NAVIGATION_CONTROLS.items():

			if control_axis is not axis:
				continue

			lit = state.next_enabled if forward else state.prev_enabled
			colour = recombine.constants.PALETTE_NAVIGATION_ON if lit else recombine.constants.PALETTE_OFF
			self._set_led("control", control, colour)

	def _on_state_changed (self, state: recombine.engine.EngineState) -> None:

		if state is recombine.engine.EngineState.STOPPED:
			self.clear_leds()

	def clear_leds (self) -> None:

		"""Switch off every LED this controller has lit."""

		for kind, number in list(self._leds):
			self._set_led(kind, number, recombine.constants.PALETTE_OFF)
