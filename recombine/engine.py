"""The recombination engine.

The engine takes over a host song and lets a grid controller recombine its
tracks, each possibly playing a different slot of the timeline, into one
looping region at the end of the timeline.

Pressing a grid cell calls :meth:`Engine.toggle`:

- In **track mode** the pressed track is copied from the pressed slot into
  the recombination region (expanding the region for polyrhythms), or, if
  that track is already playing that slot, cleared again.
- In **whole-region mode** the whole pressed slot is copied, or, when every
  track is already playing it, everything is switched off.

Toggling only changes state and raises flags.  Repainting, following the
host's selection and keeping playback inside the recombination region all
happen in :meth:`Engine.on_idle_tick`, which the host calls once per tick.
Everything runs on that one thread; slow work is pushed to the next tick
with :meth:`Engine.defer`.

Example:
	```python
	song = recombine.song.demo_song()
	engine = recombine.engine.Engine(song)
	engine.start()

	engine.toggle(1, 2)                     # track 1 from the second visible slot
	engine.toggle(1, 3, whole_region=True)  # every track from the third

	engine.on_idle_tick()
	engine.stop()
	```
"""

import enum
import logging
import time
import typing

import recombine.config
import recombine.constants
import recombine.deferred
import recombine.event_emitter
import recombine.grid
import recombine.host
import recombine.polyrhythm
import recombine.region
import recombine.slots
import recombine.viewport


logger = logging.getLogger(__name__)


# Events published on ``Engine.events``
GRID_CHANGED = "grid"
NAVIGATION_CHANGED = "navigation"
STATUS_CHANGED = "status"
STATE_CHANGED = "state"


class EngineState (enum.Enum):

	STOPPED = "stopped"
	STARTING = "starting"
	RUNNING = "running"
	ABORTING = "aborting"


class Engine:

	"""
	Recombination engine bound to one host.

	The engine owns all of its state: the active slot per track, the poly
	counter (source length per populated track), the revert set of slots
	that were muted before it took over, and the viewport.  Collaborators
	receive the engine itself and read that state through it.
	"""

	def __init__ (
		self,
		host: recombine.host.Host,
		options: typing.Optional[recombine.config.Options] = None,
		clock: typing.Optional[typing.Callable[[], float]] = None
	) -> None:

		"""
		Parameters:
			host: The song/sequencer to drive (see :class:`recombine.host.Host`).
			options: Engine options; defaults apply when omitted.
			clock: Time source in seconds for deferred calls and hold
				detection.  Defaults to ``time.monotonic``.
		"""

		self.host = host
		self.options = options or recombine.config.Options()
		self._clock = clock or time.monotonic

		self.state = EngineState.STOPPED
		self.events = recombine.event_emitter.EventEmitter()
		self.scheduler = recombine.deferred.DeferredScheduler(clock=self._clock)

		# track -> slot feeding the recombination region
		self.active_slots: typing.Dict[int, int] = {}
		# track -> source length (lines) of the content copied for it
		self.poly_counter: typing.Dict[int, int] = {}
		# (track, slot) pairs that were muted before the engine took over
		self.revert_set: typing.Set[typing.Tuple[int, int]] = set()
		# tracks whose mute state is switched off until the pulse restore runs
		self.pulsed_tracks: typing.Set[int] = set()

		self.viewport = recombine.viewport.Viewport(self)
		self.slots = recombine.slots.SlotSynchronizer(self)
		self.polyrhythms = recombine.polyrhythm.PolyrhythmResolver(self)
		self.regions = recombine.region.RegionManager(self)
		self.gestures = recombine.grid.HoldTracker(self.options.hold_time, clock=self._clock)

		# Flags for the idle loop
		self.update_requested = False
		self.play_requested = False

		self.cells: typing.List[typing.List[recombine.grid.CellState]] = []
		self.navigation: typing.Dict[recombine.viewport.Axis, recombine.viewport.NavigationState] = {}

		self._hold_to_copy = self.options.hold_to_copy
		self._pushing_selection = False
		self._attached = False

	@property
	def running (self) -> bool:

		return self.state is EngineState.RUNNING

	def _set_state (self, state: EngineState) -> None:

		self.state = state
		self.events.emit(STATE_CHANGED, state)

	# ------------------------------------------------------------------
	# Lifecycle
	# ------------------------------------------------------------------

	def start (self) -> bool:

		"""
		Take over the host song.

		Mutes every slot (remembering which were already muted), creates or
		reuses the recombination region, and copies track 1 from the slot that
		was playing so the region has content right away.
		"""

		if self.state is not EngineState.STOPPED:
			logger.warning(f"Engine cannot start while {self.state.value}")
			return False

		self._set_state(EngineState.STARTING)

		self._hold_to_copy = self.options.hold_to_copy
		self.gestures = recombine.grid.HoldTracker(self.options.hold_time, clock=self._clock)

		self.reset_tables()
		self.poly_counter = {}
		self.viewport.apply_page_sizes()

		self.slots.take_over()
		self.regions.ensure_region()
		self.viewport.clamp()

		# Running start: copy track 1 from where playback was
		running_start = self.regions.running_start
		self.viewport.follow_slot(running_start)
		self.toggle(1, running_start - self.viewport.y_pos + 1)

		self.navigation = {
			recombine.viewport.Axis.HORIZONTAL: self.viewport.navigation(recombine.viewport.Axis.HORIZONTAL),
			recombine.viewport.Axis.VERTICAL: self.viewport.navigation(recombine.viewport.Axis.VERTICAL),
		}
		self.update_requested = True

		self.host.loop_region = True
		self.host.follow_player = False

		if self.options.auto_start:
			self.play_requested = True

		self._attach()
		self._set_state(EngineState.RUNNING)

		logger.info(f"Engine started (recombination region at slot {self.regions.slot}, running start {running_start})")

		return True

	def stop (self) -> bool:

		"""
		Hand the song back.

		Restores every slot's mute flag to what it was before :meth:`start`
		and, when the transport is playing, returns playback to the slot it
		was on.
		"""

		if self.state is EngineState.STOPPED:
			return False

		self.slots.revert_all()

		if self.host.playing:
			if not self.regions.restore_running_start():
				self.show_status("Could not reinstate the original playback position")

		self._teardown()
		logger.info("Engine stopped")

		return True

	def abort (self, reason: str = "") -> None:

		"""Stop because the song changed under the engine, telling the operator."""

		if self.state is not EngineState.RUNNING:
			return

		self._set_state(EngineState.ABORTING)

		if reason:
			logger.warning(f"Aborting: {reason}")

		self.show_status(recombine.constants.ABORT_MESSAGE)
		self.stop()

	def on_new_document (self, host: recombine.host.Host) -> None:

		"""
		Switch to a new host song.

		A running engine is aborted without touching the new song: the state
		it would restore belonged to the old one.
		"""

		if self.state is EngineState.RUNNING:
			self._set_state(EngineState.ABORTING)
			self.show_status(recombine.constants.ABORT_MESSAGE)
			self._teardown()
			logger.warning("Aborted: the song was replaced")

		self.host = host

	def _teardown (self) -> None:

		self._detach()

		# a pending pulse would be dropped with the queue, so restore it now
		self._restore_mute_state(sorted(self.pulsed_tracks))
		self.scheduler.clear()

		self.update_requested = False
		self.play_requested = False
		self.viewport.h_changed = False
		self.viewport.v_changed = False
		self.gestures.reset()

		self._set_state(EngineState.STOPPED)

	def reset_tables (self) -> None:

		"""Forget active slots and the revert set (their indices are stale)."""

		self.active_slots = {}
		self.revert_set = set()

	def set_page_size (self, horizontal: typing.Optional[int] = None, vertical: typing.Optional[int] = None) -> None:

		"""Change the paging steps (``None`` = automatic)."""

		self.options.page_size_h = recombine.config.parse_page_size("page_size_h", horizontal)
		self.options.page_size_v = recombine.config.parse_page_size("page_size_v", vertical)
		self.viewport.apply_page_sizes()
		self.viewport.h_changed = True
		self.viewport.v_changed = True

	def set_hold_to_copy (self, enabled: bool) -> None:

		self.options.hold_to_copy = enabled

		if self.state is not EngineState.STOPPED:
			self.show_status("The copy gesture change takes effect the next time the engine starts")

	# ------------------------------------------------------------------
	# Deferred calls and status
	# ------------------------------------------------------------------

	def defer (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> None:

		"""
		Run ``callback(*args)`` on a later idle tick, no earlier than ``delay`` seconds.

		The call is dropped if the engine is no longer running by then.
		"""

		def guarded () -> None:

			if self.state is not EngineState.RUNNING:
				logger.debug(f"Skipping deferred {getattr(callback, '__name__', callback)!r}: engine is {self.state.value}")
				return

			callback(*args)

		guarded.__name__ = getattr(callback, "__name__", "deferred")
		self.scheduler.call_later(delay, guarded)

	def show_status (self, message: str) -> None:

		if message:
			logger.info(message)

		self.host.show_status(message)
		self.events.emit(STATUS_CHANGED, message)

	def push_selection (self, track: typing.Optional[int] = None, slot: typing.Optional[int] = None) -> None:

		"""
		Set the host's selected track/slot without reacting to our own change.
		"""

		self._pushing_selection = True

		try:
			if track is not None and 1 <= track <= self.host.track_count:
				self.host.selected_track = track
			if slot is not None and 1 <= slot <= self.host.slot_count:
				self.host.edit_slot = slot
		finally:
			self._pushing_selection = False

	# ------------------------------------------------------------------
	# Cell toggler
	# ------------------------------------------------------------------

	def toggle (self, column: int, row: int, whole_region: bool = False) -> bool:

		"""
		Handle a grid press at ``(column, row)`` (1-based, relative to the viewport).

		Returns ``False`` when the engine is not running or the position
		does not map to a content track and source slot.
		"""

		if self.state not in (EngineState.STARTING, EngineState.RUNNING):
			return False

		track = column + self.viewport.x_pos - 1
		slot = row + self.viewport.y_pos - 1

		if self.slots.is_garbage(track, slot):
			logger.warning(f"Could not switch to track {track}, slot {slot} (whole_region={whole_region})")
			return False

		dest_slot = self.regions.slot

		# keep the beat: remember length and position before anything changes
		old_length = self.host.region_length(dest_slot)
		old_position = self.host.playback_position

		if whole_region:
			self._toggle_whole_region(slot)
		else:
			self._toggle_track(track, slot)

		new_length = self.host.region_length(dest_slot)

		if new_length < old_length:
			self.regions.preserve_playback_on_resize(old_length, new_length, old_position)

		self.update_requested = True

		return True

	def _toggle_whole_region (self, slot: int) -> None:

		host = self.host
		dest_slot = self.regions.slot
		muteable = self.slots.can_whole_region_toggle(slot)

		logger.debug(f"Whole-region toggle at slot {slot} ({'mute' if muteable else 'copy'})")

		if muteable:
			self.clear_tracks()
		else:
			host.copy_region(slot, dest_slot)
			host.set_region_length(dest_slot, host.region_length(slot))

		source_length = host.region_length(slot)

		for track in range(1, host.content_track_count + 1):

			if not muteable:
				self.poly_counter[track] = source_length

			self.slots.set_track_active(track, slot, muted=muteable)

		if not muteable:
			self.show_status(recombine.polyrhythm.poly_status(1))

	def _toggle_track (self, track: int, slot: int) -> None:

		if track in self.poly_counter and self.active_slots.get(track) == slot:
			logger.debug(f"Track {track} off (slot {slot})")
			self.clear_track(track)
			self.slots.set_track_inactive(track)
			return

		result = self.polyrhythms.resolve(track, slot)
		logger.debug(f"Track {track} on from slot {slot}: {result.mode.value} copy, {result.length} lines")
		self.slots.set_track_active(track, slot)

	def clear_track (self, track: int) -> None:

		"""Clear one track of the recombination region and pulse its mute indicator."""

		self.host.clear_track(self.regions.slot, track)
		self.poly_counter.pop(track, None)
		self._pulse_mute_state([track])

	def clear_tracks (self) -> None:

		"""Clear every content track of the recombination region."""

		dest_slot = self.regions.slot
		tracks = list(range(1, self.host.content_track_count + 1))

		for track in tracks:
			self.host.clear_track(dest_slot, track)
			self.poly_counter.pop(track, None)

		self._pulse_mute_state(tracks)

	def _pulse_mute_state (self, tracks: typing.List[int]) -> None:

		"""
		Briefly switch active tracks off and on again.

		Replacing a track's content does not repaint the host's mute
		indicator, so the indicator is cycled to show the change.
		"""

		pulsed = [track for track in tracks if self.host.track_mute_state(track) is recombine.host.MuteState.ACTIVE]

		if not pulsed:
			return

		for track in pulsed:
			self.host.set_track_mute_state(track, recombine.host.MuteState.OFF)
			self.pulsed_tracks.add(track)

		self.defer(recombine.constants.MUTE_PULSE_DELAY, self._restore_mute_state, pulsed)

	def _restore_mute_state (self, tracks: typing.List[int]) -> None:

		for track in tracks:

			if track not in self.pulsed_tracks:
				continue

			self.pulsed_tracks.discard(track)

			if track <= self.host.track_count:
				self.host.set_track_mute_state(track, recombine.host.MuteState.ACTIVE)

	# ------------------------------------------------------------------
	# Controller input
	# ------------------------------------------------------------------

	def press_cell (self, column: int, row: int) -> None:

		"""
		A grid button went down.

		With hold-to-copy, the decision waits for the release (tap: track
		copy) or the hold threshold (whole-region copy).  Otherwise the
		press copies the track immediately.
		"""

		if not self.running:
			return

		if not self._hold_to_copy:
			self.toggle(column, row)
			return

		self.gestures.press(("cell", column, row))

	def release_cell (self, column: int, row: int) -> None:

		if not self.running or not self._hold_to_copy:
			return

		if self.gestures.release(("cell", column, row)):
			self.toggle(column, row)

	def press_navigation (self, axis: recombine.viewport.Axis, forward: bool) -> None:

		"""A navigation button went down: page now, jump to first/last on hold."""

		if not self.running:
			return

		if forward:
			self.viewport.page_next(axis)
		else:
			self.viewport.page_prev(axis)

		self.gestures.press(("nav", axis, forward))

	def release_navigation (self, axis: recombine.viewport.Axis, forward: bool) -> None:

		self.gestures.release(("nav", axis, forward))

	def _on_hold (self, key: typing.Hashable) -> None:

		kind, first, second = typing.cast(typing.Tuple[str, typing.Any, typing.Any], key)

		if kind == "cell":
			self.toggle(first, second, whole_region=True)
		elif second:
			self.viewport.page_last(first)
		else:
			self.viewport.page_first(first)

	# ------------------------------------------------------------------
	# Navigation
	# ------------------------------------------------------------------

	def page_next (self, axis: recombine.viewport.Axis) -> None:

		if self.running:
			self.viewport.page_next(axis)

	def page_prev (self, axis: recombine.viewport.Axis) -> None:

		if self.running:
			self.viewport.page_prev(axis)

	def page_first (self, axis: recombine.viewport.Axis) -> None:

		if self.running:
			self.viewport.page_first(axis)

	def page_last (self, axis: recombine.viewport.Axis) -> None:

		if self.running:
			self.viewport.page_last(axis)

	def set_viewport_index (self, axis: recombine.viewport.Axis, index: int) -> None:

		if self.running:
			self.viewport.set_index(axis, index)

	# ------------------------------------------------------------------
	# Idle loop
	# ------------------------------------------------------------------

	def on_idle_tick (self) -> None:

		"""
		Apply pending work, once per host tick.

		Each flag is cleared before its work runs, so anything that raises it
		again is handled on the next tick.
		"""

		if self.state is not EngineState.RUNNING:
			return

		# the region must still exist before deferred work writes into it
		try:
			self.regions.verify()
		except recombine.region.LostRegionError as exc:
			self.abort(str(exc))
			return

		self.scheduler.poll()

		if self.state is not EngineState.RUNNING:
			return

		for key in self.gestures.poll():
			self._on_hold(key)

		if self.viewport.v_changed:
			self.viewport.v_changed = False
			self.update_requested = True
			self._update_navigation(recombine.viewport.Axis.VERTICAL)

		if self.viewport.h_changed:
			self.viewport.h_changed = False
			self.update_requested = True
			self._update_navigation(recombine.viewport.Axis.HORIZONTAL)

		if self.update_requested:
			self.update_requested = False
			self._repaint()

		if self.host.playback_position.slot != self.regions.slot:
			self.regions.lock_playback()

		if self.play_requested:
			self.play_requested = False
			self.host.playing = True

	def _update_navigation (self, axis: recombine.viewport.Axis) -> None:

		state = self.viewport.navigation(axis)
		self.navigation[axis] = state
		self.events.emit(NAVIGATION_CHANGED, axis, state)

	def _repaint (self) -> None:

		self.cells = recombine.grid.render(self)
		self.events.emit(GRID_CHANGED, self.cells)

		# select the user's own track/slot if they picked one, else the page corner
		follow_mode = self.options.follow_mode

		if follow_mode is not recombine.config.FollowMode.OFF:

			track = self.viewport.actual_track or self.viewport.x_pos
			slot = self.viewport.actual_slot or self.viewport.y_pos

			if follow_mode is recombine.config.FollowMode.TRACK_AND_SLOT:
				self.push_selection(track=track, slot=slot)
			else:
				self.push_selection(track=track)

			self.viewport.actual_track = None
			self.viewport.actual_slot = None

	# ------------------------------------------------------------------
	# Host notifications
	# ------------------------------------------------------------------

	def _attach (self) -> None:

		if self._attached:
			return

		events = self.host.events
		events.on(recombine.host.TRACKS_CHANGED, self._on_tracks_changed)
		events.on(recombine.host.SLOTS_CHANGED, self._on_slots_changed)
		events.on(recombine.host.PLAYING_CHANGED, self._on_playing_changed)
		events.on(recombine.host.SELECTED_TRACK_CHANGED, self._on_selected_track_changed)
		events.on(recombine.host.SELECTED_SLOT_CHANGED, self._on_selected_slot_changed)

		self._attached = True

	def _detach (self) -> None:

		if not self._attached:
			return

		events = self.host.events
		events.off(recombine.host.TRACKS_CHANGED, self._on_tracks_changed)
		events.off(recombine.host.SLOTS_CHANGED, self._on_slots_changed)
		events.off(recombine.host.PLAYING_CHANGED, self._on_playing_changed)
		events.off(recombine.host.SELECTED_TRACK_CHANGED, self._on_selected_track_changed)
		events.off(recombine.host.SELECTED_SLOT_CHANGED, self._on_selected_slot_changed)

		self._attached = False

	def _on_tracks_changed (self, kind: str, index: int) -> None:

		if not self.running:
			return

		logger.debug(f"Track {kind} at {index}: resetting slot tables")
		self.reset_tables()

		# the host may apply the insertion after notifying, so mute it a little later
		if kind == recombine.host.INSERT:
			self.defer(recombine.constants.NEW_TRACK_MUTE_DELAY, self.slots.mute_track, index)

		self.viewport.clamp()
		self.viewport.h_changed = True

	def _on_slots_changed (self, kind: str, index: int) -> None:

		if not self.running:
			return

		logger.debug(f"Slot {kind} at {index}: resetting slot tables")
		self.reset_tables()
		self.viewport.clamp()
		self.viewport.v_changed = True

	def _on_playing_changed (self, playing: bool) -> None:

		if self.running and playing:
			self.regions.lock_playback(restart=True)

	def _on_selected_track_changed (self, track: int) -> None:

		if not self.running or self._pushing_selection:
			return

		if self.options.follow_mode is not recombine.config.FollowMode.OFF:
			self.viewport.follow_track(track)

	def _on_selected_slot_changed (self, slot: int) -> None:

		if not self.running or self._pushing_selection:
			return

		self.viewport.follow_slot(slot)

		# following the player would drag the selection out of the page
		if (
			self.host.follow_player
			and self.options.follow_mode is not recombine.config.FollowMode.OFF
			and slot != self.regions.slot
		):
			self.host.follow_player = False
