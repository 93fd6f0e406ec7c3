"""Per-track active slot bookkeeping and slot mute synchronisation.

Each content track has at most one *active* slot: the slot whose content
currently feeds the recombination region.  The synchroniser keeps the host's
per-slot mute flags consistent with that - every slot of a touched track is
muted except its active one.

Taking over the song mutes every slot.  Slots that were already muted are
remembered in the engine's revert set, so stopping restores the song's mute
state exactly as it was found.
"""

import logging
import typing

import recombine.host

if typing.TYPE_CHECKING:
	from recombine.engine import Engine


logger = logging.getLogger(__name__)


class SlotSynchronizer:

	def __init__ (self, engine: "Engine") -> None:

		self._engine = engine

	@property
	def _host (self) -> recombine.host.Host:

		return self._engine.host

	def _content_tracks (self) -> typing.Iterator[int]:

		host = self._host

		for track in range(1, host.track_count + 1):
			if host.track_kind(track) is recombine.host.TrackKind.CONTENT:
				yield track

	def is_garbage (self, track: int, slot: int) -> bool:

		"""
		True when ``(track, slot)`` is not a valid source position.

		The slot must exist and must not be the recombination region itself
		(always the last slot), and the track must exist and hold content.
		"""

		host = self._host

		if not 1 <= slot < host.slot_count:
			return True

		if not 1 <= track <= host.track_count:
			return True

		return host.track_kind(track) is not recombine.host.TrackKind.CONTENT

	def can_whole_region_toggle (self, slot: int, tracks: typing.Optional[typing.Iterable[int]] = None) -> bool:

		"""
		Can a whole-region press at ``slot`` be served by muting everything?

		This is the cheap path: it applies when every track is already playing
		``slot`` (and still has content in the recombination region), so the
		press means "switch it all off".  When no track has ever been toggled
		(none is active and none has content in the region), the answer is
		trivially yes.  A mix of toggled and untouched tracks, or any track on
		another slot, needs a full copy.
		"""

		active_slots = self._engine.active_slots
		poly_counter = self._engine.poly_counter

		candidates = list(tracks) if tracks is not None else list(self._content_tracks())
		toggled = [track for track in candidates if track in active_slots]

		if not toggled:
			# after a reset, tracks with content in the region still count as toggled
			return not any(track in poly_counter for track in candidates)

		if len(toggled) != len(candidates):
			return False

		return all(active_slots[track] == slot and track in poly_counter for track in candidates)

	def set_track_active (self, track: int, slot: int, muted: bool = False) -> None:

		"""
		Make ``slot`` the track's active slot and fix up the mute flags.

		When the track already has an active slot only the two affected slots
		change.  The first time a track is touched every one of its slots is
		set explicitly, as nothing is known about their state.
		"""

		host = self._host
		previous = self._engine.active_slots.get(track)

		if previous is not None:
			host.set_slot_muted(track, previous, True)
			host.set_slot_muted(track, slot, muted)
		else:
			for index in range(1, host.slot_count):
				host.set_slot_muted(track, index, muted if index == slot else True)

		self._engine.active_slots[track] = slot

	def set_track_inactive (self, track: int) -> None:

		"""Mute the track's active slot and forget it."""

		previous = self._engine.active_slots.pop(track, None)

		if previous is not None:
			self._host.set_slot_muted(track, previous, True)

	def take_over (self) -> None:

		"""Mute every content slot, remembering those that were muted already."""

		host = self._host
		revert_set = self._engine.revert_set

		for track in self._content_tracks():
			for slot in range(1, host.slot_count + 1):
				if host.is_slot_muted(track, slot):
					revert_set.add((track, slot))
				host.set_slot_muted(track, slot, True)

		logger.debug(f"Took over slot mutes ({len(revert_set)} were already muted)")

	def revert_all (self) -> None:

		"""Put every content slot back to the mute state recorded by :meth:`take_over`."""

		host = self._host
		revert_set = self._engine.revert_set

		for track in self._content_tracks():
			for slot in range(1, host.slot_count + 1):
				host.set_slot_muted(track, slot, (track, slot) in revert_set)

		logger.debug(f"Reverted slot mutes ({len(revert_set)} kept muted)")

	def mute_track (self, track: int) -> None:

		"""Mute every slot of a (newly inserted) track, except the recombination region."""

		host = self._host

		if not 1 <= track <= host.track_count:
			return

		if host.track_kind(track) is not recombine.host.TrackKind.CONTENT:
			return

		for slot in range(1, host.slot_count):
			host.set_slot_muted(track, slot, True)
