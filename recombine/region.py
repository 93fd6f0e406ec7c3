"""Lifecycle of the recombination region and playback continuity.

The recombination region is the last slot of the timeline, marked by the
reserved name.  Only one region may carry that name: stale copies left by an
earlier run that did not shut down cleanly are renamed when the engine
starts.

While the engine runs, playback is kept inside the recombination region.
When the region shrinks under the playhead, the playhead keeps its distance
to the end of the loop rather than its absolute line, so the beat carries on
across the length change.
"""

import logging
import typing

import recombine.constants
import recombine.host

if typing.TYPE_CHECKING:
	from recombine.engine import Engine


logger = logging.getLogger(__name__)


class LostRegionError (Exception):

	"""The recombination region was deleted or renamed outside the engine."""


class RegionManager:

	def __init__ (self, engine: "Engine") -> None:

		self._engine = engine

		# Slot that was playing (or being edited) when the engine started
		self.running_start: typing.Optional[int] = None

	@property
	def slot (self) -> int:

		"""Slot index of the recombination region (always the last slot)."""

		return self._engine.host.slot_count

	def ensure_region (self) -> int:

		"""
		Reuse or create the recombination region and return its slot.

		Also remembers where playback (or editing) was, as the running start.
		"""

		host = self._engine.host
		reserved = recombine.constants.RESERVED_REGION_NAME

		if host.playing:
			self.running_start = host.playback_position.slot
		else:
			self.running_start = host.edit_slot

		last = host.slot_count

		if last >= 1 and host.region_name(last) == reserved:

			host.clear_region(last)

			for track in range(1, host.track_count + 1):
				host.set_slot_muted(track, last, False)

			logger.info(f"Reusing recombination region at slot {last}")

		else:

			last = host.insert_region(last + 1)
			host.set_region_name(last, reserved)

			logger.info(f"Created recombination region at slot {last}")

		for slot in range(1, last):
			if reserved in host.region_name(slot):
				logger.info(f"Clearing stale recombination region name at slot {slot}")
				host.set_region_name(slot, "")

		return last

	def is_present (self) -> bool:

		host = self._engine.host

		return host.slot_count >= 1 and host.region_name(host.slot_count) == recombine.constants.RESERVED_REGION_NAME

	def verify (self) -> None:

		"""Raise :class:`LostRegionError` unless the last slot is still the recombination region."""

		host = self._engine.host

		if not self.is_present():
			raise LostRegionError(f"Slot {host.slot_count} is no longer the recombination region")

	def preserve_playback_on_resize (self, old_length: int, new_length: int, old_position: recombine.host.PlaybackPosition) -> None:

		"""
		Keep the beat when the region shrinks under the playhead.

		The playhead jumps back by as many lines as it was from the old end,
		so it reaches line 1 at the moment it would have looped anyway.  A
		result before the start is moved forward in steps of one beat.
		"""

		if new_length >= old_length:
			return

		if old_position.line <= new_length:
			return

		host = self._engine.host
		lines_per_beat = host.lines_per_beat

		new_line = old_position.line - old_length + new_length

		while new_line < 0:
			new_line += lines_per_beat
			# one beat can be longer than the whole region
			if new_line > new_length:
				new_line = new_line % new_length

		if new_line == 0:
			new_line = new_length

		logger.debug(f"Region shrank {old_length} -> {new_length} lines, playback line {old_position.line} -> {new_line}")

		host.playback_position = recombine.host.PlaybackPosition(slot=old_position.slot, line=new_line)

	def lock_playback (self, restart: bool = False) -> None:

		"""
		Move playback into the recombination region.

		With ``restart``, playback coming from another slot lands on the last
		line, so the next line played is the region's first.
		"""

		host = self._engine.host
		region = self.slot
		length = host.region_length(region)
		position = host.playback_position

		line = min(position.line, length)

		if restart and position.slot != region:
			line = length

		target = recombine.host.PlaybackPosition(slot=region, line=line)

		if target != position:
			host.playback_position = target

	def restore_running_start (self) -> bool:

		"""
		Send playback back to where it was when the engine started.

		Returns ``False`` (and logs) when that slot no longer exists.
		"""

		host = self._engine.host

		if self.running_start is None or not 1 <= self.running_start < host.slot_count:
			logger.warning(f"Could not reinstate the original playback slot ({self.running_start})")
			return False

		line = min(host.playback_position.line, host.region_length(self.running_start))
		host.playback_position = recombine.host.PlaybackPosition(slot=self.running_start, line=line)

		return True
