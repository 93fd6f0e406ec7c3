"""Polyrhythm resolution: combining tracks of different lengths.

When tracks copied into the recombination region come from regions of
different lengths, the region is stretched to the least common multiple of
those lengths and each track's content is tiled to fill it.  With tracks of
4 and 6 lines the region becomes 12 lines: the first track repeats three
times and the second twice, so both keep their own period.

Tiling copies the first ``stride`` lines to every following multiple of
``stride`` and shifts automation points along with them.
"""

import dataclasses
import enum
import logging
import math
import typing

import recombine.constants
import recombine.host

if typing.TYPE_CHECKING:
	from recombine.engine import Engine


logger = logging.getLogger(__name__)


class CopyMode (enum.Enum):

	SIMPLE = "simple"
	COMPLEX = "complex"


@dataclasses.dataclass (frozen=True)
class CopyResult:

	"""How a track copy was carried out."""

	mode: CopyMode
	length: int
	distinct_lengths: int


def combined_length (lengths: typing.Iterable[int]) -> int:

	"""Least common multiple of the given lengths (1 when there are none)."""

	values = list(lengths)

	if not values:
		return 1

	return math.lcm(*values)


def poly_status (distinct_lengths: int) -> str:

	"""Operator status text for the number of distinct lengths in play."""

	if distinct_lengths > 1:
		return f"{distinct_lengths}x poly combo!"

	return ""


class PolyrhythmResolver:

	def __init__ (self, engine: "Engine") -> None:

		self._engine = engine

	def resolve (self, track: int, source_slot: int) -> CopyResult:

		"""
		Copy one track from ``source_slot`` into the recombination region.

		Records the source length in the engine's poly counter, then either
		copies verbatim (resizing the region to the source length) or expands
		the region to the combined length.  In the expanding case the copied
		track is tiled on the next tick, once the resize has settled, while
		every other populated track is re-tiled straight away.
		"""

		engine = self._engine
		host = engine.host
		dest_slot = engine.regions.slot

		source_length = host.region_length(source_slot)
		dest_length = host.region_length(dest_slot)

		engine.poly_counter[track] = source_length
		lengths = list(engine.poly_counter.values())
		distinct = len(set(lengths))
		combined = combined_length(lengths)

		engine.show_status(poly_status(distinct))

		simple = (
			not engine.options.polyrhythms
			or distinct <= 1
			or combined > recombine.constants.MAX_REGION_LENGTH
			or (combined == source_length and combined == dest_length)
		)

		if simple:

			if combined > recombine.constants.MAX_REGION_LENGTH:
				logger.debug(f"Combined length {combined} exceeds {recombine.constants.MAX_REGION_LENGTH} lines, copying track {track} as is")

			host.set_region_length(dest_slot, source_length)
			host.copy_track(source_slot, dest_slot, track)

			return CopyResult(CopyMode.SIMPLE, source_length, distinct)

		logger.debug(f"Expanding track {track} from {source_length} to {combined} lines")

		host.set_region_length(dest_slot, combined)
		host.copy_track(source_slot, dest_slot, track)
		engine.defer(0, self._expand_pending, track, source_length)

		if dest_length < combined:

			for other in range(1, host.track_count + 1):

				if other == track:
					continue

				if host.track_kind(other) is not recombine.host.TrackKind.CONTENT:
					continue

				if host.track_is_empty(dest_slot, other):
					continue

				stride = min(engine.poly_counter.get(other, dest_length), dest_length)
				logger.debug(f"Also expanding track {other} from {stride} to {combined} lines")
				self.expand(dest_slot, dest_slot, other, stride)

		return CopyResult(CopyMode.COMPLEX, combined, distinct)

	def _expand_pending (self, track: int, stride: int) -> None:

		# the track may have been cleared or replaced since the copy
		if self._engine.poly_counter.get(track) != stride:
			logger.debug(f"Skipping expansion of track {track}: its content changed")
			return

		if not self._engine.regions.is_present():
			logger.debug(f"Skipping expansion of track {track}: the recombination region is gone")
			return

		dest_slot = self._engine.regions.slot
		self.expand(dest_slot, dest_slot, track, stride)

	def expand (self, source_slot: int, dest_slot: int, track: int, stride: typing.Optional[int] = None) -> None:

		"""
		Copy a track into ``dest_slot`` and tile its first ``stride`` lines to fill it.

		``stride`` defaults to the source region's length.  Automation points
		whose time falls within the first ``stride`` lines are repeated at the
		same offset in every tile; points beyond that are left alone.
		"""

		host = self._engine.host

		if stride is None:
			stride = host.region_length(source_slot)

		if source_slot != dest_slot:
			host.copy_track(source_slot, dest_slot, track)

		dest_length = host.region_length(dest_slot)

		if dest_length <= stride:
			return

		repeats = dest_length // stride - 1

		for tile in range(1, repeats + 1):
			host.copy_lines(dest_slot, track, 1, 1 + stride * tile, stride)

		for parameter, points in host.automation(dest_slot, track).items():
			for point in points:

				if not 1 <= math.floor(point.time) <= stride:
					continue

				for tile in range(1, repeats + 1):
					host.add_automation_point(dest_slot, track, parameter, point.time + stride * tile, point.value)
