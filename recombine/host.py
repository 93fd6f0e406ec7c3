"""The host capability surface the engine drives.

The engine never owns song data.  It talks to a host - a tracker, a DAW
bridge, or the in-memory :class:`recombine.song.Song` - through the
:class:`Host` protocol below.  Any object offering these operations can be
plugged in; there is no base class to inherit from.

Indexing is 1-based throughout: track 1 is the first track, slot 1 is the
first timeline position, line 1 is the first line of a region.  Content
tracks come first, followed by the master and any auxiliary (send) tracks.

Hosts publish notifications through their ``events`` emitter using the event
names defined here:

- ``TRACKS_CHANGED (kind, index)`` - a track was inserted or removed.
- ``SLOTS_CHANGED (kind, index)`` - a timeline slot was inserted or removed.
- ``SELECTED_TRACK_CHANGED (track)`` - the user selected another track.
- ``SELECTED_SLOT_CHANGED (slot)`` - the user selected another slot.
- ``PLAYING_CHANGED (playing)`` - transport started or stopped.
"""

import dataclasses
import enum
import typing

import recombine.event_emitter


TRACKS_CHANGED = "tracks_changed"
SLOTS_CHANGED = "slots_changed"
SELECTED_TRACK_CHANGED = "selected_track_changed"
SELECTED_SLOT_CHANGED = "selected_slot_changed"
PLAYING_CHANGED = "playing_changed"

INSERT = "insert"
REMOVE = "remove"


class TrackKind (enum.Enum):

	"""Content tracks hold region data; master and send tracks do not."""

	CONTENT = "content"
	MASTER = "master"
	SEND = "send"


class MuteState (enum.Enum):

	"""Track-level mute state (distinct from the per-slot mute flags)."""

	ACTIVE = "active"
	OFF = "off"
	MUTED = "muted"


@dataclasses.dataclass (frozen=True)
class PlaybackPosition:

	"""A transport position: timeline slot and line within that slot's region."""

	slot: int
	line: int


@dataclasses.dataclass (frozen=True)
class AutomationPoint:

	"""
	One point of an automation curve.

	``time`` is a line position; the fractional part places the point
	between lines (1.5 is halfway through line 1).
	"""

	time: float
	value: float


@typing.runtime_checkable
class Host (typing.Protocol):

	"""
	Protocol for a timeline/sequencing engine the recombination engine can drive.
	"""

	events: recombine.event_emitter.EventEmitter

	playing: bool
	playback_position: PlaybackPosition
	selected_track: int
	edit_slot: int
	follow_player: bool
	loop_region: bool

	# Tracks

	@property
	def track_count (self) -> int:
		...

	@property
	def content_track_count (self) -> int:
		...

	def track_kind (self, track: int) -> TrackKind:
		...

	def track_mute_state (self, track: int) -> MuteState:
		...

	def set_track_mute_state (self, track: int, state: MuteState) -> None:
		...

	# Slots and regions

	@property
	def slot_count (self) -> int:
		...

	@property
	def lines_per_beat (self) -> int:
		...

	def is_slot_muted (self, track: int, slot: int) -> bool:
		...

	def set_slot_muted (self, track: int, slot: int, muted: bool) -> None:
		...

	def insert_region (self, slot: int) -> int:

		"""Insert a new empty region at ``slot`` and return its slot index."""

		...

	def region_name (self, slot: int) -> str:
		...

	def set_region_name (self, slot: int, name: str) -> None:
		...

	def region_length (self, slot: int) -> int:
		...

	def set_region_length (self, slot: int, lines: int) -> None:
		...

	def clear_region (self, slot: int) -> None:
		...

	def clear_track (self, slot: int, track: int) -> None:
		...

	def track_is_empty (self, slot: int, track: int) -> bool:
		...

	def copy_region (self, source_slot: int, dest_slot: int) -> None:

		"""Copy every track's content and the length of one region into another."""

		...

	def copy_track (self, source_slot: int, dest_slot: int, track: int) -> None:

		"""Replace one track of ``dest_slot`` with the same track of ``source_slot``."""

		...

	def copy_lines (self, slot: int, track: int, source_line: int, dest_line: int, count: int) -> None:

		"""Copy a range of lines within one track of one region."""

		...

	def automation (self, slot: int, track: int) -> typing.Dict[str, typing.List[AutomationPoint]]:

		"""Return a snapshot of the track's automation curves, keyed by parameter."""

		...

	def add_automation_point (self, slot: int, track: int, parameter: str, time: float, value: float) -> None:
		...

	def show_status (self, message: str) -> None:
		...
