"""An in-memory song implementing the :class:`recombine.host.Host` protocol.

The song is a list of tracks and a timeline of slots.  Each slot refers to a
region (several slots may share one region) and carries its own set of muted
tracks.  A region stores, per track, a sparse mapping of line number to line
content plus any automation curves.

It is the host used by the command-line demo and by the test suite, and it
is small enough to read as a description of what a real host must provide.

Example:
	```python
	song = recombine.song.Song()
	drums = song.add_track("drums")
	intro = song.append_region(length=16, name="intro")
	song.set_line(intro, drums, 1, "C-4 01")
	```
"""

import copy
import dataclasses
import logging
import typing

import recombine.constants
import recombine.event_emitter
import recombine.host


logger = logging.getLogger(__name__)


@dataclasses.dataclass (eq=False)
class Track:

	"""A song track.  Compared by identity so it survives reordering."""

	name: str
	kind: recombine.host.TrackKind = recombine.host.TrackKind.CONTENT
	mute_state: recombine.host.MuteState = recombine.host.MuteState.ACTIVE


@dataclasses.dataclass
class TrackData:

	"""The content of one track within one region."""

	lines: typing.Dict[int, str] = dataclasses.field(default_factory=dict)
	automation: typing.Dict[str, typing.List[recombine.host.AutomationPoint]] = dataclasses.field(default_factory=dict)

	def is_empty (self) -> bool:

		return not self.lines and not any(self.automation.values())

	def truncate (self, length: int) -> None:

		"""Drop lines and automation points beyond ``length`` lines."""

		self.lines = {line: value for line, value in self.lines.items() if line <= length}

		for parameter, points in self.automation.items():
			self.automation[parameter] = [point for point in points if point.time < length + 1]


@dataclasses.dataclass (eq=False)
class Region:

	"""A block of per-track content with a length in lines."""

	length: int = recombine.constants.DEFAULT_REGION_LENGTH
	name: str = ""
	tracks: typing.Dict[Track, TrackData] = dataclasses.field(default_factory=dict)

	def track (self, track: Track) -> TrackData:

		if track not in self.tracks:
			self.tracks[track] = TrackData()

		return self.tracks[track]


@dataclasses.dataclass (eq=False)
class Slot:

	"""A timeline position: a region reference and its per-track mute flags."""

	region: Region
	muted: typing.Set[Track] = dataclasses.field(default_factory=set)


class Song:

	"""
	A minimal tracker-style song.

	Structural edits (:meth:`insert_track`, :meth:`remove_track`,
	:meth:`insert_slot`, :meth:`remove_slot`, :meth:`insert_region`) and
	selection/transport changes publish the notifications described in
	:mod:`recombine.host`.
	"""

	def __init__ (self, lines_per_beat: int = 4) -> None:

		self.events = recombine.event_emitter.EventEmitter()

		self.tracks: typing.List[Track] = []
		self.slots: typing.List[Slot] = []

		self._lines_per_beat = lines_per_beat
		self._playing = False
		self._playback_position = recombine.host.PlaybackPosition(slot=1, line=1)
		self._selected_track = 1
		self._edit_slot = 1

		self.follow_player = True
		self.loop_region = False

		self.status = ""
		self.status_history: typing.List[str] = []

	# ------------------------------------------------------------------
	# Building songs
	# ------------------------------------------------------------------

	def add_track (self, name: str, kind: recombine.host.TrackKind = recombine.host.TrackKind.CONTENT) -> int:

		"""
		Append a track and return its index.

		Content tracks are kept ahead of the master and send tracks, so a
		content track added later is inserted before the first non-content
		track.
		"""

		if kind is recombine.host.TrackKind.CONTENT:
			index = self.content_track_count + 1
		else:
			index = len(self.tracks) + 1

		self.tracks.insert(index - 1, Track(name=name, kind=kind))

		return index

	def append_region (self, length: int = recombine.constants.DEFAULT_REGION_LENGTH, name: str = "") -> int:

		"""Append a new region in a new slot at the end of the timeline and return the slot index."""

		self._check_length(length)
		self.slots.append(Slot(region=Region(length=length, name=name)))

		return len(self.slots)

	def append_slot (self, slot: int) -> int:

		"""Append a slot that plays the same region as ``slot``."""

		self.slots.append(Slot(region=self._slot(slot).region))

		return len(self.slots)

	def set_line (self, slot: int, track: int, line: int, value: str) -> None:

		region = self._slot(slot).region

		if not 1 <= line <= region.length:
			raise ValueError(f"Line {line} outside region of {region.length} lines")

		region.track(self._track(track)).lines[line] = value

	def line (self, slot: int, track: int, line: int) -> typing.Optional[str]:

		return self._track_data(slot, track).lines.get(line)

	def lines (self, slot: int, track: int) -> typing.Dict[int, str]:

		return dict(self._track_data(slot, track).lines)

	# ------------------------------------------------------------------
	# Structural edits (these notify)
	# ------------------------------------------------------------------

	def insert_track (self, index: int, name: str, kind: recombine.host.TrackKind = recombine.host.TrackKind.CONTENT) -> None:

		if not 1 <= index <= len(self.tracks) + 1:
			raise IndexError(f"Track index {index} out of range")

		self.tracks.insert(index - 1, Track(name=name, kind=kind))
		self.events.emit(recombine.host.TRACKS_CHANGED, recombine.host.INSERT, index)

	def remove_track (self, index: int) -> None:

		track = self._track(index)
		self.tracks.remove(track)

		for slot in self.slots:
			slot.muted.discard(track)
			slot.region.tracks.pop(track, None)

		self.events.emit(recombine.host.TRACKS_CHANGED, recombine.host.REMOVE, index)

	def insert_slot (self, index: int, region_slot: typing.Optional[int] = None) -> None:

		"""Insert a slot at ``index`` playing the region of ``region_slot`` (or a new region)."""

		if not 1 <= index <= len(self.slots) + 1:
			raise IndexError(f"Slot index {index} out of range")

		region = self._slot(region_slot).region if region_slot is not None else Region()
		self.slots.insert(index - 1, Slot(region=region))
		self.events.emit(recombine.host.SLOTS_CHANGED, recombine.host.INSERT, index)

	def remove_slot (self, index: int) -> None:

		slot = self._slot(index)
		self.slots.remove(slot)
		self.events.emit(recombine.host.SLOTS_CHANGED, recombine.host.REMOVE, index)

	# ------------------------------------------------------------------
	# Host protocol: tracks
	# ------------------------------------------------------------------

	@property
	def track_count (self) -> int:

		return len(self.tracks)

	@property
	def content_track_count (self) -> int:

		return sum(1 for track in self.tracks if track.kind is recombine.host.TrackKind.CONTENT)

	def track_kind (self, track: int) -> recombine.host.TrackKind:

		return self._track(track).kind

	def track_mute_state (self, track: int) -> recombine.host.MuteState:

		return self._track(track).mute_state

	def set_track_mute_state (self, track: int, state: recombine.host.MuteState) -> None:

		self._track(track).mute_state = state

	# ------------------------------------------------------------------
	# Host protocol: slots and regions
	# ------------------------------------------------------------------

	@property
	def slot_count (self) -> int:

		return len(self.slots)

	@property
	def lines_per_beat (self) -> int:

		return self._lines_per_beat

	def is_slot_muted (self, track: int, slot: int) -> bool:

		return self._track(track) in self._slot(slot).muted

	def set_slot_muted (self, track: int, slot: int, muted: bool) -> None:

		target = self._slot(slot)

		if muted:
			target.muted.add(self._track(track))
		else:
			target.muted.discard(self._track(track))

	def insert_region (self, slot: int) -> int:

		if not 1 <= slot <= len(self.slots) + 1:
			raise IndexError(f"Slot index {slot} out of range")

		self.slots.insert(slot - 1, Slot(region=Region()))
		self.events.emit(recombine.host.SLOTS_CHANGED, recombine.host.INSERT, slot)

		return slot

	def region_name (self, slot: int) -> str:

		return self._slot(slot).region.name

	def set_region_name (self, slot: int, name: str) -> None:

		self._slot(slot).region.name = name

	def region_length (self, slot: int) -> int:

		return self._slot(slot).region.length

	def set_region_length (self, slot: int, lines: int) -> None:

		self._check_length(lines)
		region = self._slot(slot).region

		if lines < region.length:
			for data in region.tracks.values():
				data.truncate(lines)

		region.length = lines

	def clear_region (self, slot: int) -> None:

		self._slot(slot).region.tracks.clear()

	def clear_track (self, slot: int, track: int) -> None:

		self._slot(slot).region.tracks.pop(self._track(track), None)

	def track_is_empty (self, slot: int, track: int) -> bool:

		data = self._slot(slot).region.tracks.get(self._track(track))

		return data is None or data.is_empty()

	def copy_region (self, source_slot: int, dest_slot: int) -> None:

		source = self._slot(source_slot).region
		dest = self._slot(dest_slot).region

		if source is dest:
			return

		dest.length = source.length
		dest.tracks = copy.deepcopy(source.tracks, memo={id(track): track for track in self.tracks})

	def copy_track (self, source_slot: int, dest_slot: int, track: int) -> None:

		source = self._slot(source_slot).region
		dest = self._slot(dest_slot).region
		key = self._track(track)

		if source is dest:
			return

		data = copy.deepcopy(source.tracks.get(key, TrackData()))
		data.truncate(dest.length)
		dest.tracks[key] = data

	def copy_lines (self, slot: int, track: int, source_line: int, dest_line: int, count: int) -> None:

		region = self._slot(slot).region
		data = region.track(self._track(track))
		snapshot = dict(data.lines)

		for offset in range(count):

			target = dest_line + offset

			if target > region.length:
				break

			value = snapshot.get(source_line + offset)

			if value is None:
				data.lines.pop(target, None)
			else:
				data.lines[target] = value

	def automation (self, slot: int, track: int) -> typing.Dict[str, typing.List[recombine.host.AutomationPoint]]:

		data = self._track_data(slot, track)

		return {parameter: list(points) for parameter, points in data.automation.items()}

	def add_automation_point (self, slot: int, track: int, parameter: str, time: float, value: float) -> None:

		"""Add a point, replacing any existing point at exactly the same time."""

		region = self._slot(slot).region

		if not 1 <= time < region.length + 1:
			raise ValueError(f"Automation time {time} outside region of {region.length} lines")

		points = region.track(self._track(track)).automation.setdefault(parameter, [])
		points[:] = [point for point in points if point.time != time]
		points.append(recombine.host.AutomationPoint(time=time, value=value))
		points.sort(key=lambda point: point.time)

	# ------------------------------------------------------------------
	# Host protocol: transport and selection
	# ------------------------------------------------------------------

	@property
	def playing (self) -> bool:

		return self._playing

	@playing.setter
	def playing (self, value: bool) -> None:

		if value == self._playing:
			return

		self._playing = value
		self.events.emit(recombine.host.PLAYING_CHANGED, value)

	@property
	def playback_position (self) -> recombine.host.PlaybackPosition:

		return self._playback_position

	@playback_position.setter
	def playback_position (self, position: recombine.host.PlaybackPosition) -> None:

		self._slot(position.slot)
		self._playback_position = position

	@property
	def selected_track (self) -> int:

		return self._selected_track

	@selected_track.setter
	def selected_track (self, track: int) -> None:

		self._track(track)

		if track == self._selected_track:
			return

		self._selected_track = track
		self.events.emit(recombine.host.SELECTED_TRACK_CHANGED, track)

	@property
	def edit_slot (self) -> int:

		return self._edit_slot

	@edit_slot.setter
	def edit_slot (self, slot: int) -> None:

		self._slot(slot)

		if slot == self._edit_slot:
			return

		self._edit_slot = slot
		self.events.emit(recombine.host.SELECTED_SLOT_CHANGED, slot)

	def show_status (self, message: str) -> None:

		self.status = message
		self.status_history.append(message)

	# ------------------------------------------------------------------
	# Internal helpers
	# ------------------------------------------------------------------

	def _track (self, index: int) -> Track:

		if not 1 <= index <= len(self.tracks):
			raise IndexError(f"Track index {index} out of range (1-{len(self.tracks)})")

		return self.tracks[index - 1]

	def _slot (self, index: int) -> Slot:

		if not 1 <= index <= len(self.slots):
			raise IndexError(f"Slot index {index} out of range (1-{len(self.slots)})")

		return self.slots[index - 1]

	def _track_data (self, slot: int, track: int) -> TrackData:

		return self._slot(slot).region.tracks.get(self._track(track), TrackData())

	@staticmethod
	def _check_length (lines: int) -> None:

		if not 1 <= lines <= recombine.constants.MAX_REGION_LENGTH:
			raise ValueError(f"Region length must be between 1 and {recombine.constants.MAX_REGION_LENGTH}, got {lines}")


def demo_song () -> Song:

	"""
	Build a small song with mixed region lengths, for trying the engine out.

	Four content tracks (drums, bass, keys, lead), a master and one send,
	and six slots whose regions are 16, 16, 12, 24, 8 and 16 lines long.
	"""

	song = Song(lines_per_beat=4)

	for name in ("drums", "bass", "keys", "lead"):
		song.add_track(name)

	song.add_track("master", recombine.host.TrackKind.MASTER)
	song.add_track("reverb", recombine.host.TrackKind.SEND)

	notes = ["C-4", "D#4", "F-4", "G-4", "A#4", "C-5"]

	for index, length in enumerate((16, 16, 12, 24, 8, 16)):

		slot = song.append_region(length=length, name=f"part {index + 1}")

		for track in range(1, song.content_track_count + 1):
			step = track + index % 3 + 1
			for line in range(1, length + 1, step):
				song.set_line(slot, track, line, f"{notes[(line + track) % len(notes)]} {track:02d}")

		song.add_automation_point(slot, 1, "cutoff", 1.0, 0.2)
		song.add_automation_point(slot, 1, "cutoff", float(length), 0.9)

	logger.debug(f"Demo song: {song.content_track_count} content tracks, {song.slot_count} slots")

	return song
