"""Viewport navigation over the track x slot space.

The physical grid shows ``grid_width`` tracks by ``grid_height`` slots.  The
viewport's top-left logical coordinate is ``(x_pos, y_pos)``; both are
1-based and always stay within ``[1, limit]`` for their axis.

Paging steps by the configured page size.  "Last page" is found by stepping
whole pages from 1 until the limit is reached - the same convention other
paged controls use, so pages line up when they share a page size - and the
result is then held to the limit.
"""

import dataclasses
import enum
import logging
import typing

import recombine.config

if typing.TYPE_CHECKING:
	from recombine.engine import Engine


logger = logging.getLogger(__name__)


class Axis (enum.Enum):

	HORIZONTAL = "h"
	VERTICAL = "v"


@dataclasses.dataclass (frozen=True)
class NavigationState:

	"""What the navigation controls for one axis should display."""

	prev_enabled: bool
	next_enabled: bool
	steps: int
	index: int


class Viewport:

	"""
	Tracks the visible window into the engine host's tracks and slots.

	Position changes only set the ``h_changed`` / ``v_changed`` flags; the
	idle loop picks them up and repaints.
	"""

	def __init__ (self, engine: "Engine") -> None:

		self._engine = engine

		self.x_pos = 1
		self.y_pos = 1

		self.page_size_h = 1
		self.page_size_v = 1

		# The user-selected track/slot, when it differs from the page corner
		self.actual_track: typing.Optional[int] = None
		self.actual_slot: typing.Optional[int] = None

		self.h_changed = False
		self.v_changed = False

		self.apply_page_sizes()

	@property
	def grid_width (self) -> int:

		return self._engine.options.grid_width

	@property
	def grid_height (self) -> int:

		return self._engine.options.grid_height

	def apply_page_sizes (self) -> None:

		"""Derive the paging steps from the options (automatic = grid size)."""

		options = self._engine.options

		self.page_size_h = options.page_size_h or self.grid_width
		self.page_size_v = options.page_size_v or self.grid_height

	# ------------------------------------------------------------------
	# Boundaries
	# ------------------------------------------------------------------

	def limit_v (self) -> int:

		return max(1, self._engine.host.slot_count - self.grid_height)

	def limit_h (self) -> int:

		return max(1, self._engine.host.content_track_count - self.grid_width + 1)

	def clamp (self) -> None:

		"""Pull the position back inside the limits after the song shrank."""

		self.set_horizontal(min(self.x_pos, self.limit_h()))
		self.set_vertical(min(self.y_pos, self.limit_v()))

	# ------------------------------------------------------------------
	# Position
	# ------------------------------------------------------------------

	def set_vertical (self, idx: int) -> None:

		if self.y_pos != idx:
			self.y_pos = idx
			self.v_changed = True

	def set_horizontal (self, idx: int) -> None:

		if self.x_pos != idx:
			self.x_pos = idx
			self.h_changed = True

	def set_index (self, axis: Axis, index: int) -> None:

		"""
		Set the position from a slider-style control.

		``index`` is the 0-based slider value; it is held to the axis limit.
		"""

		if axis is Axis.HORIZONTAL:
			self.set_horizontal(max(1, min(self.limit_h(), index + 1)))
			self.align_track()
		else:
			self.set_vertical(max(1, min(self.limit_v(), index + 1)))
			self.align_slot()

	def follow_track (self, track: int) -> None:

		"""Move to the page containing a track selected in the host."""

		self.actual_track = track
		page = (track - 1) // self.page_size_h
		self.set_horizontal(min(self.limit_h(), page * self.page_size_h + 1))

		# keep the slot selection where it is when the next repaint pushes it
		self.actual_slot = self._engine.host.edit_slot

	def follow_slot (self, slot: int) -> None:

		"""Move to the page containing a slot, when following slots."""

		follow_mode = self._engine.options.follow_mode

		if follow_mode is recombine.config.FollowMode.OFF:
			return

		if follow_mode is recombine.config.FollowMode.TRACK_AND_SLOT:
			self.actual_slot = slot
			page = (slot - 1) // self.page_size_v
			self.set_vertical(min(self.limit_v(), page * self.page_size_v + 1))

		# keep the track selection where it is when the next repaint pushes it
		self.actual_track = self._engine.host.selected_track

	# ------------------------------------------------------------------
	# Paging
	# ------------------------------------------------------------------

	def page_prev (self, axis: Axis) -> None:

		if axis is Axis.HORIZONTAL:
			self.set_horizontal(min(self.limit_h(), max(1, self.x_pos - self.page_size_h)))
			self.align_track()
		else:
			self.set_vertical(min(self.limit_v(), max(1, self.y_pos - self.page_size_v)))
			self.align_slot()

	def page_next (self, axis: Axis) -> None:

		if axis is Axis.HORIZONTAL:
			limit = self.limit_h()
			if self.x_pos < limit:
				self.set_horizontal(min(limit, self.x_pos + self.page_size_h))
				self.align_track()
		else:
			limit = self.limit_v()
			if self.y_pos < limit:
				self.set_vertical(min(limit, self.y_pos + self.page_size_v))
				self.align_slot()

	def page_first (self, axis: Axis) -> None:

		if axis is Axis.HORIZONTAL:
			self.set_horizontal(1)
			self.align_track()
		else:
			self.set_vertical(1)
			self.align_slot()

	def page_last (self, axis: Axis) -> None:

		if axis is Axis.HORIZONTAL:
			self.set_horizontal(self._last_page(self.limit_h(), self.page_size_h))
			self.align_track()
		else:
			self.set_vertical(self._last_page(self.limit_v(), self.page_size_v))
			self.align_slot()

	@staticmethod
	def _last_page (limit: int, page_size: int) -> int:

		"""The last whole-page step from 1 that stays within the limit."""

		position = 1

		while position + page_size <= limit:
			position += page_size

		return position

	# ------------------------------------------------------------------
	# Selection follow
	# ------------------------------------------------------------------

	def align_track (self) -> None:

		"""Select the page's first track; it replaces any track picked in the host."""

		self.actual_track = None

		if self._engine.options.follow_mode is not recombine.config.FollowMode.OFF:
			self._engine.push_selection(track=self.x_pos)

	def align_slot (self) -> None:

		self.actual_slot = None

		if self._engine.options.follow_mode is recombine.config.FollowMode.TRACK_AND_SLOT:
			self._engine.push_selection(slot=self.y_pos)

	def navigation (self, axis: Axis) -> NavigationState:

		"""
		Compute the state of the prev/next buttons and slider for one axis.

		Next is lit while there is more to the right/below; prev is lit once
		the position is past the first page.
		"""

		if axis is Axis.HORIZONTAL:
			position = self.actual_track or self.x_pos
			limit = self.limit_h()
			return NavigationState(
				prev_enabled = position > self.page_size_h,
				next_enabled = position < limit,
				steps = limit,
				index = min(limit, self.x_pos - 1)
			)

		position = self.actual_slot or self.y_pos
		limit = self.limit_v()
		return NavigationState(
			prev_enabled = position > self.page_size_v,
			next_enabled = position < limit,
			steps = limit,
			index = min(limit, self.y_pos - 1)
		)
