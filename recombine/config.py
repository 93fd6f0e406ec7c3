"""Engine options and YAML configuration loading.

Options map one-to-one to the behaviours an operator can change:

- ``follow_mode`` - push the viewport position to the host's selection
  (``off``, ``track``, ``track_and_slot``).
- ``polyrhythms`` - expand the recombination region to the least common
  multiple of the active tracks' lengths.
- ``page_size_h`` / ``page_size_v`` - paging step, ``auto`` to use the grid size.
- ``auto_start`` - start transport playback once the engine is running.
- ``hold_to_copy`` - press-and-hold copies a whole region, a tap copies one
  track.  When disabled every press copies one track.  Read when the engine
  starts, so a change takes effect on the next start.

A configuration file looks like::

	engine:
	  follow_mode: track
	  polyrhythms: true
	  page_size_h: auto
	  page_size_v: 4
	controller:
	  input: "Launchpad Mini MK3 MIDI 2"
	  output: "Launchpad Mini MK3 MIDI 2"
	osc:
	  receive_port: 9000
"""

import dataclasses
import enum
import logging
import os
import typing

import yaml

import recombine.constants


logger = logging.getLogger(__name__)


class FollowMode (enum.Enum):

	"""How the viewport drives the host's track/slot selection."""

	OFF = "off"
	TRACK = "track"
	TRACK_AND_SLOT = "track_and_slot"


def parse_page_size (key: str, value: typing.Any) -> typing.Optional[int]:

	if value is None or value == "auto":
		return None

	try:
		size = int(value)
	except (TypeError, ValueError):
		raise ValueError(f"{key} must be 'auto' or an integer, got {value!r}") from None

	if not recombine.constants.MIN_PAGE_SIZE <= size <= recombine.constants.MAX_PAGE_SIZE:
		raise ValueError(
			f"{key} must be between {recombine.constants.MIN_PAGE_SIZE} and "
			f"{recombine.constants.MAX_PAGE_SIZE}, got {size}"
		)

	return size


@dataclasses.dataclass
class Options:

	"""
	The engine's configuration surface.

	``page_size_h`` and ``page_size_v`` are ``None`` for automatic paging
	(one full grid width/height per step).
	"""

	follow_mode: FollowMode = FollowMode.TRACK_AND_SLOT
	polyrhythms: bool = True
	page_size_h: typing.Optional[int] = None
	page_size_v: typing.Optional[int] = None
	auto_start: bool = True
	hold_to_copy: bool = True
	grid_width: int = recombine.constants.DEFAULT_GRID_WIDTH
	grid_height: int = recombine.constants.DEFAULT_GRID_HEIGHT
	idle_interval: float = recombine.constants.DEFAULT_IDLE_INTERVAL
	hold_time: float = recombine.constants.DEFAULT_HOLD_TIME

	def __post_init__ (self) -> None:

		if isinstance(self.follow_mode, str):
			self.follow_mode = FollowMode(self.follow_mode)

		self.page_size_h = parse_page_size("page_size_h", self.page_size_h)
		self.page_size_v = parse_page_size("page_size_v", self.page_size_v)

		if self.grid_width < 1 or self.grid_height < 1:
			raise ValueError(f"Grid must be at least 1x1, got {self.grid_width}x{self.grid_height}")

		if self.idle_interval <= 0:
			raise ValueError("idle_interval must be positive")

		if self.hold_time < 0:
			raise ValueError("hold_time must be zero or positive")

	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Dict[str, typing.Any]]) -> "Options":

		"""
		Build options from a plain dict (the ``engine`` section of a config file).

		Unknown keys are logged and ignored.  Invalid values raise ``ValueError``.
		"""

		if not data:
			return cls()

		known = {field.name for field in dataclasses.fields(cls)}
		kwargs: typing.Dict[str, typing.Any] = {}

		for key, value in data.items():

			if key not in known:
				logger.warning(f"Ignoring unknown engine option {key!r}")
				continue

			kwargs[key] = value

		if "follow_mode" in kwargs:

			# YAML reads an unquoted off as false
			if kwargs["follow_mode"] is False:
				kwargs["follow_mode"] = FollowMode.OFF.value

			try:
				kwargs["follow_mode"] = FollowMode(kwargs["follow_mode"])
			except ValueError:
				choices = ", ".join(mode.value for mode in FollowMode)
				raise ValueError(f"follow_mode must be one of {choices}, got {kwargs['follow_mode']!r}") from None

		return cls(**kwargs)


def load_config (config_path: str = "config.yaml") -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file.

	A missing file is not an error: a warning is logged and an empty
	configuration (all defaults) is returned.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

	return data
