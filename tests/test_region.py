import typing

import pytest

import recombine.constants
import recombine.engine
import recombine.host
import recombine.region
import recombine.song


RESERVED = recombine.constants.RESERVED_REGION_NAME


def _position (slot: int, line: int) -> recombine.host.PlaybackPosition:

	return recombine.host.PlaybackPosition(slot=slot, line=line)


def test_ensure_region_creates_at_end (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""Without a reserved region, one is appended."""

	engine = make_engine(song)

	assert engine.regions.ensure_region() == 7
	assert song.region_name(7) == RESERVED
	assert engine.regions.running_start == 1


def test_ensure_region_reuses_last (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""An existing reserved region at the end is cleared and unmuted, not duplicated."""

	song.set_region_name(6, RESERVED)
	song.set_slot_muted(2, 6, True)

	engine = make_engine(song)

	assert engine.regions.ensure_region() == 6
	assert song.slot_count == 6
	assert song.track_is_empty(6, 1)
	assert not song.is_slot_muted(2, 6)


def test_ensure_region_clears_stale_names (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""Reserved names left elsewhere in the song are removed."""

	song.set_region_name(2, RESERVED)
	song.set_region_name(4, f"{RESERVED} copy")

	engine = make_engine(song)
	engine.regions.ensure_region()

	assert song.region_name(2) == ""
	assert song.region_name(4) == ""
	assert song.region_name(7) == RESERVED


def test_running_start_from_playback (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""When playing, the running start is the playing slot rather than the edited one."""

	song.edit_slot = 2
	song.playing = True
	song.playback_position = _position(5, 1)

	engine = make_engine(song)
	engine.regions.ensure_region()

	assert engine.regions.running_start == 5


def test_verify (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""Verification fails once the region loses its name."""

	engine.regions.verify()

	song.set_region_name(7, "")

	with pytest.raises(recombine.region.LostRegionError, match="no longer the recombination region"):
		engine.regions.verify()


def test_preserve_playback_keeps_distance_to_end (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""Shrinking 16 to 8 lines under line 14 continues at line 6."""

	engine.regions.preserve_playback_on_resize(16, 8, _position(7, 14))

	assert song.playback_position == _position(7, 6)


def test_preserve_playback_ignores_early_positions (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""A playhead still inside the new length is left alone."""

	song.playback_position = _position(7, 3)

	engine.regions.preserve_playback_on_resize(16, 8, _position(7, 3))
	engine.regions.preserve_playback_on_resize(8, 16, _position(7, 12))

	assert song.playback_position == _position(7, 3)


@pytest.mark.parametrize("old_length, new_length, line, expected", [
	(64, 3, 4, 3),
	(10, 3, 5, 2),
	(10, 2, 4, 2),
	(10, 2, 3, 1),
	(16, 4, 16, 4),
])
def test_preserve_playback_steps_by_beats (
	engine: recombine.engine.Engine,
	song: recombine.song.Song,
	old_length: int,
	new_length: int,
	line: int,
	expected: int
) -> None:

	"""Positions before the start move forward a beat at a time and stay in range."""

	engine.regions.preserve_playback_on_resize(old_length, new_length, _position(7, line))

	assert song.playback_position == _position(7, expected)
	assert 1 <= song.playback_position.line <= new_length


def test_lock_playback (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""Locking moves playback into the region, holding the line to its length."""

	song.playback_position = _position(2, 9)
	engine.regions.lock_playback()
	assert song.playback_position == _position(7, 9)

	song.playback_position = _position(3, 30)
	engine.regions.lock_playback()
	assert song.playback_position == _position(7, 16)


def test_lock_playback_restart (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""A restart from elsewhere lands on the last line; inside the region nothing moves."""

	song.playback_position = _position(2, 9)
	engine.regions.lock_playback(restart=True)
	assert song.playback_position == _position(7, 16)

	song.playback_position = _position(7, 5)
	engine.regions.lock_playback(restart=True)
	assert song.playback_position == _position(7, 5)


def test_restore_running_start (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""Playback goes back to the running start, line held to that region's length."""

	engine.regions.running_start = 5
	song.playback_position = _position(7, 12)

	assert engine.regions.restore_running_start() is True
	assert song.playback_position == _position(5, 8)


def test_restore_running_start_invalid (engine: recombine.engine.Engine, song: recombine.song.Song) -> None:

	"""A running start that is gone or is the region itself is refused."""

	engine.regions.running_start = 7
	assert engine.regions.restore_running_start() is False

	engine.regions.running_start = None
	assert engine.regions.restore_running_start() is False
