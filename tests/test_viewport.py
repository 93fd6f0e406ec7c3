import typing

import pytest

import recombine.config
import recombine.engine
import recombine.song
import recombine.viewport


H = recombine.viewport.Axis.HORIZONTAL
V = recombine.viewport.Axis.VERTICAL


@pytest.fixture
def engine (big_song: recombine.song.Song, make_engine: typing.Callable) -> recombine.engine.Engine:

	"""A running engine on a song larger than the grid (limits: 5 across, 13 down)."""

	eng = make_engine(big_song)
	eng.start()
	eng.on_idle_tick()
	return eng


def test_limits (engine: recombine.engine.Engine) -> None:

	"""Limits leave a full grid of tracks and keep the region row off the grid."""

	assert engine.viewport.limit_h() == 5
	assert engine.viewport.limit_v() == 13


def test_limits_never_below_one (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""A song smaller than the grid still has a limit of 1."""

	engine = make_engine(song)
	engine.start()

	assert engine.viewport.limit_h() == 1
	assert engine.viewport.limit_v() == 1


def test_page_next_clamps_to_limit (engine: recombine.engine.Engine) -> None:

	"""Paging forward stops at the limit."""

	viewport = engine.viewport

	viewport.page_next(V)
	assert viewport.y_pos == 9

	viewport.page_next(V)
	assert viewport.y_pos == 13

	viewport.page_next(V)
	assert viewport.y_pos == 13


def test_page_prev_clamps_to_one (engine: recombine.engine.Engine) -> None:

	"""Paging back never goes below the first position."""

	viewport = engine.viewport

	viewport.page_next(V)
	viewport.page_next(V)
	viewport.page_prev(V)
	assert viewport.y_pos == 5

	viewport.page_prev(V)
	viewport.page_prev(V)
	assert viewport.y_pos == 1


def test_page_last_is_idempotent_and_in_bounds (engine: recombine.engine.Engine) -> None:

	"""
	Last page is the last whole page step that fits within the limit.

	With 8-slot pages and a limit of 13 that is 9, not the limit itself.
	"""

	viewport = engine.viewport

	viewport.page_last(V)
	first = viewport.y_pos
	viewport.page_last(V)

	assert viewport.y_pos == first == 9

	viewport.page_last(H)
	assert viewport.x_pos == 1


def test_page_last_with_small_page_size (engine: recombine.engine.Engine) -> None:

	"""With a 3-slot page the last page lines up with the page grid."""

	engine.set_page_size(vertical=3)
	engine.viewport.page_last(V)

	assert engine.viewport.y_pos == 13

	engine.viewport.page_prev(V)
	assert engine.viewport.y_pos == 10

	engine.set_page_size(horizontal=3)
	engine.viewport.page_last(H)

	assert engine.viewport.x_pos == 4


def test_page_first (engine: recombine.engine.Engine) -> None:

	"""First page goes back to position 1 on each axis."""

	viewport = engine.viewport

	viewport.page_last(H)
	viewport.page_last(V)
	viewport.page_first(H)
	viewport.page_first(V)

	assert (viewport.x_pos, viewport.y_pos) == (1, 1)


def test_positions_stay_in_bounds_under_any_sequence (engine: recombine.engine.Engine) -> None:

	"""No mix of navigation calls leaves the valid range."""

	viewport = engine.viewport
	moves = [viewport.page_next, viewport.page_last, viewport.page_prev, viewport.page_first]

	for index in range(40):
		axis = H if index % 3 else V
		moves[(index * 7) % len(moves)](axis)
		viewport.set_index(axis, (index * 5) % 17)

		assert 1 <= viewport.x_pos <= viewport.limit_h()
		assert 1 <= viewport.y_pos <= viewport.limit_v()


def test_set_index_maps_slider_values (engine: recombine.engine.Engine) -> None:

	"""A 0-based slider value maps to a position held within the limit."""

	viewport = engine.viewport

	viewport.set_index(V, 4)
	assert viewport.y_pos == 5

	viewport.set_index(V, 100)
	assert viewport.y_pos == 13

	viewport.set_index(H, -3)
	assert viewport.x_pos == 1


def test_set_viewport_index_ignored_when_stopped (engine: recombine.engine.Engine) -> None:

	"""The engine ignores slider input while stopped."""

	engine.stop()
	engine.set_viewport_index(V, 6)

	assert engine.viewport.y_pos == 1


def test_paging_selects_the_page_corner (engine: recombine.engine.Engine, big_song: recombine.song.Song) -> None:

	"""Paging pushes the new corner to the host's selection."""

	engine.viewport.page_next(H)
	engine.viewport.page_next(V)

	assert big_song.selected_track == 5
	assert big_song.edit_slot == 9


def test_paging_leaves_selection_alone_when_follow_off (big_song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""With follow mode off, paging does not touch the host's selection."""

	engine = make_engine(big_song, follow_mode=recombine.config.FollowMode.OFF)
	engine.start()

	engine.viewport.page_next(H)
	engine.viewport.page_next(V)

	assert big_song.selected_track == 1
	assert big_song.edit_slot == 1


def test_track_follow_mode_only_pushes_tracks (big_song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""Track follow mode pushes the track but not the slot."""

	engine = make_engine(big_song, follow_mode=recombine.config.FollowMode.TRACK)
	engine.start()

	engine.viewport.page_next(H)
	engine.viewport.page_next(V)

	assert big_song.selected_track == 5
	assert big_song.edit_slot == 1


def test_position_flags_only_on_change (engine: recombine.engine.Engine) -> None:

	"""Setting the same position again does not flag a repaint."""

	viewport = engine.viewport

	viewport.set_vertical(1)
	assert viewport.v_changed is False

	viewport.set_vertical(3)
	assert viewport.v_changed is True


def test_clamp_after_song_shrinks (engine: recombine.engine.Engine, big_song: recombine.song.Song) -> None:

	"""Removing slots pulls the position back inside the new limit."""

	engine.viewport.page_last(V)

	for _ in range(6):
		big_song.remove_slot(1)

	assert engine.viewport.y_pos == 7


def test_navigation_state (engine: recombine.engine.Engine) -> None:

	"""Button and slider state follow the position."""

	viewport = engine.viewport

	assert viewport.navigation(V) == recombine.viewport.NavigationState(
		prev_enabled=False, next_enabled=True, steps=13, index=0
	)

	viewport.page_next(V)
	viewport.page_next(V)

	assert viewport.navigation(V) == recombine.viewport.NavigationState(
		prev_enabled=True, next_enabled=False, steps=13, index=12
	)
