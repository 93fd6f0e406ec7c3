import logging

import pytest

import recombine.config


def test_defaults () -> None:

	"""Default options follow tracks and slots with automatic paging."""

	options = recombine.config.Options()

	assert options.follow_mode is recombine.config.FollowMode.TRACK_AND_SLOT
	assert options.polyrhythms is True
	assert options.page_size_h is None
	assert options.page_size_v is None
	assert options.auto_start is True
	assert options.hold_to_copy is True
	assert (options.grid_width, options.grid_height) == (8, 8)


def test_from_dict_converts_values () -> None:

	"""String values from a config file become typed options."""

	options = recombine.config.Options.from_dict({
		"follow_mode": "track",
		"page_size_h": "auto",
		"page_size_v": "4",
		"polyrhythms": False,
	})

	assert options.follow_mode is recombine.config.FollowMode.TRACK
	assert options.page_size_h is None
	assert options.page_size_v == 4
	assert options.polyrhythms is False


def test_from_dict_empty () -> None:

	"""No engine section gives the defaults."""

	assert recombine.config.Options.from_dict(None) == recombine.config.Options()


def test_from_dict_ignores_unknown_keys (caplog: pytest.LogCaptureFixture) -> None:

	"""Unknown keys are logged and skipped."""

	with caplog.at_level(logging.WARNING):
		options = recombine.config.Options.from_dict({"colour": "blue", "auto_start": False})

	assert options.auto_start is False
	assert "colour" in caplog.text


def test_invalid_follow_mode () -> None:

	"""An unknown follow mode names the valid choices."""

	with pytest.raises(ValueError, match="track_and_slot"):
		recombine.config.Options.from_dict({"follow_mode": "sometimes"})


@pytest.mark.parametrize("value", [0, 17, "big"])
def test_invalid_page_size (value: object) -> None:

	"""Page sizes outside 1-16 are rejected."""

	with pytest.raises(ValueError, match="page_size_v"):
		recombine.config.Options(page_size_v=value)  # type: ignore[arg-type]


def test_invalid_timings () -> None:

	"""The idle interval must be positive."""

	with pytest.raises(ValueError, match="idle_interval"):
		recombine.config.Options(idle_interval=0)


def test_load_config_missing_file (tmp_path, caplog: pytest.LogCaptureFixture) -> None:

	"""A missing file logs a warning and gives an empty configuration."""

	with caplog.at_level(logging.WARNING):
		config = recombine.config.load_config(str(tmp_path / "missing.yaml"))

	assert config == {}
	assert "not found" in caplog.text


def test_load_config_reads_yaml (tmp_path) -> None:

	"""Sections of a YAML file come back as nested dicts."""

	path = tmp_path / "config.yaml"
	path.write_text(
		"engine:\n"
		"  follow_mode: off\n"
		"  page_size_v: 2\n"
		"osc:\n"
		"  receive_port: 9100\n"
	)

	config = recombine.config.load_config(str(path))

	assert config["osc"] == {"receive_port": 9100}
	assert config["engine"]["page_size_v"] == 2

	options = recombine.config.Options.from_dict(config["engine"])

	assert options.follow_mode is recombine.config.FollowMode.OFF


def test_load_config_rejects_non_mapping (tmp_path) -> None:

	"""A file that is not a mapping is an error."""

	path = tmp_path / "config.yaml"
	path.write_text("- just\n- a list\n")

	with pytest.raises(ValueError, match="mapping"):
		recombine.config.load_config(str(path))
