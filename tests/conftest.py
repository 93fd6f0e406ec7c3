import typing

import mido
import pytest

import recombine.config
import recombine.engine
import recombine.host
import recombine.song


class FakeMidiOut:

	"""Minimal MIDI output stub for tests that records what is sent."""

	def __init__ (self) -> None:

		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		"""Record outgoing MIDI messages."""

		self.sent.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		"""Store the callback for injecting test messages."""

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


def _fake_get_output_names () -> typing.List[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	return FakeMidiOut()


def _fake_get_input_names () -> typing.List[str]:

	"""Return a fixed list of MIDI input names for tests."""

	return ["Dummy MIDI"]


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	"""Return a fake MIDI input regardless of the name."""

	return FakeMidiIn(callback=callback)


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use fake MIDI output and input for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)
	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


class ManualClock:

	"""A clock that only moves when told to."""

	def __init__ (self, now: float = 0.0) -> None:

		self.now = now

	def __call__ (self) -> float:

		return self.now

	def advance (self, seconds: float) -> None:

		self.now += seconds


def build_song (lengths: typing.Sequence[int], tracks: int = 4, lines_per_beat: int = 4) -> recombine.song.Song:

	"""
	Build a song with one region per length and every line filled.

	Line values read ``"<slot>:<track>:<line>"`` so copies can be traced back
	to their source.  A master track follows the content tracks.
	"""

	song = recombine.song.Song(lines_per_beat=lines_per_beat)

	for index in range(tracks):
		song.add_track(f"track {index + 1}")

	song.add_track("master", recombine.host.TrackKind.MASTER)

	for index, length in enumerate(lengths):

		slot = song.append_region(length=length, name=f"region {index + 1}")

		for track in range(1, tracks + 1):
			for line in range(1, length + 1):
				song.set_line(slot, track, line, f"{slot}:{track}:{line}")

	return song


@pytest.fixture
def clock () -> ManualClock:

	"""A manual clock starting at zero."""

	return ManualClock()


@pytest.fixture
def make_song () -> typing.Callable[..., recombine.song.Song]:

	"""Factory for songs with filled regions of the given lengths."""

	return build_song


@pytest.fixture
def song () -> recombine.song.Song:

	"""Four content tracks over six regions of mixed lengths."""

	return build_song([16, 16, 12, 24, 8, 16])


@pytest.fixture
def big_song () -> recombine.song.Song:

	"""Twelve content tracks over twenty 16-line regions, larger than the grid."""

	return build_song([16] * 20, tracks=12)


@pytest.fixture
def make_engine (clock: ManualClock) -> typing.Callable[..., recombine.engine.Engine]:

	"""Factory for engines on the manual clock, with auto start off unless asked for."""

	def factory (host: recombine.song.Song, **options: typing.Any) -> recombine.engine.Engine:

		options.setdefault("auto_start", False)
		return recombine.engine.Engine(host, recombine.config.Options(**options), clock=clock)

	return factory


@pytest.fixture
def engine (song: recombine.song.Song, make_engine: typing.Callable[..., recombine.engine.Engine]) -> recombine.engine.Engine:

	"""A running engine on the default song, after its first idle tick."""

	eng = make_engine(song)
	eng.start()
	eng.on_idle_tick()
	return eng
