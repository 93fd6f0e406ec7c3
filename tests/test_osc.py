import asyncio
import typing

import pytest

import pythonosc.udp_client

import recombine.engine
import recombine.osc
import recombine.song


async def _server (engine: recombine.engine.Engine) -> typing.Tuple[recombine.osc.OscServer, pythonosc.udp_client.SimpleUDPClient]:

	server = recombine.osc.OscServer(engine, receive_port=0, send_port=0)
	await server.start()

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", server.port)
	return server, client


@pytest.mark.asyncio
async def test_osc_toggle_handler (engine: recombine.engine.Engine) -> None:

	"""Sending /toggle should copy the track at that cell."""

	server, client = await _server(engine)

	client.send_message("/toggle", [2, 3])
	await asyncio.sleep(0.1)

	assert engine.active_slots[2] == 3

	client.send_message("/toggle", [1, 4, 1])
	await asyncio.sleep(0.1)

	assert engine.active_slots == {1: 4, 2: 4, 3: 4, 4: 4}

	await server.stop()


@pytest.mark.asyncio
async def test_osc_page_and_viewport_handlers (big_song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""Sending /page and /viewport messages should move the viewport."""

	engine = make_engine(big_song)
	engine.start()
	engine.set_page_size(horizontal=2)

	server, client = await _server(engine)

	client.send_message("/page/v/next", [])
	await asyncio.sleep(0.1)
	assert engine.viewport.y_pos == 9

	client.send_message("/page/h/last", [])
	await asyncio.sleep(0.1)
	assert engine.viewport.x_pos == 5

	client.send_message("/viewport/v", 2)
	await asyncio.sleep(0.1)
	assert engine.viewport.y_pos == 3

	client.send_message("/page/v/sideways", [])
	await asyncio.sleep(0.1)
	assert engine.viewport.y_pos == 3

	await server.stop()


@pytest.mark.asyncio
async def test_osc_start_stop_handlers (song: recombine.song.Song, make_engine: typing.Callable) -> None:

	"""Sending /start and /stop should drive the engine lifecycle."""

	engine = make_engine(song)
	server, client = await _server(engine)

	client.send_message("/start", [])
	await asyncio.sleep(0.1)
	assert engine.state is recombine.engine.EngineState.RUNNING

	client.send_message("/stop", [])
	await asyncio.sleep(0.1)
	assert engine.state is recombine.engine.EngineState.STOPPED

	await server.stop()


@pytest.mark.asyncio
async def test_osc_broadcasts_status (engine: recombine.engine.Engine) -> None:

	"""Engine status messages are sent to /status."""

	server, _ = await _server(engine)
	sent: typing.List[typing.Tuple[str, typing.Tuple[typing.Any, ...]]] = []
	server.send = lambda address, *args: sent.append((address, args))  # type: ignore[method-assign]

	engine.toggle(2, 3)

	assert ("/status", ("2x poly combo!",)) in sent

	await server.stop()


@pytest.mark.asyncio
async def test_osc_bad_arguments_ignored (engine: recombine.engine.Engine) -> None:

	"""Malformed messages are logged and ignored."""

	server, client = await _server(engine)

	client.send_message("/toggle", [2])
	client.send_message("/toggle", ["a", "b"])
	await asyncio.sleep(0.1)

	assert engine.active_slots == {1: 1}

	await server.stop()
