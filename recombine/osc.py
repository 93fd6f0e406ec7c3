"""OSC remote control and state broadcasting.

The OSC server gives any OSC-capable surface (a tablet layout, another
program) the same controls as the grid.  It listens on a UDP port (default
9000) and sends state to a target host/port (default 127.0.0.1:9001).

Receive Handlers
────────────────
- ``/toggle <col> <row> [whole]``: Press a grid cell (``whole`` non-zero for a whole-region copy)
- ``/page/<h|v>/<next|prev|first|last>``: Page the viewport
- ``/viewport/<h|v> <index>``: Set the viewport position from a 0-based slider index
- ``/start``, ``/stop``: Start or stop the engine

Send Events
───────────
- ``/status <string>``: Operator status messages
- ``/grid <col> <row> <state>...``: Cell states after each repaint, one message per column
- ``/navigation/<h|v> <prev> <next> <steps> <index>``: Navigation control state
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import recombine.engine
import recombine.grid
import recombine.viewport


logger = logging.getLogger(__name__)


_AXES = {axis.value: axis for axis in recombine.viewport.Axis}


class OscServer:

	"""Async OSC server/client for remote control of an engine."""

	def __init__ (
		self,
		engine: recombine.engine.Engine,
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._engine = engine
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/toggle", self._handle_toggle)
		self._dispatcher.map("/page/*", self._handle_page)
		self._dispatcher.map("/viewport/*", self._handle_viewport)
		self._dispatcher.map("/start", self._handle_start)
		self._dispatcher.map("/stop", self._handle_stop)


	async def start (self) -> None:

		"""Start the OSC server and client, and follow engine updates."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_event_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		self._engine.events.on(recombine.engine.STATUS_CHANGED, self._on_status)
		self._engine.events.on(recombine.engine.GRID_CHANGED, self._on_grid)
		self._engine.events.on(recombine.engine.NAVIGATION_CHANGED, self._on_navigation)

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:

			self._engine.events.off(recombine.engine.STATUS_CHANGED, self._on_status)
			self._engine.events.off(recombine.engine.GRID_CHANGED, self._on_grid)
			self._engine.events.off(recombine.engine.NAVIGATION_CHANGED, self._on_navigation)

			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	@property
	def port (self) -> typing.Optional[int]:

		"""The UDP port actually bound (useful when started with port 0)."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, list(args))
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	# Handlers

	def _handle_toggle (self, address: str, *args: typing.Any) -> None:

		if len(args) < 2:
			logger.warning(f"OSC {address} needs a column and a row")
			return

		try:
			column, row = int(args[0]), int(args[1])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC toggle arguments: {args}")
			return

		whole_region = bool(args[2]) if len(args) > 2 else False
		self._engine.toggle(column, row, whole_region=whole_region)

	def _handle_page (self, address: str, *args: typing.Any) -> None:
		# address is like /page/h/next
		parts = address.split("/")
		if len(parts) < 4 or parts[2] not in _AXES:
			return

		axis = _AXES[parts[2]]
		actions = {
			"next": self._engine.page_next,
			"prev": self._engine.page_prev,
			"first": self._engine.page_first,
			"last": self._engine.page_last,
		}

		action = actions.get(parts[3])
		if action is None:
			logger.warning(f"Unknown OSC page action: {address}")
			return

		action(axis)

	def _handle_viewport (self, address: str, *args: typing.Any) -> None:
		# address is like /viewport/v
		parts = address.split("/")
		if len(parts) < 3 or parts[2] not in _AXES or not args:
			return
		try:
			index = int(args[0])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC viewport index: {args[0]}")
			return
		self._engine.set_viewport_index(_AXES[parts[2]], index)

	def _handle_start (self, address: str, *args: typing.Any) -> None:
		self._engine.start()

	def _handle_stop (self, address: str, *args: typing.Any) -> None:
		self._engine.stop()


	# Broadcasts

	def _on_status (self, message: str) -> None:
		self.send("/status", message)

	def _on_grid (self, cells: typing.List[typing.List[recombine.grid.CellState]]) -> None:
		for column, states in enumerate(cells, start=1):
			self.send("/grid", column, *[state.value for state in states])

	def _on_navigation (self, axis: recombine.viewport.Axis, state: recombine.viewport.NavigationState) -> None:
		self.send(f"/navigation/{axis.value}", int(state.prev_enabled), int(state.next_enabled), state.steps, state.index)
