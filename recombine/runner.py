"""Asyncio driver for the engine's idle loop.

A real host calls :meth:`recombine.engine.Engine.on_idle_tick` from its own
idle notifier.  Standalone, the :class:`Runner` plays that part: it ticks
the engine every ``interval`` seconds in an asyncio task, draining the grid
controller's input queue first so presses and the work they trigger land
on the same thread.
"""

import asyncio
import logging
import typing

import recombine.controller
import recombine.engine
import recombine.osc


logger = logging.getLogger(__name__)


class Runner:

	"""
	Ticks an engine and owns the surfaces attached to it.

	Example:
		```python
		runner = Runner(engine, controller=controller, osc_server=osc_server)
		await runner.start()
		...
		await runner.stop()
		```
	"""

	def __init__ (
		self,
		engine: recombine.engine.Engine,
		controller: typing.Optional[recombine.controller.GridController] = None,
		osc_server: typing.Optional[recombine.osc.OscServer] = None,
		interval: typing.Optional[float] = None
	) -> None:

		self.engine = engine
		self.controller = controller
		self.osc_server = osc_server
		self.interval = interval if interval is not None else engine.options.idle_interval

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None
		self.ticks = 0


	async def start (self, start_engine: bool = True) -> None:

		"""Open the surfaces, start the engine and begin ticking."""

		if self.running:
			return

		if self.controller is not None:
			self.controller.open()

		if self.osc_server is not None:
			await self.osc_server.start()

		if start_engine:
			self.engine.start()

		self.running = True
		self.task = asyncio.create_task(self._run_loop())

		logger.info(f"Runner started (tick every {self.interval * 1000:.0f} ms)")


	async def stop (self) -> None:

		"""Stop ticking, hand the song back and close the surfaces."""

		if not self.running:
			return

		logger.info("Stopping runner...")

		self.running = False

		if self.task:
			await self.task
			self.task = None

		self.engine.stop()

		# one last tick so surfaces see the final state
		self.tick()

		if self.controller is not None:
			self.controller.close()

		if self.osc_server is not None:
			await self.osc_server.stop()

		logger.info("Runner stopped")


	def tick (self) -> None:

		"""Run one idle tick: controller input first, then the engine."""

		if self.controller is not None:
			self.controller.drain()

		self.engine.on_idle_tick()
		self.ticks += 1


	async def _run_loop (self) -> None:

		while self.running:

			try:
				self.tick()
			except Exception:
				logger.exception("Error in idle tick")

			await asyncio.sleep(self.interval)
