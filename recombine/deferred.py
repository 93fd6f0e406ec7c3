"""One-shot deferred calls, polled from the idle tick.

A deferred call runs *no earlier than* its requested delay.  There is no
timer behind it: :meth:`DeferredScheduler.poll` is called once per host tick
and runs whatever has become due, so the real delay is rounded up to the
next tick.  A delay of zero means "on the next tick" - never immediately,
even when the call is scheduled from inside another deferred call.

Due calls run in order of due time, and calls with the same due time run in
the order they were scheduled.
"""

import heapq
import itertools
import logging
import time
import typing


logger = logging.getLogger(__name__)


ClockType = typing.Callable[[], float]


class DeferredCall:

	"""A scheduled callback with its arguments."""

	def __init__ (self, due: float, callback: typing.Callable[..., typing.Any], args: typing.Tuple[typing.Any, ...]) -> None:

		self.due = due
		self.callback = callback
		self.args = args

	def __call__ (self) -> None:

		self.callback(*self.args)


class DeferredScheduler:

	"""
	An owned queue of ``(due time, callback)`` entries drained once per tick.

	Example:
		```python
		scheduler = DeferredScheduler()
		scheduler.call_later(0.1, restore_mute_state, 3)

		# ...once per host tick...
		scheduler.poll()
		```
	"""

	def __init__ (self, clock: typing.Optional[ClockType] = None) -> None:

		"""
		Parameters:
			clock: Returns the current time in seconds.  Defaults to
				``time.monotonic``; tests pass a manual clock.
		"""

		self._clock: ClockType = clock or time.monotonic
		self._queue: typing.List[typing.Tuple[float, int, DeferredCall]] = []
		self._counter = itertools.count()

	def __len__ (self) -> int:

		return len(self._queue)

	def call_later (self, delay: float, callback: typing.Callable[..., typing.Any], *args: typing.Any) -> DeferredCall:

		"""
		Schedule ``callback(*args)`` to run no earlier than ``delay`` seconds from now.
		"""

		if delay < 0:
			raise ValueError(f"Deferred call delay must be zero or positive, got {delay}")

		call = DeferredCall(self._clock() + delay, callback, args)
		heapq.heappush(self._queue, (call.due, next(self._counter), call))

		return call

	def poll (self) -> int:

		"""
		Run every call that is due, returning how many ran.

		All due entries are taken off the queue before any of them runs, so
		calls scheduled while draining wait for the next poll.  A failing
		callback is logged and does not prevent the others from running.
		"""

		now = self._clock()
		due: typing.List[DeferredCall] = []

		while self._queue and self._queue[0][0] <= now:
			_, _, call = heapq.heappop(self._queue)
			due.append(call)

		for call in due:
			try:
				call()
			except Exception:
				logger.exception(f"Deferred call {getattr(call.callback, '__name__', call.callback)!r} failed")

		return len(due)

	def clear (self) -> None:

		"""Drop every pending call."""

		self._queue = []
		self._counter = itertools.count()
