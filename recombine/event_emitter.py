import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A synchronous observer registry.

	Hosts publish structural, selection and transport notifications through
	one of these, and the engine publishes repaint and status updates to its
	output surfaces the same way.  Everything runs on the caller's thread.
	"""

	def __init__ (self) -> None:

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		self._listeners.setdefault(event_name, []).append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		listeners = self._listeners.get(event_name, [])

		if callback not in listeners:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		listeners.remove(callback)


	def has_listeners (self, event_name: str) -> bool:

		return bool(self._listeners.get(event_name))


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for the event, in registration order.

		The listener list is copied first, so a callback may unregister itself
		(or others) while the event is being delivered.
		"""

		for callback in list(self._listeners.get(event_name, [])):
			callback(*args, **kwargs)
