"""Backend interface for the surfaces that host embedded contexts."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from chatbridge.contexts.views import ContextBounds

# Receives (context_id, payload) for every result report made by a page.
ResultListener = Callable[[str, str], None]


class ContextBackend(ABC):
	"""Creates and drives the native surfaces behind contexts.

	Implementations address surfaces by context id and must forward every call
	of the page-level report function (REPORT_FUNCTION) to the result listener.
	"""

	def __init__(self):
		self._result_listener: ResultListener | None = None

	def set_result_listener(self, listener: ResultListener | None) -> None:
		self._result_listener = listener

	def emit_result(self, context_id: str, payload: str) -> None:
		if self._result_listener is not None:
			self._result_listener(context_id, payload)

	@abstractmethod
	async def create(self, context_id: str, url: str, bounds: ContextBounds) -> None:
		"""Create a hidden surface for the context and start loading url."""

	@abstractmethod
	async def navigate(self, context_id: str, url: str) -> None: ...

	@abstractmethod
	async def set_bounds(self, context_id: str, bounds: ContextBounds) -> None: ...

	@abstractmethod
	async def show(self, context_id: str) -> None: ...

	@abstractmethod
	async def hide(self, context_id: str) -> None: ...

	@abstractmethod
	async def focus(self, context_id: str) -> None: ...

	@abstractmethod
	async def close(self, context_id: str) -> None:
		"""Release the surface. Must tolerate surfaces that are already gone."""

	@abstractmethod
	async def evaluate(self, context_id: str, script: str) -> None:
		"""Submit script text for evaluation without waiting for its result."""
