"""Shared fixtures: an in-process context backend and host window."""

import asyncio
import json
import re
from collections.abc import Callable
from typing import Any

import pytest
import pytest_asyncio

from chatbridge.contexts.backend import ContextBackend
from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import ContextBounds
from chatbridge.visibility.views import HostWindow

CORRELATION_PATTERN = re.compile(r'correlationId: "([^"]+)"')

# (context_id, submitted script) -> result object to report, or None to stay silent
Responder = Callable[[str, str], dict[str, Any] | None]


class FakeBackend(ContextBackend):
	"""Records every call and answers wrapped scripts through the result listener."""

	def __init__(self, responder: Responder | None = None, create_delay: float = 0.0, fail_create: bool = False):
		super().__init__()
		self.responder = responder
		self.create_delay = create_delay
		self.fail_create = fail_create
		self.calls: list[tuple[str, str]] = []
		self.scripts: list[tuple[str, str]] = []

	def calls_for(self, name: str) -> list[str]:
		return [context_id for call, context_id in self.calls if call == name]

	async def create(self, context_id: str, url: str, bounds: ContextBounds) -> None:
		self.calls.append(('create', context_id))
		if self.create_delay:
			await asyncio.sleep(self.create_delay)
		if self.fail_create:
			raise RuntimeError('window could not be created')

	async def navigate(self, context_id: str, url: str) -> None:
		self.calls.append(('navigate', context_id))

	async def set_bounds(self, context_id: str, bounds: ContextBounds) -> None:
		self.calls.append(('set_bounds', context_id))

	async def show(self, context_id: str) -> None:
		self.calls.append(('show', context_id))

	async def hide(self, context_id: str) -> None:
		self.calls.append(('hide', context_id))

	async def focus(self, context_id: str) -> None:
		self.calls.append(('focus', context_id))

	async def close(self, context_id: str) -> None:
		self.calls.append(('close', context_id))

	async def evaluate(self, context_id: str, script: str) -> None:
		self.calls.append(('evaluate', context_id))
		self.scripts.append((context_id, script))

		match = CORRELATION_PATTERN.search(script)
		if match is None or self.responder is None:
			return

		result = self.responder(context_id, script)
		if result is None:
			return

		payload = json.dumps({'correlationId': match.group(1), 'result': result})
		asyncio.get_running_loop().call_soon(self.emit_result, context_id, payload)


class FakeHostWindow(HostWindow):
	"""Host window recording hide/show into a shared call log."""

	def __init__(self, calls: list[tuple[str, str]]):
		self.calls = calls

	async def hide(self) -> None:
		self.calls.append(('host_hide', 'host'))

	async def show(self) -> None:
		self.calls.append(('host_show', 'host'))


def succeed(actions_executed: int = 1, payload: dict[str, Any] | None = None) -> Responder:
	"""Responder reporting success for every script."""

	def respond(context_id: str, script: str) -> dict[str, Any]:
		result: dict[str, Any] = {'success': True, 'duration': 5, 'actionsExecuted': actions_executed}
		if payload is not None:
			result['payload'] = payload
		return result

	return respond


@pytest.fixture
def backend() -> FakeBackend:
	return FakeBackend(responder=succeed())


@pytest.fixture
def silent_backend() -> FakeBackend:
	return FakeBackend()


@pytest_asyncio.fixture
async def manager(backend: FakeBackend):
	contexts = ContextManager(backend)
	yield contexts
	await contexts.close_all()


@pytest.fixture
def host(backend: FakeBackend) -> FakeHostWindow:
	return FakeHostWindow(backend.calls)
