"""Tests for the VisibilityCoordinator."""

import asyncio

import pytest

from chatbridge.contexts.service import ContextManager
from chatbridge.visibility.service import VisibilityCoordinator
from chatbridge.contexts.views import ContextState
from chatbridge.visibility.views import CoordinatorConfig, HostSignal

from tests.conftest import FakeBackend, FakeHostWindow

URL = 'https://chat.example.com/'


def _visibility_calls(backend: FakeBackend) -> list[tuple[str, str]]:
	return [call for call in backend.calls if call[0] in ('hide', 'show', 'host_hide', 'host_show')]


@pytest.mark.asyncio
async def test_hide_intent_hides_contexts_before_host(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=10))
	await manager.ensure('a', URL)
	await manager.ensure('b', URL)
	await manager.show('a')
	await manager.show('b')
	backend.calls.clear()

	await coordinator.handle_signal(HostSignal.HIDE_INTENT)

	calls = _visibility_calls(backend)
	assert calls[-1] == ('host_hide', 'host')
	assert sorted(calls[:-1]) == [('hide', 'a'), ('hide', 'b')]
	assert coordinator.host_hidden is True
	assert coordinator.restore_ids == ['a', 'b']


@pytest.mark.asyncio
async def test_restore_intent_shows_host_before_contexts(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=0))
	await manager.ensure('a', URL)
	await manager.show('a')
	await coordinator.handle_signal(HostSignal.HIDE_INTENT)
	backend.calls.clear()

	await coordinator.handle_signal(HostSignal.RESTORE_INTENT)

	assert _visibility_calls(backend) == [('host_show', 'host'), ('show', 'a')]
	assert coordinator.host_hidden is False
	assert coordinator.restore_ids == []


@pytest.mark.asyncio
async def test_contexts_hidden_by_user_stay_hidden_after_restore(manager: ContextManager, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=0))
	await manager.ensure('a', URL)
	await manager.ensure('b', URL)
	await manager.show('a')
	await manager.show('b')
	await coordinator.hide_context('b')

	await coordinator.handle_signal(HostSignal.HIDE_INTENT)
	await coordinator.handle_signal(HostSignal.RESTORE_INTENT)

	assert manager.visible_ids() == ['a']


@pytest.mark.asyncio
async def test_minimize_hides_contexts_but_not_host(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host)
	await manager.ensure('a', URL)
	await manager.show('a')
	backend.calls.clear()

	await coordinator.handle_signal(HostSignal.MINIMIZED)

	assert _visibility_calls(backend) == [('hide', 'a')]
	assert coordinator.host_minimized is True

	await coordinator.handle_signal(HostSignal.RESTORED)

	assert _visibility_calls(backend) == [('hide', 'a'), ('show', 'a')]
	assert manager.visible_ids() == ['a']


@pytest.mark.asyncio
async def test_restore_skips_closed_contexts(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=0))
	await manager.ensure('a', URL)
	await manager.show('a')
	await coordinator.handle_signal(HostSignal.HIDE_INTENT)
	await manager.close('a')
	backend.calls.clear()

	await coordinator.handle_signal(HostSignal.RESTORE_INTENT)

	assert _visibility_calls(backend) == [('host_show', 'host')]


@pytest.mark.asyncio
async def test_show_while_host_hidden_is_deferred(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=0))
	await manager.ensure('a', URL)
	await coordinator.handle_signal(HostSignal.HIDE_INTENT)

	await coordinator.show_context('a')
	assert backend.calls_for('show') == []
	assert coordinator.restore_ids == ['a']

	await coordinator.handle_signal(HostSignal.RESTORE_INTENT)
	assert backend.calls_for('show') == ['a']


@pytest.mark.asyncio
async def test_toggle_host(manager: ContextManager, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=0))

	await coordinator.toggle_host()
	assert coordinator.host_hidden is True

	await coordinator.toggle_host()
	assert coordinator.host_hidden is False


@pytest.mark.asyncio
async def test_focus_gained_refocuses_last_focused_context(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host)
	await manager.ensure('a', URL)
	await manager.ensure('b', URL)
	await manager.show('a')
	await manager.show('b')
	manager.get('a').last_focused_at = '2000-01-01T00:00:00+00:00'
	backend.calls.clear()

	await coordinator.handle_signal(HostSignal.FOCUS_LOST)
	assert coordinator.host_focused is False

	await coordinator.handle_signal(HostSignal.FOCUS_GAINED)
	assert coordinator.host_focused is True
	assert backend.calls_for('focus') == ['b']


@pytest.mark.asyncio
async def test_show_during_settle_delay_is_deferred(manager: ContextManager, backend: FakeBackend, host: FakeHostWindow):
	coordinator = VisibilityCoordinator(manager, host, CoordinatorConfig(settle_delay_ms=100))
	await manager.ensure('a', URL)
	backend.calls.clear()

	hiding = asyncio.create_task(coordinator.hide_host())
	await asyncio.sleep(0.02)
	await coordinator.show_context('a')
	await hiding

	assert backend.calls_for('show') == []
	assert manager.state_of('a') == ContextState.READY
	assert coordinator.restore_ids == ['a']

	await coordinator.restore_host()

	assert _visibility_calls(backend) == [('host_hide', 'host'), ('host_show', 'host'), ('show', 'a')]
	assert manager.state_of('a') == ContextState.VISIBLE


class FlakyShowBackend(FakeBackend):
	"""Backend whose show fails for selected contexts."""

	def __init__(self, failing: set[str]):
		super().__init__()
		self.failing = failing

	async def show(self, context_id: str) -> None:
		if context_id in self.failing:
			raise RuntimeError(f'window {context_id} is gone')
		await super().show(context_id)


@pytest.mark.asyncio
async def test_restore_continues_past_failing_context():
	backend = FlakyShowBackend(failing=set())
	manager = ContextManager(backend)
	coordinator = VisibilityCoordinator(manager, FakeHostWindow(backend.calls), CoordinatorConfig(settle_delay_ms=0))
	for context_id in ('a', 'b'):
		await manager.ensure(context_id, URL)
		await manager.show(context_id)

	await coordinator.hide_host()
	backend.failing.add('a')
	await coordinator.restore_host()

	assert manager.state_of('a') == ContextState.HIDDEN
	assert manager.state_of('b') == ContextState.VISIBLE
	assert coordinator.restore_ids == []
	await manager.close_all()
