"""Browser backend - hosts each context in its own window of a browser-use session.

Every context is a CDP page target opened in a new window. Results reported
through the page-level report function arrive as Runtime.bindingCalled events
and are forwarded to the result listener. The session's initial window acts as
the host window; context bounds are relative to it.
"""

import logging
from typing import Any

from browser_use.browser import BrowserProfile, BrowserSession

from chatbridge.bridge.views import REPORT_FUNCTION
from chatbridge.contexts.backend import ContextBackend
from chatbridge.contexts.views import ContextBounds
from chatbridge.shared_views import ChatBridgeError
from chatbridge.visibility.views import HostWindow

logger = logging.getLogger(__name__)


class BrowserBackendError(ChatBridgeError):
	"""A CDP command for a context failed."""


class BrowserBackend(ContextBackend):
	"""ContextBackend driving Chromium windows through browser-use's CDP client."""

	def __init__(
		self,
		browser_session: BrowserSession | None = None,
		profile: BrowserProfile | None = None,
		report_function: str = REPORT_FUNCTION,
	):
		"""Initialize the BrowserBackend.

		Args:
			browser_session: Existing browser session to use (one is created otherwise)
			profile: Profile for the session created when none is given
			report_function: Name of the binding wrapped scripts report through
		"""
		super().__init__()
		self.browser = browser_session or BrowserSession(
			browser_profile=profile or BrowserProfile(headless=False, disable_security=False)
		)
		self.report_function = report_function

		self.host_target_id: str | None = None
		self._targets: dict[str, str] = {}
		self._sessions: dict[str, str] = {}
		self._contexts_by_session: dict[str, str] = {}
		self._bounds: dict[str, ContextBounds] = {}
		self._started = False

	async def start(self) -> None:
		"""Start the browser and subscribe to result reports."""
		if self._started:
			return

		await self.browser.start()
		logger.info('Browser started successfully')

		targets = await self.browser.cdp_client.send.Target.getTargets()
		pages = [t for t in targets.get('targetInfos', []) if t.get('type') == 'page']
		if pages:
			self.host_target_id = pages[0]['targetId']

		self.browser.cdp_client.register.Runtime.bindingCalled(self._on_binding_called)
		self._started = True

	async def stop(self) -> None:
		"""Close every context window and stop the browser."""
		for context_id in list(self._targets.keys()):
			await self.close(context_id)

		try:
			await self.browser.stop()
			logger.info('Browser stopped')
		except Exception as e:
			logger.error(f'Error stopping browser: {e}')
		self._started = False

	async def create(self, context_id: str, url: str, bounds: ContextBounds) -> None:
		await self.start()

		result = await self.browser.cdp_client.send.Target.createTarget(params={'url': url, 'newWindow': True})
		target_id = result['targetId']
		self._targets[context_id] = target_id

		cdp_session = await self.browser.get_or_create_cdp_session(target_id=target_id, focus=False)
		session_id = cdp_session.session_id
		self._sessions[context_id] = session_id
		self._contexts_by_session[session_id] = context_id

		await cdp_session.cdp_client.send.Runtime.enable(session_id=session_id)
		await cdp_session.cdp_client.send.Runtime.addBinding(
			params={'name': self.report_function}, session_id=session_id
		)

		# New contexts start hidden; show() restores the window.
		await self._set_window_state(target_id, 'minimized')
		self._bounds[context_id] = bounds
		logger.info(f'Context {context_id}: window created for {url} (target {target_id})')

	async def navigate(self, context_id: str, url: str) -> None:
		session = await self._session(context_id)
		await session.cdp_client.send.Page.navigate(params={'url': url}, session_id=session.session_id)

	async def set_bounds(self, context_id: str, bounds: ContextBounds) -> None:
		"""Remember bounds and apply them when the window is not minimised."""
		self._bounds[context_id] = bounds

		target_id = self._target(context_id)
		window = await self._window_for(target_id)
		if window['bounds'].get('windowState') == 'minimized':
			return
		await self._apply_bounds(window['windowId'], bounds)

	async def show(self, context_id: str) -> None:
		target_id = self._target(context_id)
		window = await self._window_for(target_id)
		await self.browser.cdp_client.send.Browser.setWindowBounds(
			params={'windowId': window['windowId'], 'bounds': {'windowState': 'normal'}}
		)

		bounds = self._bounds.get(context_id)
		if bounds is not None:
			await self._apply_bounds(window['windowId'], bounds)

		session = await self._session(context_id)
		await session.cdp_client.send.Page.bringToFront(session_id=session.session_id)

	async def hide(self, context_id: str) -> None:
		await self._set_window_state(self._target(context_id), 'minimized')

	async def focus(self, context_id: str) -> None:
		target_id = self._target(context_id)
		await self.browser.cdp_client.send.Target.activateTarget(params={'targetId': target_id})
		session = await self._session(context_id)
		await session.cdp_client.send.Page.bringToFront(session_id=session.session_id)

	async def close(self, context_id: str) -> None:
		target_id = self._targets.pop(context_id, None)
		session_id = self._sessions.pop(context_id, None)
		self._bounds.pop(context_id, None)
		if session_id is not None:
			self._contexts_by_session.pop(session_id, None)
		if target_id is None:
			return

		try:
			await self.browser.cdp_client.send.Target.closeTarget(params={'targetId': target_id})
			logger.info(f'Context {context_id}: window closed')
		except Exception as e:
			logger.debug(f'Context {context_id}: target {target_id} already gone: {e}')

	async def evaluate(self, context_id: str, script: str) -> None:
		session = await self._session(context_id)
		result = await session.cdp_client.send.Runtime.evaluate(
			params={'expression': script, 'awaitPromise': False, 'returnByValue': False},
			session_id=session.session_id,
		)

		details = result.get('exceptionDetails')
		if details:
			exception = details.get('exception', {})
			message = exception.get('description') or details.get('text', 'Script evaluation failed')
			raise BrowserBackendError(f'Context {context_id}: {message}')

	async def host_window_id(self) -> int | None:
		if self.host_target_id is None:
			return None
		window = await self._window_for(self.host_target_id)
		return window['windowId']

	def _on_binding_called(self, event: dict[str, Any], session_id: str | None = None) -> None:
		if event.get('name') != self.report_function:
			return

		context_id = self._contexts_by_session.get(session_id or '')
		if context_id is None:
			logger.debug(f'Result report from unknown session {session_id}')
			return

		self.emit_result(context_id, event.get('payload', ''))

	def _target(self, context_id: str) -> str:
		target_id = self._targets.get(context_id)
		if target_id is None:
			raise BrowserBackendError(f'No window for context {context_id}')
		return target_id

	async def _session(self, context_id: str):
		return await self.browser.get_or_create_cdp_session(target_id=self._target(context_id), focus=False)

	async def _window_for(self, target_id: str) -> dict[str, Any]:
		return await self.browser.cdp_client.send.Browser.getWindowForTarget(params={'targetId': target_id})

	async def _set_window_state(self, target_id: str, state: str) -> None:
		window = await self._window_for(target_id)
		await self.browser.cdp_client.send.Browser.setWindowBounds(
			params={'windowId': window['windowId'], 'bounds': {'windowState': state}}
		)

	async def _apply_bounds(self, window_id: int, bounds: ContextBounds) -> None:
		left, top = 0, 0
		if self.host_target_id is not None:
			host = await self._window_for(self.host_target_id)
			left = host['bounds'].get('left', 0)
			top = host['bounds'].get('top', 0)

		await self.browser.cdp_client.send.Browser.setWindowBounds(
			params={
				'windowId': window_id,
				'bounds': {
					'left': int(left + bounds.x),
					'top': int(top + bounds.y),
					'width': max(1, int(bounds.width)),
					'height': max(1, int(bounds.height)),
				},
			}
		)


class BrowserHostWindow(HostWindow):
	"""HostWindow backed by the browser session's initial window."""

	def __init__(self, backend: BrowserBackend):
		self.backend = backend

	async def hide(self) -> None:
		window_id = await self._window_id()
		await self.backend.browser.cdp_client.send.Browser.setWindowBounds(
			params={'windowId': window_id, 'bounds': {'windowState': 'minimized'}}
		)

	async def show(self) -> None:
		window_id = await self._window_id()
		await self.backend.browser.cdp_client.send.Browser.setWindowBounds(
			params={'windowId': window_id, 'bounds': {'windowState': 'normal'}}
		)
		await self.backend.browser.cdp_client.send.Target.activateTarget(params={'targetId': self.backend.host_target_id})

	async def _window_id(self) -> int:
		await self.backend.start()
		window_id = await self.backend.host_window_id()
		if window_id is None:
			raise BrowserBackendError('Browser session has no host window')
		return window_id

