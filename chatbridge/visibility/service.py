"""Visibility Coordinator - keeps context visibility in step with the host window."""

import asyncio
import logging

from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import Context
from chatbridge.visibility.views import CoordinatorConfig, HostSignal, HostWindow

logger = logging.getLogger(__name__)


class VisibilityCoordinator:
	"""Synchronises embedded context visibility with host-window transitions.

	Hiding the host is two-phase: every visible context is hidden first, and
	only after a settle delay is the host window hidden, so no always-on-top
	context is left stranded over a hidden host. The contexts hidden this way
	are remembered and re-shown after the host is restored; contexts the user
	had already hidden stay hidden.
	"""

	def __init__(self, contexts: ContextManager, host: HostWindow, config: CoordinatorConfig | None = None):
		"""Initialize the VisibilityCoordinator.

		Args:
			contexts: Context manager owning the contexts
			host: Host window to hide and show
			config: Optional coordinator configuration
		"""
		self.contexts = contexts
		self.host = host
		self.config = config or CoordinatorConfig()

		self.host_hidden = False
		self.host_minimized = False
		self.host_focused = True
		self._restore_ids: list[str] = []
		self._lock = asyncio.Lock()
		logger.info('VisibilityCoordinator initialized')

	@property
	def restore_ids(self) -> list[str]:
		"""Contexts that will be re-shown when the host is restored."""
		return list(self._restore_ids)

	async def handle_signal(self, signal: HostSignal) -> None:
		"""React to a host-window lifecycle signal."""
		logger.debug(f'Host signal: {signal.value}')

		match signal:
			case HostSignal.HIDE_INTENT:
				await self.hide_host()
			case HostSignal.RESTORE_INTENT:
				await self.restore_host()
			case HostSignal.MINIMIZED:
				async with self._lock:
					self.host_minimized = True
					await self._hide_visible_contexts()
			case HostSignal.RESTORED:
				async with self._lock:
					self.host_minimized = False
					self.host_hidden = False
					await self._restore_contexts()
			case HostSignal.FOCUS_GAINED:
				self.host_focused = True
				await self._refocus_active_context()
			case HostSignal.FOCUS_LOST:
				self.host_focused = False

	async def hide_host(self) -> None:
		"""Hide every visible context, then the host window."""
		async with self._lock:
			hidden = await self._hide_visible_contexts()

			if self.config.settle_delay_ms > 0:
				await asyncio.sleep(self.config.settle_delay_ms / 1000)

			await self.host.hide()
			self.host_hidden = True
			self.host_focused = False
			logger.info(f'Host hidden after hiding {len(hidden)} contexts')

	async def restore_host(self) -> None:
		"""Show the host window, then re-show the contexts hidden with it."""
		async with self._lock:
			await self.host.show()
			self.host_hidden = False
			self.host_minimized = False
			self.host_focused = True
			restored = await self._restore_contexts()
			logger.info(f'Host restored, {len(restored)} contexts re-shown')

	async def toggle_host(self) -> None:
		"""Hide the host when shown, restore it when hidden or minimised."""
		if self.host_hidden or self.host_minimized:
			await self.restore_host()
		else:
			await self.hide_host()

	async def show_context(self, context_id: str) -> Context | None:
		"""User-initiated show; deferred until restore while the host is hidden.

		Waits for an in-progress hide or restore, so a show requested during the
		settle delay is deferred instead of landing over the hidden host.
		"""
		async with self._lock:
			if self.host_hidden or self.host_minimized:
				if context_id not in self._restore_ids:
					self._restore_ids.append(context_id)
				logger.debug(f'Context {context_id}: show deferred until host is restored')
				return self.contexts.get(context_id)
			return await self.contexts.show(context_id)

	async def hide_context(self, context_id: str) -> Context:
		"""User-initiated hide; the context will not be re-shown on restore."""
		async with self._lock:
			if context_id in self._restore_ids:
				self._restore_ids.remove(context_id)
			return await self.contexts.hide(context_id)

	async def _hide_visible_contexts(self) -> list[str]:
		visible = self.contexts.visible_ids()
		for context_id in visible:
			if context_id not in self._restore_ids:
				self._restore_ids.append(context_id)

		results = await asyncio.gather(
			*(self.contexts.hide(context_id) for context_id in visible),
			return_exceptions=True,
		)
		for context_id, result in zip(visible, results):
			if isinstance(result, Exception):
				logger.warning(f'Context {context_id}: failed to hide: {result}')

		return visible

	async def _restore_contexts(self) -> list[str]:
		pending, self._restore_ids = self._restore_ids, []
		restored = []

		for context_id in pending:
			if not self.contexts.is_live(context_id):
				logger.debug(f'Context {context_id}: no longer live, not restoring')
				continue
			try:
				await self.contexts.show(context_id)
				restored.append(context_id)
			except Exception as e:
				logger.warning(f'Context {context_id}: failed to restore: {e}')

		return restored

	async def _refocus_active_context(self) -> None:
		if not self.config.refocus_on_focus or self.host_hidden:
			return

		visible = [c for c in self.contexts.list_contexts() if c.id in self.contexts.visible_ids()]
		if not visible:
			return

		active = max(visible, key=lambda c: c.last_focused_at or '')
		await self.contexts.set_focus(active.id)
