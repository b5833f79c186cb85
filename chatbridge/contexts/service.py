"""Context Lifecycle Manager - owns every embedded context and its state machine."""

import asyncio
import logging
from datetime import datetime, timezone

from chatbridge.bridge.service import ExecutionBridge
from chatbridge.bridge.views import BridgeConfig
from chatbridge.contexts.backend import ContextBackend
from chatbridge.contexts.views import (
	ALLOWED_TRANSITIONS,
	Context,
	ContextBounds,
	ContextManagerConfig,
	ContextState,
)
from chatbridge.shared_views import (
	ContextCreationError,
	ContextNotReadyError,
	ErrorKind,
	ExecutionResult,
	InvalidTransitionError,
)

logger = logging.getLogger(__name__)


class ContextManager:
	"""Creates, positions, shows, hides and destroys embedded contexts.

	There is at most one context per id. ensure() and close() for the same id
	are serialised by a per-id lock, so concurrent ensure() calls create the
	underlying surface once and all return the same Context. Other components
	read Context records but never change their state.

	Callers that bypass the bridge's per-context serialisation
	(BridgeConfig.serialize_per_context=False) must not overlap evaluate_script
	calls for the same id.
	"""

	def __init__(
		self,
		backend: ContextBackend,
		config: ContextManagerConfig | None = None,
		bridge: ExecutionBridge | None = None,
		bridge_config: BridgeConfig | None = None,
	):
		"""Initialize the ContextManager.

		Args:
			backend: Backend hosting the native surfaces
			config: Optional manager configuration
			bridge: Optional execution bridge (one dispatching through the backend is created otherwise)
			bridge_config: Configuration for the bridge created when none is given
		"""
		self.backend = backend
		self.config = config or ContextManagerConfig()
		self.bridge = bridge or ExecutionBridge(self.backend.evaluate, bridge_config, is_live=self.is_live)
		self.backend.set_result_listener(self._on_result)

		self.contexts: dict[str, Context] = {}
		self._locks: dict[str, asyncio.Lock] = {}
		self._pending_bounds: dict[str, ContextBounds] = {}
		logger.info('ContextManager initialized')

	async def ensure(self, context_id: str, url: str, bounds: ContextBounds | None = None) -> Context:
		"""Return the live context for an id, creating it if needed.

		Creates the context when absent, waits for an in-flight creation, and
		otherwise navigates (if the URL changed) and applies bounds.

		Args:
			context_id: Context id (platform id)
			url: URL to load
			bounds: Bounds inside the host window

		Returns:
			The live context

		Raises:
			ContextCreationError: If the backend failed to create the context
		"""
		lock = self._locks.setdefault(context_id, asyncio.Lock())

		if lock.locked():
			logger.debug(f'Context {context_id}: lifecycle operation in progress, waiting')

		async with lock:
			context = self.contexts.get(context_id)
			if context is None:
				return await self._create(context_id, url, bounds or ContextBounds())

			if context.url != url:
				logger.info(f'Context {context_id}: navigating {context.url} -> {url}')
				await self.backend.navigate(context_id, url)
				context.url = url

			if bounds is not None:
				await self._apply_bounds(context, bounds)
			return context

	async def _create(self, context_id: str, url: str, bounds: ContextBounds) -> Context:
		context = Context(id=context_id, url=url, bounds=bounds)
		self.contexts[context_id] = context
		self._set_state(context, ContextState.CREATING)
		timeout = self.config.creation_timeout_ms / 1000

		try:
			await asyncio.wait_for(self.backend.create(context_id, url, bounds), timeout=timeout)
		except asyncio.CancelledError:
			await self._discard(context)
			raise
		except Exception as e:
			logger.error(f'Context {context_id}: creation failed: {e}', exc_info=True)
			await self._discard(context)
			raise ContextCreationError(f'Failed to create context {context_id}: {e}') from e

		self._set_state(context, ContextState.READY)

		pending = self._pending_bounds.pop(context_id, None)
		if pending is not None:
			await self._apply_bounds(context, pending)

		return context

	async def _discard(self, context: Context) -> None:
		self.contexts.pop(context.id, None)
		self._pending_bounds.pop(context.id, None)
		self._set_state(context, ContextState.DESTROYED)
		try:
			await self.backend.close(context.id)
		except Exception as e:
			logger.warning(f'Context {context.id}: cleanup after failed creation failed: {e}')

	async def show(self, context_id: str) -> Context:
		"""Show a context and request focus for it."""
		context = self._require_live(context_id)

		if context.state != ContextState.VISIBLE:
			await self.backend.show(context_id)
			self._set_state(context, ContextState.VISIBLE)

		if self.config.focus_on_show:
			await self.set_focus(context_id)

		return context

	async def hide(self, context_id: str) -> Context:
		"""Hide a context. Hiding a hidden context is a no-op."""
		context = self._require_live(context_id)

		if context.state == ContextState.VISIBLE:
			await self.backend.hide(context_id)

		self._set_state(context, ContextState.HIDDEN)
		return context

	async def update_bounds(self, context_id: str, bounds: ContextBounds) -> None:
		"""Update bounds; while the context is being created they are applied afterwards."""
		context = self.contexts.get(context_id)
		if context is None:
			raise ContextNotReadyError(context_id, ContextState.UNINITIALIZED.value)

		if context.state == ContextState.CREATING:
			self._pending_bounds[context_id] = bounds
			logger.debug(f'Context {context_id}: bounds deferred until creation completes')
			return

		await self._apply_bounds(context, bounds)

	async def _apply_bounds(self, context: Context, bounds: ContextBounds) -> None:
		if context.bounds.approx_equal(bounds):
			return
		await self.backend.set_bounds(context.id, bounds)
		context.bounds = bounds
		logger.debug(f'Context {context.id}: bounds updated to {bounds.width}x{bounds.height}+{bounds.x}+{bounds.y}')

	async def set_focus(self, context_id: str) -> bool:
		"""Focus a context.

		Returns:
			True if the backend accepted the focus request
		"""
		context = self._require_live(context_id)

		try:
			await self.backend.focus(context_id)
		except Exception as e:
			logger.warning(f'Context {context_id}: failed to focus: {e}')
			return False

		context.last_focused_at = datetime.now(timezone.utc).isoformat()
		return True

	async def close(self, context_id: str) -> bool:
		"""Destroy a context and release its surface.

		Pending executions for the context resolve with ContextNotReady. The id
		must be ensure()d again to be used, which creates a new context.

		Returns:
			True if a context was closed
		"""
		lock = self._locks.setdefault(context_id, asyncio.Lock())

		async with lock:
			context = self.contexts.pop(context_id, None)
			if context is None:
				logger.debug(f'Context {context_id}: nothing to close')
				return False

			self._pending_bounds.pop(context_id, None)
			self._set_state(context, ContextState.DESTROYED)
			self.bridge.cancel_all(context_id, reason=f'Context {context_id} closed')
			self.bridge.forget_context(context_id)

			try:
				await self.backend.close(context_id)
			except Exception as e:
				logger.error(f'Context {context_id}: failed to release surface: {e}', exc_info=True)

		return True

	async def close_all(self) -> None:
		"""Destroy every context, e.g. on host shutdown."""
		for context_id in list(self.contexts.keys()):
			await self.close(context_id)
		logger.info('All contexts closed')

	async def evaluate_script(self, context_id: str, script: str, timeout_ms: int | None = None) -> ExecutionResult:
		"""Execute a script bundle in a live context.

		Args:
			context_id: Target context
			script: Compiled bundle (or any JavaScript expression)
			timeout_ms: Optional bridge timeout

		Returns:
			The execution result; ContextNotReady when the context is not live
		"""
		context = self.contexts.get(context_id)
		if context is None or not context.is_live:
			state = context.state if context else ContextState.UNINITIALIZED
			logger.warning(f'Context {context_id}: cannot evaluate script in state {state.value}')
			return ExecutionResult.failure(
				ErrorKind.CONTEXT_NOT_READY,
				f'Context {context_id} is not ready (state: {state.value})',
			)

		return await self.bridge.execute(context_id, script, timeout_ms)

	def get(self, context_id: str) -> Context | None:
		return self.contexts.get(context_id)

	def state_of(self, context_id: str) -> ContextState:
		context = self.contexts.get(context_id)
		return context.state if context else ContextState.UNINITIALIZED

	def is_live(self, context_id: str) -> bool:
		context = self.contexts.get(context_id)
		return context is not None and context.is_live

	def list_contexts(self) -> list[Context]:
		return list(self.contexts.values())

	def visible_ids(self) -> list[str]:
		return [c.id for c in self.contexts.values() if c.state == ContextState.VISIBLE]

	def _require_live(self, context_id: str) -> Context:
		context = self.contexts.get(context_id)
		if context is None or not context.is_live:
			state = context.state.value if context else ContextState.UNINITIALIZED.value
			raise ContextNotReadyError(context_id, state)
		return context

	def _set_state(self, context: Context, state: ContextState) -> None:
		old_state = context.state
		if state not in ALLOWED_TRANSITIONS[old_state]:
			raise InvalidTransitionError(f'Context {context.id}: {old_state.value} → {state.value} is not allowed')

		context.state = state
		if old_state != state:
			logger.info(f'Context {context.id}: {old_state.value} → {state.value}')

	def _on_result(self, context_id: str, payload: str) -> None:
		self.bridge.handle_event(payload, context_id=context_id)
