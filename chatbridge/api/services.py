"""Service container wiring the engine components for the HTTP API."""

import logging
from collections.abc import Awaitable, Callable

from chatbridge.api.views import ServerConfig
from chatbridge.automation.service import ChatAutomation
from chatbridge.bridge.views import BridgeConfig
from chatbridge.compiler.service import ScriptCompiler
from chatbridge.contexts.service import ContextManager
from chatbridge.storage.service import TemplateStore
from chatbridge.templates.service import TemplateRegistry
from chatbridge.visibility.service import VisibilityCoordinator

logger = logging.getLogger(__name__)


class ChatBridgeServices:
	"""Holds one instance of every engine service."""

	def __init__(
		self,
		registry: TemplateRegistry,
		contexts: ContextManager,
		coordinator: VisibilityCoordinator,
		compiler: ScriptCompiler | None = None,
		automation: ChatAutomation | None = None,
		store: TemplateStore | None = None,
		on_shutdown: Callable[[], Awaitable[None]] | None = None,
	):
		self.registry = registry
		self.contexts = contexts
		self.coordinator = coordinator
		self.compiler = compiler or ScriptCompiler()
		self.automation = automation or ChatAutomation(registry, contexts, self.compiler)
		self.store = store
		self._on_shutdown = on_shutdown

	@classmethod
	async def from_config(cls, config: ServerConfig) -> 'ChatBridgeServices':
		"""Build the services on a browser-use session.

		Args:
			config: Process configuration

		Returns:
			Started services
		"""
		from browser_use.browser import BrowserProfile

		from chatbridge.backends.browser import BrowserBackend, BrowserHostWindow

		backend = BrowserBackend(profile=BrowserProfile(headless=config.headless, disable_security=False))
		await backend.start()

		registry = TemplateRegistry.with_builtin_templates()
		store = None
		if config.templates_dir:
			store = TemplateStore(config.templates_dir)
			store.load_into(registry)

		contexts = ContextManager(backend, bridge_config=BridgeConfig(default_timeout_ms=config.execution_timeout_ms))
		coordinator = VisibilityCoordinator(contexts, BrowserHostWindow(backend))

		return cls(
			registry=registry,
			contexts=contexts,
			coordinator=coordinator,
			store=store,
			on_shutdown=backend.stop,
		)

	async def shutdown(self) -> None:
		"""Close every context and release the backend."""
		await self.contexts.close_all()
		if self._on_shutdown is not None:
			try:
				await self._on_shutdown()
			except Exception as e:
				logger.error(f'Error during backend shutdown: {e}', exc_info=True)
