"""ChatAutomation - sends a message to a chat platform and extracts the answer."""

import asyncio
import logging
from typing import Any

from chatbridge.automation.views import AutomationConfig, AutomationResult
from chatbridge.compiler.service import ScriptCompiler
from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import ContextBounds
from chatbridge.formatting.service import format_extracted_content, get_display_text
from chatbridge.shared_views import (
	ContextCreationError,
	ErrorKind,
	ExecutionResult,
	TemplateError,
	UserAction,
)
from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import ClickAction, Template

logger = logging.getLogger(__name__)


class ChatAutomation:
	"""Composes the registry, compiler and context manager into one send operation.

	The platform id doubles as the context id, so every platform has a single
	embedded context that is reused across sends.
	"""

	def __init__(
		self,
		registry: TemplateRegistry,
		contexts: ContextManager,
		compiler: ScriptCompiler | None = None,
		config: AutomationConfig | None = None,
	):
		"""Initialize ChatAutomation.

		Args:
			registry: Templates to choose from
			contexts: Context manager hosting the chat pages
			compiler: Optional script compiler
			config: Optional automation configuration
		"""
		self.registry = registry
		self.contexts = contexts
		self.compiler = compiler or ScriptCompiler()
		self.config = config or AutomationConfig()
		logger.info('ChatAutomation initialized')

	async def send(
		self,
		platform_id: str,
		content: str,
		url: str | None = None,
		bounds: ContextBounds | None = None,
		params: dict[str, Any] | None = None,
		show: bool = False,
	) -> AutomationResult:
		"""Send a message and wait for the extracted answer.

		Args:
			platform_id: Platform (and context) id
			content: Message text
			url: URL to load; defaults to the context's current URL
			bounds: Optional context bounds
			params: Additional template parameters
			show: Show the context before sending

		Returns:
			The automation result; failures are returned, never raised
		"""
		context = self.contexts.get(platform_id)
		url = url or (context.url if context else None)
		if not url:
			return self._finish(
				platform_id,
				None,
				ExecutionResult.failure(ErrorKind.CONTEXT_NOT_READY, f'No URL known for platform {platform_id}'),
				attempts=0,
			)

		template = self._select_template(platform_id, url)
		if template is None:
			logger.warning(f'No template for platform {platform_id} matches {url}')
			return self._finish(
				platform_id,
				None,
				ExecutionResult.failure(ErrorKind.TEMPLATE_NOT_FOUND, f'No template for {platform_id} matches {url}'),
				attempts=0,
			)

		try:
			script = self.compiler.generate_template_script(template, {**(params or {}), 'content': content})
		except TemplateError as e:
			logger.error(f'Failed to compile template {template.platform_id}/{template.name}: {e}')
			return self._finish(
				platform_id, template, ExecutionResult.failure(ErrorKind.SCRIPT_EXECUTION_ERROR, str(e)), attempts=0
			)

		try:
			await self.contexts.ensure(platform_id, url, bounds)
			if show:
				await self.contexts.show(platform_id)
		except ContextCreationError as e:
			return self._finish(
				platform_id, template, ExecutionResult.failure(ErrorKind.CONTEXT_NOT_READY, str(e)), attempts=0
			)
		except Exception as e:
			logger.error(f'Failed to prepare context {platform_id}: {e}', exc_info=True)
			return self._finish(
				platform_id,
				template,
				ExecutionResult.failure(ErrorKind.CONTEXT_NOT_READY, f'Failed to prepare context {platform_id}: {e}'),
				attempts=0,
			)

		timeout_ms = max(
			self.contexts.bridge.config.default_timeout_ms,
			self.compiler.estimate_budget_ms(template.actions) + self.config.timeout_slack_ms,
		)
		logger.info(f'Sending to {platform_id} with template {template.name} (timeout {timeout_ms}ms)')

		attempts = 0
		while True:
			attempts += 1
			result = await self.contexts.evaluate_script(platform_id, script, timeout_ms)

			if result.success:
				break

			self._log_failure(platform_id, template, result, attempts)

			if attempts > self.config.max_retries or not self._should_retry(template, result):
				break

			logger.info(f'Retrying {platform_id} in {self.config.retry_delay_ms}ms (attempt {attempts + 1})')
			await asyncio.sleep(self.config.retry_delay_ms / 1000)

		return self._finish(platform_id, template, result, attempts)

	def _select_template(self, platform_id: str, url: str) -> Template | None:
		if self.config.template_name:
			template = self.registry.find_template(platform_id, self.config.template_name)
			if template is not None and template.matches(url):
				return template
		return self.registry.find_template_for_url(url, platform_id)

	def _should_retry(self, template: Template, result: ExecutionResult) -> bool:
		"""Retry only retryable kinds, and never resend a message that may already be submitted."""
		error = result.error
		if error is None or not error.retryable:
			return False
		if self.config.resend_after_submit:
			return True

		click_indexes = [i for i, action in enumerate(template.actions) if isinstance(action, ClickAction)]
		if not click_indexes:
			return True
		if error.action_index is None:
			return False
		return error.action_index <= click_indexes[0]

	def _log_failure(self, platform_id: str, template: Template, result: ExecutionResult, attempt: int) -> None:
		error = result.error
		if error is None:
			logger.error(f'Send to {platform_id} failed without error details (attempt {attempt})')
			return
		logger.error(
			f'Send to {platform_id} failed (attempt {attempt}, template {template.name}): {error.describe()}'
		)

	def _finish(
		self, platform_id: str, template: Template | None, result: ExecutionResult, attempts: int
	) -> AutomationResult:
		formatted = format_extracted_content(result.payload)
		user_action = UserAction.NONE if result.success or result.error is None else result.error.user_action
		return AutomationResult(
			platform_id=platform_id,
			template_name=template.name if template else None,
			result=result,
			attempts=attempts,
			formatted=formatted,
			display_text=get_display_text(result.payload),
			user_action=user_action,
		)
