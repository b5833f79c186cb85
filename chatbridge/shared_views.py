"""Shared data models for the chatbridge injection engine."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ErrorKind(str, Enum):
	"""Kinds of failure an execution can report.

	Values are the wire names used inside compiled scripts.
	"""

	SELECTOR_NOT_FOUND = 'SelectorNotFound'
	IFRAME_NOT_FOUND = 'IframeNotFound'
	SHADOW_HOST_NOT_FOUND = 'ShadowHostNotFound'
	ELEMENT_NOT_VISIBLE = 'ElementNotVisible'
	ELEMENT_NOT_EDITABLE = 'ElementNotEditable'
	SCRIPT_EXECUTION_ERROR = 'ScriptExecutionError'
	RESULT_TIMEOUT = 'ResultTimeout'
	CONTEXT_NOT_READY = 'ContextNotReady'
	INVALID_RESULT_FORMAT = 'InvalidResultFormat'
	NOT_LOGGED_IN = 'NotLoggedIn'
	CANCELLED = 'Cancelled'
	TEMPLATE_NOT_FOUND = 'TemplateNotFound'


class UserAction(str, Enum):
	"""What a calling feature should offer the user after an execution."""

	NONE = 'none'
	LOGIN_PROMPT = 'login_prompt'
	RETRY = 'retry'
	GENERIC_FAILURE = 'generic_failure'


RETRYABLE_ERROR_KINDS = frozenset(
	{
		ErrorKind.RESULT_TIMEOUT,
		ErrorKind.SELECTOR_NOT_FOUND,
		ErrorKind.ELEMENT_NOT_VISIBLE,
	}
)


class CamelModel(BaseModel):
	"""Base model accepting both snake_case names and camelCase aliases."""

	model_config = ConfigDict(extra='forbid', alias_generator=to_camel, populate_by_name=True)


class ExecutionError(CamelModel):
	"""Structured description of a failed execution."""

	kind: ErrorKind = Field(description='Kind of failure')
	message: str = Field(default='', description='Human-readable diagnostic')
	action_index: int | None = Field(default=None, description='Index of the failing action in the sequence')
	action_type: str | None = Field(default=None, description='Type tag of the failing action')
	selector: str | None = Field(default=None, description='Selector involved in the failure, if any')

	@property
	def user_action(self) -> UserAction:
		"""Map the error kind to the affordance a caller should show."""
		if self.kind == ErrorKind.NOT_LOGGED_IN:
			return UserAction.LOGIN_PROMPT
		if self.kind in RETRYABLE_ERROR_KINDS:
			return UserAction.RETRY
		return UserAction.GENERIC_FAILURE

	@property
	def retryable(self) -> bool:
		return self.kind in RETRYABLE_ERROR_KINDS

	def describe(self) -> str:
		parts = [f'{self.kind.value}: {self.message}']
		if self.action_index is not None:
			parts.append(f'action={self.action_index}')
		if self.action_type:
			parts.append(f'type={self.action_type}')
		if self.selector:
			parts.append(f'selector={self.selector}')
		return ' '.join(parts)


class OutputFormat(str, Enum):
	"""Output formats an extract action can request."""

	TEXT = 'text'
	MARKDOWN = 'markdown'
	HTML = 'html'


class ExtractPayload(CamelModel):
	"""Content produced by an extract action."""

	text: str = Field(default='', description='Plain text content')
	html: str | None = Field(default=None, description='Raw markup, when the extractor returned it')
	format: OutputFormat = Field(default=OutputFormat.TEXT, description='Requested output format')


class ExecutionResult(CamelModel):
	"""Result of executing a script bundle inside a context."""

	success: bool = Field(description='Whether every action completed')
	error: ExecutionError | None = Field(default=None, description='Failure details')
	duration_ms: int | None = Field(default=None, description='Execution time measured inside the context')
	actions_executed: int | None = Field(default=None, description='Number of actions completed')
	payload: ExtractPayload | None = Field(default=None, description='Extracted content, when the sequence ends with extract')
	correlation_id: str | None = Field(default=None, description='Correlation id of the request that produced this result')

	@classmethod
	def failure(cls, kind: ErrorKind, message: str, **kwargs: Any) -> 'ExecutionResult':
		"""Build a failed result carrying a single error."""
		correlation_id = kwargs.pop('correlation_id', None)
		return cls(
			success=False,
			error=ExecutionError(kind=kind, message=message, **kwargs),
			correlation_id=correlation_id,
		)


class ChatBridgeError(Exception):
	"""Base class for contract violations raised by the engine."""


class ContextNotReadyError(ChatBridgeError):
	"""Operation attempted on a context that is not live."""

	def __init__(self, context_id: str, state: str | None = None):
		self.context_id = context_id
		self.state = state
		detail = f' (state: {state})' if state else ''
		super().__init__(f'Context not ready: {context_id}{detail}')


class ContextCreationError(ChatBridgeError):
	"""The backend failed to create a context."""


class InvalidTransitionError(ChatBridgeError):
	"""A lifecycle transition not permitted by the state machine."""


class TemplateError(ChatBridgeError):
	"""A template could not be compiled or stored."""
