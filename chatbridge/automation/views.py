"""Data models for the ChatAutomation facade."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chatbridge.contexts.views import ContextBounds
from chatbridge.formatting.views import FormattedExtract
from chatbridge.shared_views import CamelModel, ExecutionResult, UserAction

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000


class AutomationConfig(BaseModel):
	"""Configuration for ChatAutomation."""

	model_config = ConfigDict(extra='forbid')

	max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, description='Retries after a retryable failure')
	retry_delay_ms: int = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0, description='Pause before each retry')
	timeout_slack_ms: int = Field(default=2000, ge=0, description='Added to the estimated sequence budget')
	template_name: str | None = Field(default=None, description='Prefer this template name when several match')
	resend_after_submit: bool = Field(
		default=False, description='Also retry failures that happened after the submit click may have completed'
	)


class SendRequest(CamelModel):
	"""A message to send to a chat platform."""

	platform_id: str = Field(description='Platform id, also used as the context id')
	content: str = Field(description='Message text')
	url: str | None = Field(default=None, description='URL to load; the context keeps its current URL when omitted')
	bounds: ContextBounds | None = Field(default=None, description='Context bounds inside the host window')
	params: dict[str, Any] = Field(default_factory=dict, description='Additional template parameters')
	show: bool = Field(default=False, description='Show the context before sending')


class AutomationResult(CamelModel):
	"""Outcome of ChatAutomation.send."""

	platform_id: str
	template_name: str | None = None
	result: ExecutionResult
	attempts: int = 0
	formatted: FormattedExtract | None = None
	display_text: str = ''
	user_action: UserAction = UserAction.NONE

	@property
	def success(self) -> bool:
		return self.result.success
