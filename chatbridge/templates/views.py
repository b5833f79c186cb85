"""Data models for automation templates and their actions."""

import re
from typing import Annotated, Literal

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from chatbridge.shared_views import CamelModel, OutputFormat

DEFAULT_ACTION_DELAY_MS = 0
DEFAULT_SELECTOR_TIMEOUT_MS = 5000
DEFAULT_EXTRACT_TIMEOUT_MS = 10000
DEFAULT_POLL_INTERVAL_MS = 500

# Strings chat pages render while a reply is still being generated.
DEFAULT_PLACEHOLDERS: tuple[str, ...] = (
	'thinking',
	'thinking...',
	'loading',
	'loading...',
	'generating',
	'generating...',
	'typing...',
	'searching...',
	'正在思考',
	'思考中',
	'正在生成',
	'加载中',
)


class SelectorConfig(CamelModel):
	"""Path to an element, possibly nested in an iframe and/or a shadow tree."""

	selector: str = Field(min_length=1, description='CSS selector of the target element')
	iframe_selector: str | None = Field(default=None, description='CSS selector of the iframe to descend into first')
	shadow_host_selector: str | None = Field(default=None, description='CSS selector of the shadow host to descend into')
	timeout_ms: int = Field(default=DEFAULT_SELECTOR_TIMEOUT_MS, ge=0, description='How long to poll for the element')


class TargetedAction(CamelModel):
	"""Fields shared by actions that operate on one element."""

	selector: str = Field(min_length=1, description='CSS selector of the target element')
	iframe_selector: str | None = Field(default=None, description='Iframe to descend into before querying')
	shadow_host_selector: str | None = Field(default=None, description='Shadow host to descend into before querying')
	delay: int = Field(default=DEFAULT_ACTION_DELAY_MS, ge=0, description='Delay before the action in milliseconds')
	timeout: int = Field(default=DEFAULT_SELECTOR_TIMEOUT_MS, ge=0, description='Element wait timeout in milliseconds')

	@property
	def target(self) -> SelectorConfig:
		return SelectorConfig(
			selector=self.selector,
			iframe_selector=self.iframe_selector,
			shadow_host_selector=self.shadow_host_selector,
			timeout_ms=self.timeout,
		)


class FillAction(TargetedAction):
	"""Fill an input, textarea or contenteditable element with text."""

	type: Literal['fill'] = 'fill'
	content: str = Field(default='', description='Text to fill; empty means the runtime content parameter')
	trigger_events: bool = Field(default=True, description='Dispatch input/change events after filling')


class ClickAction(TargetedAction):
	"""Click an element once it is found (and visible, unless disabled)."""

	type: Literal['click'] = 'click'
	wait_for_visible: bool = Field(default=True, description='Wait for a non-empty, visible bounding box before clicking')
	login_selectors: list[str] = Field(default_factory=list, description='Selectors that indicate an authentication wall')


class WaitAction(CamelModel):
	"""Pause the sequence."""

	type: Literal['wait'] = 'wait'
	duration_ms: int = Field(ge=0, description='Delay in milliseconds')


class CustomAction(CamelModel):
	"""Author-supplied JavaScript expression, embedded verbatim and awaited.

	The code is pasted inside parentheses, so it must be a single expression.
	Statement-form code (`foo();`, `const x = 1`) makes the whole bundle fail to
	parse, which is reported as a dispatch ScriptExecutionError with no action index.
	"""

	type: Literal['custom'] = 'custom'
	code: str = Field(min_length=1, description='Single JavaScript expression to await (no statements or trailing semicolon)')


class ExtractAction(CamelModel):
	"""Poll an author-supplied extraction function until it yields content."""

	type: Literal['extract'] = 'extract'
	timeout_ms: int = Field(default=DEFAULT_EXTRACT_TIMEOUT_MS, ge=0, description='Maximum time to wait for content')
	poll_interval_ms: int = Field(default=DEFAULT_POLL_INTERVAL_MS, gt=0, description='Polling interval')
	extract_code: str = Field(min_length=1, description='JavaScript function expression (e.g. an arrow function) returning a string or {text, html}')
	output_format: OutputFormat = Field(default=OutputFormat.TEXT, description='Requested output format')
	placeholders: list[str] | None = Field(default=None, description='Loading strings treated as not-ready')
	login_selectors: list[str] = Field(default_factory=list, description='Selectors that indicate an authentication wall')

	@property
	def effective_placeholders(self) -> list[str]:
		source = self.placeholders if self.placeholders is not None else DEFAULT_PLACEHOLDERS
		return [p.strip().lower() for p in source if p.strip()]


Action = Annotated[
	FillAction | ClickAction | WaitAction | CustomAction | ExtractAction,
	Field(discriminator='type'),
]


class Template(CamelModel):
	"""A named, ordered list of actions bound to a URL pattern for one platform."""

	model_config = ConfigDict(
		extra='forbid',
		alias_generator=to_camel,
		populate_by_name=True,
		frozen=True,
	)

	platform_id: str = Field(min_length=1, description='Platform identifier (e.g. "chatgpt")')
	name: str = Field(min_length=1, description='Template name')
	description: str | None = Field(default=None, description='Template description')
	url_pattern: str = Field(description='Regular expression matched against the target URL')
	actions: list[Action] = Field(default_factory=list, description='Actions executed strictly in order')
	auto_execute: bool = Field(default=False, description='Run automatically once the page loads')

	@field_validator('url_pattern')
	@classmethod
	def _validate_url_pattern(cls, value: str) -> str:
		try:
			re.compile(value)
		except re.error as e:
			raise ValueError(f'Invalid url_pattern {value!r}: {e}') from e
		return value

	@property
	def key(self) -> tuple[str, str]:
		return (self.platform_id, self.name)

	def matches(self, url: str) -> bool:
		"""Unanchored, case-sensitive regex search of the pattern against a URL."""
		return re.search(self.url_pattern, url) is not None
