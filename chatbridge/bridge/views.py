"""Data models for the Execution Bridge component."""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from uuid_extensions import uuid7str

# Page-level function through which wrapped scripts report their result.
REPORT_FUNCTION = '__chatbridgeReport'

DEFAULT_EXECUTION_TIMEOUT_MS = 10000


class BridgeConfig(BaseModel):
	"""Configuration for the ExecutionBridge."""

	model_config = ConfigDict(extra='forbid')

	default_timeout_ms: int = Field(default=DEFAULT_EXECUTION_TIMEOUT_MS, gt=0, description='Timeout when the caller gives none')
	serialize_per_context: bool = Field(default=True, description='Run at most one request per context at a time')
	cancel_on_timeout: bool = Field(default=True, description='Raise the cooperative cancellation flag after a timeout')
	report_function: str = Field(default=REPORT_FUNCTION, description='Name of the page-level result channel')
	finished_history: int = Field(default=256, ge=0, description='Finished correlation ids remembered to recognise late events')


class ExecutionRequest(BaseModel):
	"""One script submission awaiting its correlated result."""

	model_config = ConfigDict(extra='forbid')

	correlation_id: str = Field(default_factory=uuid7str, description='Unique id matching the result event to this request')
	context_id: str = Field(description='Target context')
	script: str = Field(description='Script text as submitted by the caller (before wrapping)')
	timeout_ms: int = Field(description='Timeout for this request')
	submitted_at: float = Field(default_factory=time.monotonic, description='Monotonic submission time')


class PendingExecution(BaseModel):
	"""A request waiting in the correlation table."""

	model_config = ConfigDict(extra='forbid', arbitrary_types_allowed=True)

	request: ExecutionRequest
	future: Any = Field(exclude=True)  # asyncio.Future, excluded from serialization
