"""Data models for the Context Lifecycle Manager."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from chatbridge.shared_views import CamelModel

BOUNDS_EPSILON = 0.5


class ContextState(str, Enum):
	"""Lifecycle state of an embedded context."""

	UNINITIALIZED = 'uninitialized'
	CREATING = 'creating'
	READY = 'ready'
	VISIBLE = 'visible'
	HIDDEN = 'hidden'
	DESTROYED = 'destroyed'


LIVE_STATES = frozenset({ContextState.READY, ContextState.VISIBLE, ContextState.HIDDEN})

ALLOWED_TRANSITIONS: dict[ContextState, frozenset[ContextState]] = {
	ContextState.UNINITIALIZED: frozenset({ContextState.CREATING, ContextState.DESTROYED}),
	ContextState.CREATING: frozenset({ContextState.READY, ContextState.DESTROYED}),
	ContextState.READY: frozenset({ContextState.VISIBLE, ContextState.HIDDEN, ContextState.DESTROYED}),
	ContextState.VISIBLE: frozenset({ContextState.VISIBLE, ContextState.HIDDEN, ContextState.DESTROYED}),
	ContextState.HIDDEN: frozenset({ContextState.VISIBLE, ContextState.HIDDEN, ContextState.DESTROYED}),
	ContextState.DESTROYED: frozenset(),
}


class ContextBounds(CamelModel):
	"""Logical position and size of a context inside the host window."""

	x: float = Field(default=0, description='Logical x offset')
	y: float = Field(default=0, description='Logical y offset')
	width: float = Field(default=800, ge=0, description='Logical width')
	height: float = Field(default=600, ge=0, description='Logical height')
	scale_factor: float = Field(default=1.0, gt=0, description='Device pixel ratio of the host window')

	def approx_equal(self, other: 'ContextBounds | None', epsilon: float = BOUNDS_EPSILON) -> bool:
		if other is None:
			return False
		return (
			abs(self.x - other.x) < epsilon
			and abs(self.y - other.y) < epsilon
			and abs(self.width - other.width) < epsilon
			and abs(self.height - other.height) < epsilon
		)


class Context(CamelModel):
	"""An embedded browsing context hosting one platform's page."""

	id: str = Field(description='Context id, equal to the platform id')
	url: str = Field(description='URL the context was created with or last navigated to')
	state: ContextState = Field(default=ContextState.UNINITIALIZED, description='Lifecycle state')
	bounds: ContextBounds = Field(default_factory=ContextBounds, description='Current bounds')
	created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat(), description='ISO creation time')
	last_focused_at: str | None = Field(default=None, description='ISO time the context last received focus')

	@property
	def is_live(self) -> bool:
		return self.state in LIVE_STATES


class ContextManagerConfig(BaseModel):
	"""Configuration for the ContextManager."""

	model_config = ConfigDict(extra='forbid')

	creation_timeout_ms: int = Field(default=8000, gt=0, description='Maximum time to wait for the backend to create a context')
	focus_on_show: bool = Field(default=True, description='Request focus whenever a context is shown')
