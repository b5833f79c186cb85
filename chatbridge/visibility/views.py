"""Data models for the Visibility Coordinator."""

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

HIDE_WINDOW_DELAY_MS = 100


class HostSignal(str, Enum):
	"""Host-window lifecycle signals the coordinator reacts to."""

	FOCUS_GAINED = 'focus_gained'
	FOCUS_LOST = 'focus_lost'
	MINIMIZED = 'minimized'
	RESTORED = 'restored'
	HIDE_INTENT = 'hide_intent'
	RESTORE_INTENT = 'restore_intent'


class HostWindow(ABC):
	"""The top-level window that owns the embedded contexts."""

	@abstractmethod
	async def hide(self) -> None: ...

	@abstractmethod
	async def show(self) -> None:
		"""Show, un-minimise and focus the window."""


class CoordinatorConfig(BaseModel):
	"""Configuration for the VisibilityCoordinator."""

	model_config = ConfigDict(extra='forbid')

	settle_delay_ms: int = Field(
		default=HIDE_WINDOW_DELAY_MS, ge=0, description='Pause between hiding contexts and hiding the host window'
	)
	refocus_on_focus: bool = Field(default=True, description='Refocus the last focused visible context when the host gains focus')
