"""Embedded context lifecycle management."""

from chatbridge.contexts.backend import ContextBackend, ResultListener
from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import Context, ContextBounds, ContextManagerConfig, ContextState

__all__ = [
	'ContextManager',
	'ContextBackend',
	'ResultListener',
	'Context',
	'ContextBounds',
	'ContextState',
	'ContextManagerConfig',
]
