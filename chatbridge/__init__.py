"""chatbridge - script injection and context coordination for embedded chat sites.

Drives third-party chat web pages hosted in embedded browsing contexts:
declarative templates are compiled into self-contained scripts, executed inside
the pages, and their results are correlated back to the caller.

Components:
- Templates: Declarative action sequences bound to URL patterns
- Compiler: Turns templates into injectable script bundles
- Bridge: Executes bundles and correlates asynchronous results
- Contexts: Lifecycle and state machine of embedded contexts
- Visibility: Keeps contexts in step with the host window
- Automation: Send-and-extract facade with retries
- Storage: Persists user-defined templates
- API: REST interface for the engine
"""

from chatbridge.automation.service import ChatAutomation
from chatbridge.automation.views import AutomationConfig, AutomationResult
from chatbridge.bridge.service import ExecutionBridge
from chatbridge.bridge.views import BridgeConfig
from chatbridge.compiler.service import ScriptCompiler
from chatbridge.compiler.views import CompilerConfig
from chatbridge.contexts.backend import ContextBackend
from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import Context, ContextBounds, ContextManagerConfig, ContextState
from chatbridge.formatting.service import format_extracted_content, get_display_text
from chatbridge.shared_views import (
	ChatBridgeError,
	ContextCreationError,
	ContextNotReadyError,
	ErrorKind,
	ExecutionError,
	ExecutionResult,
	ExtractPayload,
	OutputFormat,
	TemplateError,
	UserAction,
)
from chatbridge.storage.service import TemplateStore
from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import (
	Action,
	ClickAction,
	CustomAction,
	ExtractAction,
	FillAction,
	Template,
	WaitAction,
)
from chatbridge.visibility.service import VisibilityCoordinator
from chatbridge.visibility.views import CoordinatorConfig, HostSignal, HostWindow

__version__ = '1.0.0'

__all__ = [
	# Services
	'TemplateRegistry',
	'ScriptCompiler',
	'ExecutionBridge',
	'ContextManager',
	'VisibilityCoordinator',
	'ChatAutomation',
	'TemplateStore',
	# Configuration
	'CompilerConfig',
	'BridgeConfig',
	'ContextManagerConfig',
	'CoordinatorConfig',
	'AutomationConfig',
	# Templates
	'Template',
	'Action',
	'FillAction',
	'ClickAction',
	'WaitAction',
	'CustomAction',
	'ExtractAction',
	# Contexts
	'Context',
	'ContextBounds',
	'ContextState',
	'ContextBackend',
	'HostWindow',
	'HostSignal',
	# Results
	'ExecutionResult',
	'ExecutionError',
	'ExtractPayload',
	'OutputFormat',
	'ErrorKind',
	'UserAction',
	'AutomationResult',
	'format_extracted_content',
	'get_display_text',
	# Errors
	'ChatBridgeError',
	'ContextNotReadyError',
	'ContextCreationError',
	'TemplateError',
]
