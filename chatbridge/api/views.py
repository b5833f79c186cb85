"""Request models and process configuration for the HTTP API."""

import os

from pydantic import BaseModel, ConfigDict, Field

from chatbridge.bridge.views import DEFAULT_EXECUTION_TIMEOUT_MS
from chatbridge.contexts.views import ContextBounds
from chatbridge.shared_views import CamelModel
from chatbridge.visibility.views import HostSignal

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


class ServerConfig(BaseModel):
	"""Process configuration, read from CHATBRIDGE_* environment variables."""

	model_config = ConfigDict(extra='forbid')

	headless: bool = Field(default=False, description='Run the browser without visible windows')
	templates_dir: str | None = Field(default=None, description='Directory of stored templates')
	execution_timeout_ms: int = Field(default=DEFAULT_EXECUTION_TIMEOUT_MS, gt=0, description='Default bridge timeout')
	host: str = Field(default='127.0.0.1', description='Bind address')
	port: int = Field(default=8000, description='Bind port')

	@classmethod
	def from_env(cls) -> 'ServerConfig':
		"""Build the configuration from the environment (after load_dotenv)."""
		values = {}
		if 'CHATBRIDGE_HEADLESS' in os.environ:
			values['headless'] = os.environ['CHATBRIDGE_HEADLESS'].strip().lower() in _TRUE_VALUES
		if os.environ.get('CHATBRIDGE_TEMPLATES_DIR'):
			values['templates_dir'] = os.environ['CHATBRIDGE_TEMPLATES_DIR']
		if os.environ.get('CHATBRIDGE_EXECUTION_TIMEOUT_MS'):
			values['execution_timeout_ms'] = int(os.environ['CHATBRIDGE_EXECUTION_TIMEOUT_MS'])
		if os.environ.get('CHATBRIDGE_HOST'):
			values['host'] = os.environ['CHATBRIDGE_HOST']
		if os.environ.get('CHATBRIDGE_PORT'):
			values['port'] = int(os.environ['CHATBRIDGE_PORT'])
		return cls(**values)


class MatchTemplateRequest(CamelModel):
	"""Request to resolve the template for a URL."""

	url: str = Field(description='Target URL')
	platform_id: str | None = Field(default=None, description='Optional platform restriction')


class EnsureContextRequest(CamelModel):
	"""Request to create a context or bring it to a URL."""

	url: str = Field(description='URL to load')
	bounds: ContextBounds | None = Field(default=None, description='Bounds inside the host window')


class EvaluateRequest(CamelModel):
	"""Request to run a script in a context."""

	script: str = Field(min_length=1, description='JavaScript expression or compiled bundle')
	timeout_ms: int | None = Field(default=None, gt=0, description='Optional timeout')


class TemplateScriptRequest(CamelModel):
	"""Request to run a registered template in a context."""

	platform_id: str = Field(description='Platform of the template')
	name: str = Field(description='Template name')
	params: dict[str, str] = Field(default_factory=dict, description='Runtime parameters')
	timeout_ms: int | None = Field(default=None, gt=0, description='Optional timeout')


class HostSignalRequest(CamelModel):
	"""A host-window lifecycle signal."""

	signal: HostSignal = Field(description='Signal to deliver to the visibility coordinator')
