"""Data models for the Script Compiler component."""

from pydantic import BaseModel, ConfigDict, Field


class CompilerConfig(BaseModel):
	"""Configuration for the ScriptCompiler."""

	model_config = ConfigDict(extra='forbid')

	debug: bool = Field(default=False, description='Emit console.log tracing for every action in compiled bundles')
	content_param: str = Field(default='content', description='Runtime parameter used for fill actions without content')
