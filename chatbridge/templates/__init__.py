"""Template models and registry."""

from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import (
	Action,
	ClickAction,
	CustomAction,
	ExtractAction,
	FillAction,
	SelectorConfig,
	Template,
	WaitAction,
)

__all__ = [
	'TemplateRegistry',
	'Template',
	'Action',
	'FillAction',
	'ClickAction',
	'WaitAction',
	'CustomAction',
	'ExtractAction',
	'SelectorConfig',
]
