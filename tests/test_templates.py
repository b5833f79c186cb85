"""Tests for template models and the TemplateRegistry."""

import pytest
from pydantic import ValidationError

from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import ClickAction, ExtractAction, FillAction, Template, WaitAction


def _template(platform_id: str = 'example', name: str = 'send', url_pattern: str = r'https://chat\.example\.com.*') -> Template:
	return Template(
		platform_id=platform_id,
		name=name,
		url_pattern=url_pattern,
		actions=[
			FillAction(selector='#input', content='hello'),
			WaitAction(duration_ms=100),
			ClickAction(selector='#send'),
		],
	)


def test_find_template_for_url_matches_pattern():
	registry = TemplateRegistry([_template()])

	template = registry.find_template_for_url('https://chat.example.com/c/1')

	assert template is not None
	assert template.name == 'send'


def test_find_template_for_url_returns_none_without_match():
	registry = TemplateRegistry([_template()])

	assert registry.find_template_for_url('https://other.example.org/') is None


def test_url_patterns_are_searched_not_anchored():
	registry = TemplateRegistry([_template(url_pattern=r'chat\.example\.com')])

	assert registry.find_template_for_url('https://chat.example.com/') is not None


def test_first_registered_template_wins():
	registry = TemplateRegistry([_template(name='first'), _template(name='second')])

	assert registry.find_template_for_url('https://chat.example.com/').name == 'first'


def test_platform_restriction():
	registry = TemplateRegistry([_template(platform_id='a'), _template(platform_id='b')])

	assert registry.find_template_for_url('https://chat.example.com/', platform_id='b').platform_id == 'b'
	assert registry.find_template_for_url('https://chat.example.com/', platform_id='c') is None


def test_register_replaces_same_name_in_place():
	registry = TemplateRegistry([_template(name='one'), _template(name='two')])

	replacement = _template(name='one', url_pattern=r'https://replaced\.example\.com')
	registry.register(replacement)

	assert [t.name for t in registry.get_templates('example')] == ['one', 'two']
	assert registry.find_template('example', 'one').url_pattern == r'https://replaced\.example\.com'
	assert len(registry) == 2


def test_unregister_removes_template():
	registry = TemplateRegistry([_template()])

	assert registry.unregister('example', 'send') is True
	assert registry.unregister('example', 'send') is False
	assert registry.platforms() == []


def test_get_templates_returns_copy():
	registry = TemplateRegistry([_template()])

	registry.get_templates('example').clear()

	assert len(registry.get_templates('example')) == 1


def test_invalid_url_pattern_is_rejected():
	with pytest.raises(ValidationError):
		_template(url_pattern='(unclosed')


def test_template_accepts_camel_case_definition():
	template = Template.model_validate(
		{
			'platformId': 'example',
			'name': 'extract',
			'urlPattern': 'example',
			'actions': [
				{'type': 'fill', 'selector': '#input', 'iframeSelector': 'iframe#chat'},
				{'type': 'extract', 'extractCode': '() => "x"', 'timeoutMs': 100, 'outputFormat': 'markdown'},
			],
		}
	)

	fill, extract = template.actions
	assert isinstance(fill, FillAction)
	assert fill.iframe_selector == 'iframe#chat'
	assert isinstance(extract, ExtractAction)
	assert extract.timeout_ms == 100


def test_unknown_action_type_is_rejected():
	with pytest.raises(ValidationError):
		Template.model_validate(
			{'platformId': 'x', 'name': 'y', 'urlPattern': 'x', 'actions': [{'type': 'hover', 'selector': 'a'}]}
		)


def test_builtin_templates_cover_known_platforms():
	registry = TemplateRegistry.with_builtin_templates()

	assert {'chatgpt', 'claude', 'gemini', 'deepseek', 'kimi'} <= set(registry.platforms())
	assert registry.find_template_for_url('https://chatgpt.com/', 'chatgpt') is not None
	assert registry.find_template_for_url('https://chat.deepseek.com/a/chat', 'deepseek') is not None
