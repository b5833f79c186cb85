"""Tests for the TemplateStore."""

import json
from pathlib import Path

import pytest

from chatbridge.storage.service import TemplateStore
from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import ClickAction, FillAction, Template


def _template(platform_id: str = 'example', name: str = 'send') -> Template:
	return Template(
		platform_id=platform_id,
		name=name,
		url_pattern=r'https://chat\.example\.com.*',
		actions=[FillAction(selector='#input', iframe_selector='iframe#app'), ClickAction(selector='#send')],
	)


def test_save_and_load_template(tmp_path: Path):
	store = TemplateStore(tmp_path)

	store.save_template(_template())
	loaded = store.load_template('example', 'send')

	assert loaded == _template()


def test_files_use_camel_case_keys(tmp_path: Path):
	store = TemplateStore(tmp_path)

	path = store.save_template(_template())
	data = json.loads(path.read_text(encoding='utf-8'))

	assert data['platformId'] == 'example'
	assert data['urlPattern'] == r'https://chat\.example\.com.*'
	assert data['actions'][0]['iframeSelector'] == 'iframe#app'


def test_load_missing_template_raises(tmp_path: Path):
	with pytest.raises(FileNotFoundError):
		TemplateStore(tmp_path).load_template('example', 'missing')


def test_list_skips_unreadable_files(tmp_path: Path):
	store = TemplateStore(tmp_path)
	store.save_template(_template(name='one'))
	store.save_template(_template(platform_id='other', name='two'))
	(tmp_path / 'broken.json').write_text('{not json', encoding='utf-8')

	assert {t.name for t in store.list_templates()} == {'one', 'two'}
	assert [t.name for t in store.list_templates(platform_id='other')] == ['two']


def test_delete_template(tmp_path: Path):
	store = TemplateStore(tmp_path)
	store.save_template(_template())

	assert store.delete_template('example', 'send') is True
	assert store.delete_template('example', 'send') is False
	assert store.list_templates() == []


def test_names_with_path_characters_stay_inside_directory(tmp_path: Path):
	store = TemplateStore(tmp_path)

	path = store.save_template(_template(name='../escape/attempt'))

	assert path.parent == tmp_path
	assert store.load_template('example', '../escape/attempt').name == '../escape/attempt'


def test_load_into_registry(tmp_path: Path):
	store = TemplateStore(tmp_path)
	store.save_template(_template())
	registry = TemplateRegistry()

	assert store.load_into(registry) == 1
	assert registry.find_template_for_url('https://chat.example.com/') is not None
