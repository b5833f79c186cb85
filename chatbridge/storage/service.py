"""Template store - persists user-defined templates as JSON documents."""

import json
import logging
import re
from pathlib import Path

from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import Template

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r'[^A-Za-z0-9_.-]+')


class TemplateStore:
	"""Stores templates as one JSON file per (platform_id, name).

	Files use the camelCase template definition surface, so they can be
	written by hand or exchanged with other tools.
	"""

	def __init__(self, storage_dir: Path | str = 'chatbridge_templates'):
		"""Initialize the TemplateStore.

		Args:
			storage_dir: Directory holding the template files
		"""
		self.storage_dir = Path(storage_dir)
		self.storage_dir.mkdir(parents=True, exist_ok=True)
		logger.info(f'TemplateStore initialized at {self.storage_dir}')

	def _path_for(self, platform_id: str, name: str) -> Path:
		platform = _UNSAFE_NAME_CHARS.sub('_', platform_id)
		template = _UNSAFE_NAME_CHARS.sub('_', name)
		return self.storage_dir / f'{platform}__{template}.json'

	def save_template(self, template: Template) -> Path:
		"""Save a template, replacing any stored version.

		Args:
			template: Template to save

		Returns:
			Path of the written file

		Raises:
			IOError: If the file could not be written
		"""
		path = self._path_for(template.platform_id, template.name)

		try:
			with open(path, 'w', encoding='utf-8') as f:
				json.dump(template.model_dump(mode='json', by_alias=True), f, indent=2, ensure_ascii=False)

			logger.info(f'Template saved: {template.platform_id}/{template.name} at {path}')
			return path

		except OSError as e:
			logger.error(f'Failed to save template {template.platform_id}/{template.name}: {e}')
			raise IOError(f'Failed to save template: {e}') from e

	def load_template(self, platform_id: str, name: str) -> Template:
		"""Load a stored template.

		Raises:
			FileNotFoundError: If no such template is stored
			ValueError: If the stored document is not a valid template
		"""
		path = self._path_for(platform_id, name)
		if not path.exists():
			raise FileNotFoundError(f'Template not found: {platform_id}/{name}')
		return self._read(path)

	def _read(self, path: Path) -> Template:
		try:
			with open(path, 'r', encoding='utf-8') as f:
				data = json.load(f)
			return Template.model_validate(data)

		except Exception as e:
			logger.error(f'Failed to load template from {path}: {e}')
			raise ValueError(f'Invalid template data: {e}') from e

	def list_templates(self, platform_id: str | None = None) -> list[Template]:
		"""List stored templates, optionally for one platform.

		Unreadable files are skipped with a warning.
		"""
		templates = []

		for path in sorted(self.storage_dir.glob('*.json')):
			try:
				template = self._read(path)
			except ValueError as e:
				logger.warning(f'Skipping {path}: {e}')
				continue

			if platform_id and template.platform_id != platform_id:
				continue
			templates.append(template)

		logger.debug(f'Listed {len(templates)} templates')
		return templates

	def delete_template(self, platform_id: str, name: str) -> bool:
		"""Delete a stored template.

		Returns:
			True if a file was deleted
		"""
		path = self._path_for(platform_id, name)

		if not path.exists():
			logger.warning(f'Template not found for deletion: {platform_id}/{name}')
			return False

		try:
			path.unlink()
			logger.info(f'Template deleted: {platform_id}/{name}')
			return True

		except OSError as e:
			logger.error(f'Failed to delete template {platform_id}/{name}: {e}')
			return False

	def load_into(self, registry: TemplateRegistry) -> int:
		"""Register every stored template, replacing same-named ones.

		Returns:
			Number of templates registered
		"""
		templates = self.list_templates()
		registry.register_many(templates)
		logger.info(f'Loaded {len(templates)} stored templates into registry')
		return len(templates)
