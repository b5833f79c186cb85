"""Template registry - stores templates per platform and resolves them by URL."""

import logging
from collections.abc import Iterable

from chatbridge.templates.views import Template

logger = logging.getLogger(__name__)


class TemplateRegistry:
	"""Holds automation templates keyed by platform identifier.

	Templates are kept in registration order per platform. Registering a
	template whose (platform_id, name) already exists replaces it in place.
	"""

	def __init__(self, templates: Iterable[Template] | None = None):
		"""Initialize the registry.

		Args:
			templates: Optional templates to register up front
		"""
		self._templates: dict[str, list[Template]] = {}
		if templates:
			self.register_many(templates)
		logger.info(f'TemplateRegistry initialized with {len(self)} templates')

	@classmethod
	def with_builtin_templates(cls) -> 'TemplateRegistry':
		"""Create a registry pre-populated with the built-in platform templates."""
		from chatbridge.templates.builtin import ALL_TEMPLATES

		return cls(ALL_TEMPLATES)

	def register(self, template: Template) -> None:
		"""Register a template, replacing any with the same platform and name.

		Args:
			template: Template to register
		"""
		stored = template.model_copy(deep=True)
		templates = self._templates.setdefault(template.platform_id, [])

		for index, existing in enumerate(templates):
			if existing.name == template.name:
				templates[index] = stored
				logger.info(f'Template replaced: {template.platform_id}/{template.name}')
				return

		templates.append(stored)
		logger.info(f'Template registered: {template.platform_id}/{template.name}')

	def register_many(self, templates: Iterable[Template]) -> None:
		for template in templates:
			self.register(template)

	def unregister(self, platform_id: str, name: str) -> bool:
		"""Remove a template.

		Returns:
			True if a template was removed
		"""
		templates = self._templates.get(platform_id, [])
		for index, existing in enumerate(templates):
			if existing.name == name:
				del templates[index]
				if not templates:
					self._templates.pop(platform_id, None)
				logger.info(f'Template unregistered: {platform_id}/{name}')
				return True
		return False

	def get_templates(self, platform_id: str) -> list[Template]:
		"""Get all templates for a platform in registration order."""
		return list(self._templates.get(platform_id, []))

	def find_template(self, platform_id: str, name: str) -> Template | None:
		for template in self._templates.get(platform_id, []):
			if template.name == name:
				return template
		return None

	def find_template_for_url(self, url: str, platform_id: str | None = None) -> Template | None:
		"""Find the first template whose url_pattern matches the URL.

		Patterns are searched (not anchored) and matched case-sensitively.
		When platform_id is given only that platform's templates are considered.

		Args:
			url: Target URL
			platform_id: Optional platform restriction

		Returns:
			The first matching template in registration order, or None
		"""
		if platform_id is not None:
			candidates = self._templates.get(platform_id, [])
		else:
			candidates = [t for templates in self._templates.values() for t in templates]

		for template in candidates:
			if template.matches(url):
				logger.debug(f'Template matched for {url}: {template.platform_id}/{template.name}')
				return template

		logger.debug(f'No template matched for {url} (platform: {platform_id})')
		return None

	def platforms(self) -> list[str]:
		return list(self._templates.keys())

	def all_templates(self) -> list[Template]:
		return [t for templates in self._templates.values() for t in templates]

	def __len__(self) -> int:
		return sum(len(templates) for templates in self._templates.values())
