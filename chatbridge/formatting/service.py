"""Extract formatting - turns extracted chat answers into display-ready text."""

import logging
import re

import html2text
from bs4 import BeautifulSoup, Tag

from chatbridge.formatting.views import (
	CODE_LANGUAGE_ALIASES,
	CODE_LANGUAGE_LABEL_MAX_LENGTH,
	KNOWN_CODE_LANGUAGES,
	LANGUAGE_ATTR_NAMES,
	SANITIZE_REMOVAL_SELECTORS,
	FormattedExtract,
)
from chatbridge.shared_views import ExtractPayload, OutputFormat

logger = logging.getLogger(__name__)

_LANGUAGE_PREFIX = re.compile(r'^(?:language|lang|code|syntax|source)[-_:]?')
_NON_LANGUAGE_CHARS = re.compile(r'[^a-z0-9+#]')
_CANDIDATE_SPLIT = re.compile(r'[\s,;|/\\()\[\]{}"\'`<>:]+')
_LABEL_EXCLUDE_CLASS = re.compile(r'token|hljs|copy|button|icon', re.IGNORECASE)
_CODE_BLOCK_TOKEN = 'CHATBRIDGECODEBLOCK{index}END'


def sanitize_html(html: str) -> str:
	"""Remove copy buttons and code toolbars from extracted markup."""
	if not html:
		return html

	soup = BeautifulSoup(html, 'html.parser')
	for selector in SANITIZE_REMOVAL_SELECTORS:
		for node in soup.select(selector):
			node.decompose()
	return str(soup)


def normalize_language(candidate: str | None) -> str | None:
	"""Map a class name, attribute value or label to a known code language.

	Args:
		candidate: Raw hint such as 'hljs language-py' or 'Python'

	Returns:
		The canonical language name, or None when nothing matches
	"""
	if not candidate:
		return None

	condensed = ' '.join(candidate.split())
	if not condensed:
		return None

	direct = _normalize_token(condensed)
	if direct:
		return direct

	for token in _CANDIDATE_SPLIT.split(condensed):
		if not token:
			continue
		language = _normalize_token(token)
		if language:
			return language

	return None


def _normalize_token(token: str) -> str | None:
	normalized = token.lower().strip()
	normalized = _LANGUAGE_PREFIX.sub('', normalized)
	normalized = _NON_LANGUAGE_CHARS.sub('', normalized)
	if not normalized:
		return None

	normalized = CODE_LANGUAGE_ALIASES.get(normalized, normalized)
	return normalized if normalized in KNOWN_CODE_LANGUAGES else None


def _attribute_candidates(element: Tag) -> list[str]:
	values = []
	for name in LANGUAGE_ATTR_NAMES:
		value = element.get(name)
		if isinstance(value, list):
			value = ' '.join(value)
		if value:
			values.append(value)

	for name, value in element.attrs.items():
		if name.startswith('data-') and name not in LANGUAGE_ATTR_NAMES and re.search(r'lang|code', name, re.IGNORECASE):
			if isinstance(value, str) and value:
				values.append(value)

	return values


def _nearby_labels(node: Tag) -> list[str]:
	"""Short single-line texts next to the block, e.g. a code header showing 'python'."""
	labels = []
	current: Tag | None = node
	for _ in range(4):
		if current is None:
			break
		sibling = current.find_previous_sibling()
		if isinstance(sibling, Tag) and sibling.name not in ('pre', 'code', 'svg', 'button'):
			classes = ' '.join(sibling.get('class') or [])
			text = sibling.get_text().strip()
			if (
				text
				and len(text) <= CODE_LANGUAGE_LABEL_MAX_LENGTH
				and '\n' not in text
				and not _LABEL_EXCLUDE_CLASS.search(classes)
			):
				labels.append(text)
		current = current.parent if isinstance(current.parent, Tag) else None
	return labels


def detect_code_language(node: Tag) -> str:
	"""Detect the language of a code block from its attributes and surroundings."""
	candidates: list[str] = []
	candidates.extend(_attribute_candidates(node))

	parent = node.parent
	for _ in range(4):
		if not isinstance(parent, Tag):
			break
		candidates.extend(_attribute_candidates(parent))
		parent = parent.parent

	candidates.extend(_nearby_labels(node))

	for candidate in candidates:
		language = normalize_language(candidate)
		if language:
			return language
	return ''


def html_to_markdown(html: str) -> str:
	"""Convert answer markup to Markdown with fenced, language-tagged code blocks."""
	soup = BeautifulSoup(html, 'html.parser')
	code_blocks: list[str] = []

	for pre in soup.find_all('pre'):
		code = pre.find('code')
		raw = (code or pre).get_text()
		body = raw.replace('\r\n', '\n').replace('\r', '\n').replace('\u00a0', ' ').rstrip()
		language = detect_code_language(code or pre)
		code_blocks.append(f'```{language}\n{body}\n```')

		placeholder = soup.new_tag('p')
		placeholder.string = _CODE_BLOCK_TOKEN.format(index=len(code_blocks) - 1)
		pre.replace_with(placeholder)

	converter = html2text.HTML2Text()
	converter.body_width = 0
	converter.ignore_links = False
	converter.ignore_images = False
	converter.ignore_tables = False
	converter.ul_item_mark = '-'
	converter.emphasis_mark = '*'
	converter.strong_mark = '**'

	markdown = converter.handle(str(soup))
	for index, block in enumerate(code_blocks):
		markdown = markdown.replace(_CODE_BLOCK_TOKEN.format(index=index), block)

	return re.sub(r'\n{3,}', '\n\n', markdown).strip()


def format_extracted_content(payload: ExtractPayload | None) -> FormattedExtract | None:
	"""Prepare an extract payload for display.

	Markdown output is converted from the sanitised markup when the extractor
	returned any, falling back to the plain text when conversion fails.

	Args:
		payload: Payload reported by an extract action

	Returns:
		The formatted extract, or None without a payload
	"""
	if payload is None:
		return None

	text = (payload.text or '').strip()
	html = (payload.html or '').strip() or None
	markdown = None

	if html:
		try:
			html = sanitize_html(html)
		except Exception as e:
			logger.warning(f'Failed to sanitize extracted HTML: {e}')

	if payload.format == OutputFormat.MARKDOWN:
		if html:
			try:
				markdown = html_to_markdown(html)
			except Exception as e:
				logger.warning(f'Failed to convert HTML to markdown: {e}')
				markdown = text
		elif text:
			markdown = text

	return FormattedExtract(format=payload.format, text=text, markdown=markdown, html=html)


def get_display_text(payload: ExtractPayload | None) -> str:
	"""Text to show the user: Markdown when requested and available, else plain text."""
	formatted = format_extracted_content(payload)
	if formatted is None:
		return ''

	if formatted.format == OutputFormat.MARKDOWN and formatted.markdown:
		return formatted.markdown
	return formatted.text
