"""Data models and constants for extract formatting."""

from pydantic import Field

from chatbridge.shared_views import CamelModel, OutputFormat

KNOWN_CODE_LANGUAGES = frozenset(
	{
		'assembly',
		'bash',
		'c',
		'csharp',
		'cpp',
		'css',
		'dart',
		'elixir',
		'erlang',
		'go',
		'graphql',
		'html',
		'java',
		'javascript',
		'json',
		'kotlin',
		'lua',
		'markdown',
		'objective-c',
		'perl',
		'php',
		'plaintext',
		'powershell',
		'python',
		'r',
		'ruby',
		'rust',
		'scala',
		'sql',
		'swift',
		'typescript',
		'xml',
		'yaml',
	}
)

CODE_LANGUAGE_ALIASES = {
	'js': 'javascript',
	'jsx': 'javascript',
	'node': 'javascript',
	'ts': 'typescript',
	'tsx': 'typescript',
	'py': 'python',
	'sh': 'bash',
	'shell': 'bash',
	'shellscript': 'bash',
	'zsh': 'bash',
	'ps': 'powershell',
	'ps1': 'powershell',
	'cplusplus': 'cpp',
	'c++': 'cpp',
	'c#': 'csharp',
	'cs': 'csharp',
	'golang': 'go',
	'objc': 'objective-c',
	'objectivec': 'objective-c',
	'yml': 'yaml',
	'plain': 'plaintext',
	'text': 'plaintext',
}

CODE_LANGUAGE_LABEL_MAX_LENGTH = 32

# Interactive chrome that chat sites render inside answers (copy buttons, code toolbars).
SANITIZE_REMOVAL_SELECTORS = (
	'button',
	'[role="button"]',
	'[aria-label*="copy" i]',
	'[aria-label*="复制"]',
	'.copy-button',
	'.copyButton',
	'.copy-code-button',
	'.code-info-button-text',
	'.code-info-button',
	'.codeBlockToolbar',
	'.code-block-toolbar',
	'.code-toolbar',
	'.codeToolbar',
	'.md-code-block-banner .buttons',
	'.md-code-block .buttons',
	'.code-block .buttons',
	'.formatted-code-block-buttons',
	'.formatted-code-block-toolbar',
)

LANGUAGE_ATTR_NAMES = (
	'class',
	'lang',
	'data-language',
	'data-lang',
	'data-code-language',
	'data-code-lang',
	'data-language-id',
	'data-language-name',
	'data-mode',
	'data-lexer',
	'aria-label',
)


class FormattedExtract(CamelModel):
	"""Extracted content prepared for display."""

	format: OutputFormat = Field(description='Requested output format')
	text: str = Field(default='', description='Trimmed plain text')
	markdown: str | None = Field(default=None, description='Markdown rendition, for the markdown format')
	html: str | None = Field(default=None, description='Sanitised markup, when available')
