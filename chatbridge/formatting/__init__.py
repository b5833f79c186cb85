"""Formatting of extracted chat answers."""

from chatbridge.formatting.service import format_extracted_content, get_display_text, html_to_markdown, sanitize_html
from chatbridge.formatting.views import FormattedExtract

__all__ = ['format_extracted_content', 'get_display_text', 'html_to_markdown', 'sanitize_html', 'FormattedExtract']
