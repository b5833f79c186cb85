"""Built-in templates for the supported chat platforms."""

import json

from chatbridge.shared_views import OutputFormat
from chatbridge.templates.views import ClickAction, ExtractAction, FillAction, Template

CHAT_EXTRACT_TIMEOUT_MS = 30000
CHAT_POLL_INTERVAL_MS = 1000
FILL_DELAY_MS = 300
FILL_TIMEOUT_MS = 5000
CLICK_TIMEOUT_MS = 3000


def _last_match_extractor(selectors: list[str], prefer_paragraph: bool = False) -> str:
	"""Build an extraction function returning the last matching container's content."""
	candidates = ', '.join(json.dumps(s) for s in selectors)
	text_expr = "(container.querySelector('p')?.textContent || container.textContent)" if prefer_paragraph else 'container.textContent'
	return f"""() => {{
	const candidates = [{candidates}];
	for (const sel of candidates) {{
		const container = Array.from(document.querySelectorAll(sel)).pop();
		if (container) {{
			const text = {text_expr}?.trim();
			if (text) return {{ text, html: container.innerHTML }};
		}}
	}}
	return '';
}}"""


def _chat_template(
	platform_id: str,
	description: str,
	url_pattern: str,
	input_selector: str,
	send_selector: str,
	reply_selectors: list[str],
	login_selectors: list[str],
	prefer_paragraph: bool = False,
) -> Template:
	return Template(
		platform_id=platform_id,
		name='Send Message',
		description=description,
		url_pattern=url_pattern,
		actions=[
			FillAction(selector=input_selector, delay=FILL_DELAY_MS, timeout=FILL_TIMEOUT_MS),
			ClickAction(selector=send_selector, timeout=CLICK_TIMEOUT_MS, login_selectors=login_selectors),
			ExtractAction(
				timeout_ms=CHAT_EXTRACT_TIMEOUT_MS,
				poll_interval_ms=CHAT_POLL_INTERVAL_MS,
				extract_code=_last_match_extractor(reply_selectors, prefer_paragraph),
				output_format=OutputFormat.MARKDOWN,
				login_selectors=login_selectors,
			),
		],
	)


CHATGPT_TEMPLATES = [
	_chat_template(
		'chatgpt',
		'Send message to ChatGPT and extract response',
		r'https://(chat\.openai\.com|chatgpt\.com).*',
		'#prompt-textarea',
		'button[data-testid="send-button"]',
		[
			'div[data-message-author-role="assistant"]',
			'div[data-qa="assistant-message"]',
			'article:has([data-message-author-role="assistant"])',
		],
		['button[data-testid="login-button"]', 'a[href*="/auth/login"]'],
	),
]

CLAUDE_TEMPLATES = [
	_chat_template(
		'claude',
		'Fill the prompt and click send',
		r'https://claude\.ai.*',
		'textarea[placeholder*="Message"], div[contenteditable="true"]',
		'button[data-testid="sendButton"], button[aria-label*="Send"]',
		[
			'[data-testid="chatMessage"] [data-testid="assistantMessage"]',
			'[data-testid*="assistant"]',
			'main article',
		],
		['a[href*="/login"]', 'input[type="email"][id="email"]'],
	),
]

GEMINI_TEMPLATES = [
	_chat_template(
		'gemini',
		'Fill the prompt and submit',
		r'https://gemini\.google\.com.*',
		'div[contenteditable="true"][role="textbox"], .ql-editor, textarea',
		'button[aria-label*="Send"], button[type="submit"]',
		['message-content .markdown', '[role="feed"] article:last-child', '.prose'],
		['a[href*="accounts.google.com/ServiceLogin"]'],
	),
]

DEEPSEEK_TEMPLATES = [
	_chat_template(
		'deepseek',
		'Fill the prompt and send',
		r'https://chat\.deepseek\.com.*',
		'textarea, div[contenteditable="true"]',
		'button[type="submit"], button[aria-label*="Send"], .send-button',
		['.ds-markdown', '[data-role="assistant"]', '.message.assistant'],
		['a[href*="/sign_in"]'],
		prefer_paragraph=True,
	),
]

KIMI_TEMPLATES = [
	_chat_template(
		'kimi',
		'Fill the prompt and send',
		r'https://(kimi\.moonshot\.cn|www\.kimi\.com).*',
		'textarea, div[contenteditable="true"][role="textbox"]',
		'button[type="submit"], button[aria-label*="Send"], .send-button',
		['[data-testid*="assistant"], [class*="assistant"]', '[data-role="assistant"]', '.message.assistant'],
		['.login-modal'],
		prefer_paragraph=True,
	),
]

ALL_TEMPLATES: list[Template] = [
	*CHATGPT_TEMPLATES,
	*CLAUDE_TEMPLATES,
	*GEMINI_TEMPLATES,
	*DEEPSEEK_TEMPLATES,
	*KIMI_TEMPLATES,
]


def get_templates_by_platform(platform_id: str) -> list[Template]:
	return [t for t in ALL_TEMPLATES if t.platform_id == platform_id]
