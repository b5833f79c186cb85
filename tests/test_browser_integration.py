"""End-to-end scenario against a real Chromium via browser-use.

Skipped unless CHATBRIDGE_BROWSER_TESTS=1 since it launches a browser.
"""

import os
from urllib.parse import quote

import pytest
import pytest_asyncio

from chatbridge.compiler.service import ScriptCompiler
from chatbridge.contexts.service import ContextManager
from chatbridge.templates.views import ClickAction, ExtractAction, FillAction, Template, WaitAction

pytestmark = [
	pytest.mark.browser,
	pytest.mark.skipif(os.environ.get('CHATBRIDGE_BROWSER_TESTS') != '1', reason='set CHATBRIDGE_BROWSER_TESTS=1 to run'),
]

CHAT_PAGE = """<!doctype html>
<html><body>
<textarea id="input"></textarea>
<button id="send" onclick="setTimeout(() => {
	document.querySelector('#reply').textContent = 'echo: ' + document.querySelector('#input').value;
}, 200)">Send</button>
<div id="reply">...</div>
</body></html>"""

PAGE_URL = 'data:text/html,' + quote(CHAT_PAGE)


@pytest_asyncio.fixture
async def browser_contexts():
	from browser_use.browser import BrowserProfile

	from chatbridge.backends.browser import BrowserBackend

	backend = BrowserBackend(profile=BrowserProfile(headless=True, disable_security=False))
	await backend.start()
	contexts = ContextManager(backend)
	yield contexts
	await contexts.close_all()
	await backend.stop()


@pytest.mark.asyncio
async def test_fill_click_extract(browser_contexts: ContextManager):
	template = Template(
		platform_id='local',
		name='echo',
		url_pattern=r'^data:',
		actions=[
			FillAction(selector='#input'),
			ClickAction(selector='#send'),
			WaitAction(duration_ms=50),
			ExtractAction(extract_code="() => document.querySelector('#reply').textContent", timeout_ms=5000),
		],
	)
	script = ScriptCompiler().generate_template_script(template, {'content': 'hello'})

	await browser_contexts.ensure('local', PAGE_URL)
	result = await browser_contexts.evaluate_script('local', script, timeout_ms=15000)

	assert result.success, result.error
	assert result.actions_executed == 4
	assert result.payload.text == 'echo: hello'


@pytest.mark.asyncio
async def test_missing_selector_reports_failure(browser_contexts: ContextManager):
	template = Template(
		platform_id='local',
		name='broken',
		url_pattern=r'^data:',
		actions=[ClickAction(selector='#does-not-exist', timeout=300)],
	)
	script = ScriptCompiler().generate_template_script(template)

	await browser_contexts.ensure('local', PAGE_URL)
	result = await browser_contexts.evaluate_script('local', script, timeout_ms=10000)

	assert not result.success
	assert result.error.kind.value == 'SelectorNotFound'
	assert result.error.action_index == 0
