"""End-to-end tests for ChatAutomation over the fake backend."""

import pytest

from chatbridge.automation.service import ChatAutomation
from chatbridge.automation.views import AutomationConfig
from chatbridge.contexts.service import ContextManager
from chatbridge.shared_views import ErrorKind, UserAction
from chatbridge.templates.service import TemplateRegistry
from chatbridge.templates.views import ClickAction, ExtractAction, FillAction, Template, WaitAction

from tests.conftest import FakeBackend

URL = 'https://chat.example.com/'


def _send_template() -> Template:
	return Template(
		platform_id='example',
		name='send',
		url_pattern=r'https://chat\.example\.com.*',
		actions=[
			FillAction(selector='#input'),
			WaitAction(duration_ms=100),
			ClickAction(selector='#send'),
		],
	)


def _ask_template() -> Template:
	return Template(
		platform_id='example',
		name='ask',
		url_pattern=r'https://chat\.example\.com.*',
		actions=[
			FillAction(selector='#input'),
			ClickAction(selector='#send'),
			ExtractAction(extract_code='() => document.body.innerText', output_format='markdown'),
		],
	)


def page_runner(failures: list[dict] | None = None, payload: dict | None = None):
	"""Responder acting like the page: reports queued failures first, then success."""
	queue = list(failures or [])

	def respond(context_id: str, script: str) -> dict:
		if queue:
			return {'success': False, 'duration': 1, 'actionsExecuted': 0, 'error': queue.pop(0)}
		result = {'success': True, 'duration': 42, 'actionsExecuted': script.count('actionsExecuted += 1;')}
		if payload is not None:
			result['payload'] = payload
		return result

	return respond


def _automation(backend: FakeBackend, *templates: Template, **config) -> ChatAutomation:
	config.setdefault('retry_delay_ms', 0)
	return ChatAutomation(TemplateRegistry(templates), ContextManager(backend), config=AutomationConfig(**config))


@pytest.mark.asyncio
async def test_fill_wait_click_sequence_succeeds():
	backend = FakeBackend(responder=page_runner())
	automation = _automation(backend, _send_template())

	outcome = await automation.send('example', 'hello world', url=URL)

	assert outcome.success is True
	assert outcome.result.actions_executed == 3
	assert outcome.attempts == 1
	assert outcome.user_action == UserAction.NONE
	assert outcome.template_name == 'send'
	assert backend.calls_for('create') == ['example']

	_, script = backend.scripts[0]
	assert '"hello world"' in script


@pytest.mark.asyncio
async def test_missing_template_fails_without_touching_contexts():
	backend = FakeBackend(responder=page_runner())
	automation = _automation(backend, _send_template())

	outcome = await automation.send('example', 'hi', url='https://elsewhere.example.org/')

	assert outcome.result.error.kind == ErrorKind.TEMPLATE_NOT_FOUND
	assert outcome.attempts == 0
	assert backend.calls == []


@pytest.mark.asyncio
async def test_missing_url_fails_with_context_not_ready():
	automation = _automation(FakeBackend(), _send_template())

	outcome = await automation.send('example', 'hi')

	assert outcome.result.error.kind == ErrorKind.CONTEXT_NOT_READY


@pytest.mark.asyncio
async def test_second_send_reuses_context_url():
	backend = FakeBackend(responder=page_runner())
	automation = _automation(backend, _send_template())

	await automation.send('example', 'first', url=URL)
	outcome = await automation.send('example', 'second')

	assert outcome.success is True
	assert backend.calls_for('create') == ['example']


@pytest.mark.asyncio
async def test_retries_selector_failures_before_submit():
	failure = {'kind': 'SelectorNotFound', 'message': 'no input', 'actionIndex': 0, 'actionType': 'fill', 'selector': '#input'}
	backend = FakeBackend(responder=page_runner([failure, failure]))
	automation = _automation(backend, _send_template(), max_retries=3)

	outcome = await automation.send('example', 'hello', url=URL)

	assert outcome.success is True
	assert outcome.attempts == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
	failure = {'kind': 'ElementNotVisible', 'message': 'hidden', 'actionIndex': 2, 'actionType': 'click', 'selector': '#send'}
	backend = FakeBackend(responder=page_runner([failure] * 5))
	automation = _automation(backend, _send_template(), max_retries=2)

	outcome = await automation.send('example', 'hello', url=URL)

	assert outcome.success is False
	assert outcome.attempts == 3
	assert outcome.user_action == UserAction.RETRY


@pytest.mark.asyncio
async def test_does_not_resend_after_submit_click():
	failure = {'kind': 'ResultTimeout', 'message': 'no answer', 'actionIndex': 2, 'actionType': 'extract'}
	backend = FakeBackend(responder=page_runner([failure]))
	automation = _automation(backend, _ask_template(), max_retries=3)

	outcome = await automation.send('example', 'hello', url=URL)

	assert outcome.success is False
	assert outcome.attempts == 1
	assert outcome.user_action == UserAction.RETRY


@pytest.mark.asyncio
async def test_not_logged_in_asks_for_login_without_retry():
	failure = {'kind': 'NotLoggedIn', 'message': 'login wall', 'actionIndex': 1, 'actionType': 'click'}
	backend = FakeBackend(responder=page_runner([failure]))
	automation = _automation(backend, _send_template())

	outcome = await automation.send('example', 'hello', url=URL)

	assert outcome.attempts == 1
	assert outcome.user_action == UserAction.LOGIN_PROMPT


@pytest.mark.asyncio
async def test_extracted_payload_is_formatted():
	payload = {'text': 'Hello there', 'html': '<p>Hello <strong>there</strong></p>', 'format': 'markdown'}
	backend = FakeBackend(responder=page_runner(payload=payload))
	automation = _automation(backend, _ask_template())

	outcome = await automation.send('example', 'hi', url=URL)

	assert outcome.success is True
	assert outcome.formatted.markdown == 'Hello **there**'
	assert outcome.display_text == 'Hello **there**'


class FailingNavigationBackend(FakeBackend):
	async def navigate(self, context_id: str, url: str) -> None:
		raise RuntimeError('navigation failed')


@pytest.mark.asyncio
async def test_backend_failure_while_preparing_context_is_returned():
	backend = FailingNavigationBackend(responder=page_runner())
	automation = _automation(backend, _send_template())
	await automation.send('example', 'first', url=URL)

	outcome = await automation.send('example', 'second', url=URL + 'other')

	assert outcome.success is False
	assert outcome.result.error.kind == ErrorKind.CONTEXT_NOT_READY
	assert 'navigation failed' in outcome.result.error.message
	assert outcome.attempts == 0
	assert outcome.user_action == UserAction.GENERIC_FAILURE
