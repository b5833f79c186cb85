"""Script Compiler - turns templates into self-contained script bundles."""

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from chatbridge.compiler.scripts import (
	CLICK_SEQUENCE,
	DISPATCH_INPUT_EVENTS,
	ELEMENT_POLL_INTERVAL_MS,
	RUNTIME_PRELUDE,
)
from chatbridge.compiler.views import CompilerConfig
from chatbridge.shared_views import TemplateError
from chatbridge.templates.views import (
	Action,
	ClickAction,
	CustomAction,
	ExtractAction,
	FillAction,
	SelectorConfig,
	Template,
	WaitAction,
)

logger = logging.getLogger(__name__)

PARAM_PATTERN = re.compile(r'\{param:(\w+)\}')


def js_string(value: str) -> str:
	"""Encode a Python string as a JavaScript string literal.

	JSON string syntax is a subset of JavaScript's; with ensure_ascii the
	output also escapes U+2028/U+2029, which JavaScript treats as line breaks.
	"""
	return json.dumps(value, ensure_ascii=True)


def js_value(value: Any) -> str:
	"""Encode a JSON-serializable value as a JavaScript literal."""
	return json.dumps(value, ensure_ascii=True)


def _target_literal(target: SelectorConfig, login_selectors: list[str] | None = None) -> str:
	return js_value(
		{
			'selector': target.selector,
			'iframeSelector': target.iframe_selector,
			'shadowHostSelector': target.shadow_host_selector,
			'timeoutMs': target.timeout_ms,
			'loginSelectors': login_selectors or [],
		}
	)


class ScriptCompiler:
	"""Compiles actions into JavaScript that runs inside an embedded context.

	Each action becomes an awaitable fragment. Fragments rely on the helpers of
	RUNTIME_PRELUDE and are only meant to run inside a bundle produced by
	generate_sequence_script, which evaluates to a Promise of a JSON-serializable
	result object and never rejects.
	"""

	def __init__(self, config: CompilerConfig | None = None):
		"""Initialize the ScriptCompiler.

		Args:
			config: Optional compiler configuration
		"""
		self.config = config or CompilerConfig()
		logger.info('ScriptCompiler initialized')

	def generate_action_script(self, action: Action) -> str:
		"""Generate the fragment for a single action.

		Args:
			action: Action to compile

		Returns:
			A JavaScript expression evaluating to a Promise

		Raises:
			TemplateError: If the action type is unknown
		"""
		match action:
			case FillAction():
				return self._fill_script(action)
			case ClickAction():
				return self._click_script(action)
			case WaitAction():
				return self._wait_script(action)
			case CustomAction():
				return self._custom_script(action)
			case ExtractAction():
				return self._extract_script(action)
			case _:
				raise TemplateError(f'Unknown action type: {type(action).__name__}')

	def generate_sequence_script(self, actions: Sequence[Action]) -> str:
		"""Compose action fragments into one bundle executing them in order.

		The bundle resolves to {success, duration, actionsExecuted, error?, payload?}.
		Any failing fragment aborts the sequence; its error is reported in the
		error field together with the action index, type and selector.

		Args:
			actions: Ordered actions

		Returns:
			The compiled bundle as a single JavaScript expression
		"""
		steps = [self._sequence_step(index, action) for index, action in enumerate(actions)]
		trace_start = f"\n\tconsole.log('[chatbridge] sequence started, {len(actions)} actions');" if self.config.debug else ''

		return f"""(async () => {{
	{RUNTIME_PRELUDE}
	let actionsExecuted = 0;
	let current = null;
	let payload = null;{trace_start}
	try {{
{''.join(steps)}
		const result = {{ success: true, duration: Date.now() - startTime, actionsExecuted }};
		if (payload !== null) {{
			result.payload = payload;
		}}
		return result;
	}} catch (error) {{
		const message = error && error.message ? error.message : String(error);
		return {{
			success: false,
			duration: Date.now() - startTime,
			actionsExecuted,
			error: {{
				kind: (error && error.kind) || 'ScriptExecutionError',
				message,
				actionIndex: current ? current.index : null,
				actionType: current ? current.type : null,
				selector: (error && error.selector) || (current ? current.selector : null),
			}},
		}};
	}}
}})()"""

	def generate_template_script(self, template: Template, params: dict[str, Any] | None = None) -> str:
		"""Generate the bundle for a template with runtime parameters injected.

		Args:
			template: Template to compile
			params: Runtime parameters; 'content' fills actions without content

		Returns:
			The compiled bundle
		"""
		params = params or {}
		actions = [self._inject_params(action, params) for action in template.actions]

		if self.config.debug:
			logger.info(
				f'Generating script from template {template.platform_id}/{template.name} with {len(actions)} actions'
			)

		return self.generate_sequence_script(actions)

	def estimate_budget_ms(self, actions: Sequence[Action]) -> int:
		"""Upper bound of the time a sequence may legitimately run."""
		budget = 0
		for action in actions:
			match action:
				case FillAction():
					budget += action.delay + action.timeout
				case ClickAction():
					visible_wait = action.timeout if action.wait_for_visible else 0
					budget += action.delay + action.timeout + visible_wait
				case WaitAction():
					budget += action.duration_ms
				case ExtractAction():
					budget += action.timeout_ms + action.poll_interval_ms
				case CustomAction():
					pass
		return budget

	def _inject_params(self, action: Action, params: dict[str, Any]) -> Action:
		"""Replace {param:name} placeholders and default fill content."""
		if isinstance(action, FillAction):
			content = action.content
			if not content:
				if self.config.content_param not in params:
					logger.warning(f'Fill action on {action.selector} has no content and no "{self.config.content_param}" parameter')
				content = str(params.get(self.config.content_param, ''))
			else:
				content = PARAM_PATTERN.sub(lambda m: self._param_value(m, params), content)
			return action.model_copy(update={'content': content})

		if isinstance(action, CustomAction) and PARAM_PATTERN.search(action.code):
			code = PARAM_PATTERN.sub(lambda m: js_string(self._param_value(m, params)), action.code)
			return action.model_copy(update={'code': code})

		return action

	def _param_value(self, match: re.Match, params: dict[str, Any]) -> str:
		name = match.group(1)
		if name not in params:
			raise TemplateError(f'Missing template parameter: {name}')
		return str(params[name])

	def _sequence_step(self, index: int, action: Action) -> str:
		selector = getattr(action, 'selector', None)
		lines = [
			f'// Action {index + 1}: {action.type}',
			f'current = {{ index: {index}, type: {js_string(action.type)}, selector: {js_value(selector)} }};',
			'checkCancelled();',
		]
		delay = getattr(action, 'delay', 0)
		if delay > 0:
			lines.append(f'await sleep({delay});')
		if self.config.debug:
			lines.append(f"console.log('[chatbridge] action {index + 1}: {action.type}');")

		fragment = self.generate_action_script(action)
		if isinstance(action, ExtractAction):
			lines.append(f'payload = await {fragment};')
		else:
			lines.append(f'await {fragment};')
		lines.append('actionsExecuted += 1;')

		return ''.join(f'\t\t{line}\n' for line in lines)

	def _fill_script(self, action: FillAction) -> str:
		events = DISPATCH_INPUT_EVENTS if action.trigger_events else '// input events disabled'
		return f"""(async () => {{
		const element = await resolveElement({_target_literal(action.target)});
		const value = {js_string(action.content)};
		const tag = element.tagName;
		if (tag === 'TEXTAREA' || tag === 'INPUT') {{
			const view = (element.ownerDocument && element.ownerDocument.defaultView) || window;
			const proto = tag === 'TEXTAREA' ? view.HTMLTextAreaElement.prototype : view.HTMLInputElement.prototype;
			const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
			if (descriptor && descriptor.set) {{
				descriptor.set.call(element, value);
			}} else {{
				element.value = value;
			}}
			try {{
				element.focus();
				if (typeof element.setSelectionRange === 'function') {{
					element.setSelectionRange(value.length, value.length);
				}}
			}} catch (_err) {{}}
		}} else if (element.isContentEditable) {{
			try {{
				element.focus();
			}} catch (_err) {{}}
			element.textContent = value;
		}} else {{
			throw fail('ElementNotEditable', 'Element is not editable: ' + {js_string(action.selector)}, {js_string(action.selector)});
		}}
		{events}
		return {{ filled: value.length }};
	}})()"""

	def _click_script(self, action: ClickAction) -> str:
		if action.wait_for_visible:
			visibility = f"""const deadline = Date.now() + {action.timeout};
		const isVisible = () => {{
			rect = element.getBoundingClientRect();
			const view = (element.ownerDocument && element.ownerDocument.defaultView) || window;
			const style = view.getComputedStyle(element);
			return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
		}};
		while (!isVisible()) {{
			checkCancelled();
			if (Date.now() >= deadline) {{
				throw fail('ElementNotVisible', 'Element is not visible: ' + {js_string(action.selector)}, {js_string(action.selector)});
			}}
			await sleep({ELEMENT_POLL_INTERVAL_MS});
		}}"""
		else:
			visibility = '// visibility check disabled'

		return f"""(async () => {{
		const element = await resolveElement({_target_literal(action.target, action.login_selectors)});
		let rect = element.getBoundingClientRect();
		{visibility}
		{CLICK_SEQUENCE}
		return {{ clicked: true }};
	}})()"""

	def _wait_script(self, action: WaitAction) -> str:
		return f'sleep({action.duration_ms})'

	def _custom_script(self, action: CustomAction) -> str:
		return f'(\n{action.code}\n)'

	def _extract_script(self, action: ExtractAction) -> str:
		return f"""(async () => {{
		const extract = (
{action.extract_code}
		);
		const placeholders = {js_value(action.effective_placeholders)};
		const loginSelectors = {js_value(action.login_selectors)};
		const deadline = Date.now() + {action.timeout_ms};
		const isPlaceholder = (text) => {{
			const normalized = text.trim().toLowerCase();
			return placeholders.includes(normalized) || /^[.\\u2026\\s]+$/.test(normalized);
		}};
		while (true) {{
			checkCancelled();
			const raw = await extract();
			let text = '';
			let html = null;
			if (typeof raw === 'string') {{
				text = raw;
			}} else if (raw && typeof raw === 'object') {{
				text = typeof raw.text === 'string' ? raw.text : '';
				html = typeof raw.html === 'string' ? raw.html : null;
			}}
			text = text.trim();
			if (text && !isPlaceholder(text)) {{
				return {{ text, html, format: {js_string(action.output_format.value)} }};
			}}
			const wall = detectLogin(loginSelectors);
			if (wall) {{
				throw fail('NotLoggedIn', 'Login required (matched ' + wall + ')');
			}}
			if (Date.now() >= deadline) {{
				throw fail('ResultTimeout', 'No content extracted within {action.timeout_ms}ms');
			}}
			await sleep({action.poll_interval_ms});
		}}
	}})()"""
