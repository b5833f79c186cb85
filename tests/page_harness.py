"""Runs compiled bundles for real: a context backend executing scripts under node.

Every evaluate() starts a node process with a small stub DOM built from element
specs, compiles the script, then runs it. Reports made through the page-level
report function are forwarded to the result listener, the same way the browser
backend forwards Runtime.bindingCalled events. A script that does not parse
makes evaluate() raise, like Runtime.evaluate returning exceptionDetails.
"""

import asyncio
import json
import shutil
from typing import Any

import pytest

from chatbridge.bridge.views import REPORT_FUNCTION
from chatbridge.contexts.backend import ContextBackend
from chatbridge.contexts.views import ContextBounds

NODE = shutil.which('node')

requires_node = pytest.mark.skipif(NODE is None, reason='node is required to execute compiled bundles')

# Element spec keys: tag, value, text, width, height, display, contentEditable,
# onClick: {target, from, prefix, afterMs} copying `from`'s value into `target`'s text.
PAGE_HARNESS = r"""
const vm = require('vm');

let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => { input += chunk; });
process.stdin.on('end', () => {
	const { script, elements, reportFunction } = JSON.parse(input);
	const emit = (data) => process.stdout.write(JSON.stringify(data) + '\n');

	let compiled;
	try {
		compiled = new vm.Script(script);
	} catch (error) {
		emit({ compileError: String(error) });
		return;
	}

	class MouseEvent extends Event {}
	class PointerEvent extends MouseEvent {}
	class InputEvent extends Event {}

	const nodes = {};

	class StubElement {
		constructor(spec) {
			this.tagName = spec.tag || 'DIV';
			this.value = spec.value || '';
			this.textContent = spec.text || '';
			this.width = spec.width === undefined ? 100 : spec.width;
			this.height = spec.height === undefined ? 20 : spec.height;
			this.display = spec.display || 'block';
			this.isContentEditable = Boolean(spec.contentEditable);
			this.onClick = spec.onClick || null;
			this.events = [];
			this.focused = false;
		}

		focus() {
			this.focused = true;
		}

		getBoundingClientRect() {
			return { left: 0, top: 0, right: this.width, bottom: this.height, width: this.width, height: this.height };
		}

		dispatchEvent(event) {
			this.events.push(event.type);
			if (event.type === 'click' && this.onClick) {
				const { target, from, prefix, afterMs } = this.onClick;
				setTimeout(() => {
					nodes[target].textContent = (prefix || '') + (from ? nodes[from].value : '');
				}, afterMs || 0);
			}
			return true;
		}
	}

	for (const [selector, spec] of Object.entries(elements)) {
		nodes[selector] = new StubElement(spec);
	}

	globalThis.window = globalThis;
	globalThis.document = { querySelector: (selector) => nodes[selector] || null };
	globalThis.HTMLTextAreaElement = class HTMLTextAreaElement {};
	globalThis.HTMLInputElement = class HTMLInputElement {};
	globalThis.getComputedStyle = (element) => ({ visibility: 'visible', display: element.display });
	globalThis.MouseEvent = MouseEvent;
	globalThis.PointerEvent = PointerEvent;
	globalThis.InputEvent = InputEvent;
	globalThis[reportFunction] = (message) => process.stdout.write(message + '\n');

	let stateReported = false;
	process.on('beforeExit', () => {
		if (stateReported) {
			return;
		}
		stateReported = true;
		const pageState = {};
		for (const [selector, node] of Object.entries(nodes)) {
			pageState[selector] = { value: node.value, text: node.textContent, events: node.events, focused: node.focused };
		}
		emit({ pageState });
	});

	emit({ compiled: true });
	compiled.runInThisContext();
});
"""


class NodePageBackend(ContextBackend):
	"""ContextBackend running each script in a fresh node page built from element specs."""

	def __init__(self, elements: dict[str, dict[str, Any]]):
		super().__init__()
		self.elements = elements
		self.page_state: dict[str, dict[str, Any]] = {}
		self.compile_errors: list[str] = []
		self._readers: set[asyncio.Task] = set()

	async def create(self, context_id: str, url: str, bounds: ContextBounds) -> None:
		pass

	async def navigate(self, context_id: str, url: str) -> None:
		pass

	async def set_bounds(self, context_id: str, bounds: ContextBounds) -> None:
		pass

	async def show(self, context_id: str) -> None:
		pass

	async def hide(self, context_id: str) -> None:
		pass

	async def focus(self, context_id: str) -> None:
		pass

	async def close(self, context_id: str) -> None:
		pass

	async def evaluate(self, context_id: str, script: str) -> None:
		process = await asyncio.create_subprocess_exec(
			NODE,
			'-e',
			PAGE_HARNESS,
			stdin=asyncio.subprocess.PIPE,
			stdout=asyncio.subprocess.PIPE,
			stderr=asyncio.subprocess.DEVNULL,
		)
		process.stdin.write(
			json.dumps({'script': script, 'elements': self.elements, 'reportFunction': REPORT_FUNCTION}).encode()
		)
		await process.stdin.drain()
		process.stdin.close()

		first = json.loads(await process.stdout.readline() or b'{}')
		if not first.get('compiled'):
			await process.wait()
			error = first.get('compileError', 'page harness did not start')
			self.compile_errors.append(error)
			raise RuntimeError(error)

		reader = asyncio.create_task(self._read_reports(context_id, process))
		self._readers.add(reader)
		reader.add_done_callback(self._readers.discard)

	async def drain(self) -> None:
		"""Wait until every started page has exited and reported its final state."""
		while True:
			running = [reader for reader in self._readers if not reader.done()]
			if not running:
				return
			await asyncio.gather(*running)

	async def _read_reports(self, context_id: str, process: asyncio.subprocess.Process) -> None:
		async for line in process.stdout:
			data = json.loads(line)
			if 'pageState' in data:
				self.page_state[context_id] = data['pageState']
			else:
				self.emit_result(context_id, line.decode())
		await process.wait()
