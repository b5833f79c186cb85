"""Execution Bridge - dispatches scripts into contexts and correlates their results."""

import asyncio
import json
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from chatbridge.bridge.views import BridgeConfig, ExecutionRequest, PendingExecution
from chatbridge.compiler.scripts import CANCEL_FLAGS_GLOBAL, RUN_TOKEN_GLOBAL
from chatbridge.compiler.service import js_string
from chatbridge.shared_views import ErrorKind, ExecutionResult

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, str], Awaitable[None]]
LivenessCheck = Callable[[str], bool]

_ERROR_KINDS = {kind.value for kind in ErrorKind}


class ExecutionBridge:
	"""Runs scripts inside embedded contexts and awaits their results.

	Evaluation inside a context has no synchronous return channel, so every
	submission is wrapped to report its result, tagged with a correlation id,
	through a page-level function. The backend forwards those reports to
	handle_event, which resolves the matching entry of the correlation table.

	Each request yields exactly one outcome: the reported result, a failure
	when dispatch itself fails, or ResultTimeout. Reports arriving after that
	are logged and dropped. A timed-out script keeps running in the page unless
	it polls the cancellation flag that compiled bundles check.
	"""

	def __init__(self, dispatch: Dispatch, config: BridgeConfig | None = None, is_live: LivenessCheck | None = None):
		"""Initialize the ExecutionBridge.

		Args:
			dispatch: Coroutine submitting script text to a context without awaiting its result
			config: Optional bridge configuration
			is_live: Optional check run once a request holds its context's lock; requests
				for contexts it rejects fail with ContextNotReady without being dispatched
		"""
		self._dispatch = dispatch
		self._is_live = is_live
		self.config = config or BridgeConfig()
		self.pending: dict[str, PendingExecution] = {}
		self._locks: dict[str, asyncio.Lock] = {}
		self._finished: OrderedDict[str, str] = OrderedDict()
		logger.info('ExecutionBridge initialized')

	@property
	def pending_count(self) -> int:
		return len(self.pending)

	async def execute(self, context_id: str, script: str, timeout_ms: int | None = None) -> ExecutionResult:
		"""Execute a script inside a context and wait for its correlated result.

		Args:
			context_id: Target context
			script: JavaScript expression; its (awaited) value is the result
			timeout_ms: Optional timeout, defaults to config.default_timeout_ms

		Returns:
			The parsed execution result; failures are returned, never raised
		"""
		timeout_ms = timeout_ms if timeout_ms is not None else self.config.default_timeout_ms

		if not self.config.serialize_per_context:
			return await self._execute(context_id, script, timeout_ms)

		lock = self._locks.setdefault(context_id, asyncio.Lock())
		if lock.locked():
			logger.debug(f'Context {context_id}: waiting for previous execution to finish')
		async with lock:
			return await self._execute(context_id, script, timeout_ms)

	async def _execute(self, context_id: str, script: str, timeout_ms: int) -> ExecutionResult:
		if self._is_live is not None and not self._is_live(context_id):
			logger.warning(f'Context {context_id}: no longer live, script not dispatched')
			return ExecutionResult.failure(ErrorKind.CONTEXT_NOT_READY, f'Context {context_id} is not ready')

		request = ExecutionRequest(context_id=context_id, script=script, timeout_ms=timeout_ms)
		correlation_id = request.correlation_id
		future = asyncio.get_running_loop().create_future()
		self.pending[correlation_id] = PendingExecution(request=request, future=future)
		outcome = 'cancelled'

		logger.debug(f'Context {context_id}: dispatching {correlation_id} (timeout {timeout_ms}ms)')

		try:
			try:
				await self._dispatch(context_id, self.wrap_script(correlation_id, script))
			except Exception as e:
				outcome = 'dispatch_failed'
				logger.error(f'Context {context_id}: failed to dispatch {correlation_id}: {e}', exc_info=True)
				return ExecutionResult.failure(
					ErrorKind.SCRIPT_EXECUTION_ERROR,
					f'Failed to dispatch script: {e}',
					correlation_id=correlation_id,
				)

			try:
				result = await asyncio.wait_for(future, timeout=timeout_ms / 1000)
			except asyncio.TimeoutError:
				outcome = 'timeout'
				logger.warning(f'Context {context_id}: no result for {correlation_id} within {timeout_ms}ms')
				if self.config.cancel_on_timeout:
					await self._request_cancel(context_id, correlation_id)
				return ExecutionResult.failure(
					ErrorKind.RESULT_TIMEOUT,
					f'No result within {timeout_ms}ms',
					correlation_id=correlation_id,
				)

			outcome = 'resolved'
			return result

		finally:
			self.pending.pop(correlation_id, None)
			self._remember(correlation_id, outcome)

	def handle_event(self, payload: str | bytes | dict[str, Any], context_id: str | None = None) -> bool:
		"""Resolve the pending request a result event belongs to.

		Args:
			payload: JSON text (or decoded dict) of the form {correlationId, result}
			context_id: Context the event came from, when the backend knows it

		Returns:
			True if the event resolved a pending request
		"""
		if isinstance(payload, (str, bytes)):
			try:
				data = json.loads(payload)
			except json.JSONDecodeError as e:
				logger.warning(f'Ignoring malformed result event from {context_id}: {e}')
				return False
		else:
			data = payload

		if not isinstance(data, dict):
			logger.warning(f'Ignoring result event with unexpected shape from {context_id}')
			return False

		correlation_id = data.get('correlationId')
		pending = self.pending.get(correlation_id) if isinstance(correlation_id, str) else None

		if pending is None:
			if correlation_id in self._finished:
				logger.warning(
					f'Ignoring late result for {correlation_id} (request already {self._finished[correlation_id]})'
				)
			else:
				logger.warning(f'Ignoring result for unknown correlation id: {correlation_id}')
			return False

		if context_id is not None and context_id != pending.request.context_id:
			logger.warning(
				f'Ignoring result for {correlation_id}: expected context {pending.request.context_id}, got {context_id}'
			)
			return False

		if pending.future.done():
			logger.warning(f'Ignoring duplicate result for {correlation_id}')
			return False

		result = self.parse_result(data.get('result'))
		result.correlation_id = correlation_id
		pending.future.set_result(result)
		logger.debug(f'Context {pending.request.context_id}: result received for {correlation_id} (success={result.success})')
		return True

	@staticmethod
	def parse_result(raw: Any) -> ExecutionResult:
		"""Validate a bundle result object.

		Args:
			raw: Decoded result object reported by the page

		Returns:
			The execution result, or an InvalidResultFormat failure
		"""
		if not isinstance(raw, dict) or not isinstance(raw.get('success'), bool):
			return ExecutionResult.failure(
				ErrorKind.INVALID_RESULT_FORMAT,
				f'Expected an object with a boolean "success", got {type(raw).__name__}',
			)

		error = raw.get('error')
		if isinstance(error, dict) and error.get('kind') not in _ERROR_KINDS:
			error = {**error, 'kind': ErrorKind.SCRIPT_EXECUTION_ERROR.value}
		elif isinstance(error, str):
			error = {'kind': ErrorKind.SCRIPT_EXECUTION_ERROR.value, 'message': error}
		if not raw['success'] and error is None:
			error = {'kind': ErrorKind.SCRIPT_EXECUTION_ERROR.value, 'message': 'Execution failed without error details'}

		try:
			return ExecutionResult.model_validate(
				{
					'success': raw['success'],
					'error': error,
					'duration_ms': raw.get('duration'),
					'actions_executed': raw.get('actionsExecuted'),
					'payload': raw.get('payload'),
				}
			)
		except ValidationError as e:
			return ExecutionResult.failure(ErrorKind.INVALID_RESULT_FORMAT, f'Invalid result: {e.error_count()} validation errors')

	def wrap_script(self, correlation_id: str, script: str) -> str:
		"""Wrap a script so its settled value is reported with the correlation id."""
		cid = js_string(correlation_id)
		channel = js_string(self.config.report_function)
		return f"""(() => {{
	const report = (result) => {{
		let message;
		try {{
			message = JSON.stringify({{ correlationId: {cid}, result }});
		}} catch (error) {{
			message = JSON.stringify({{
				correlationId: {cid},
				result: {{ success: false, error: {{ kind: 'InvalidResultFormat', message: String(error) }} }},
			}});
		}}
		const channel = globalThis[{channel}];
		if (typeof channel === 'function') {{
			channel(message);
		}} else {{
			console.error('[chatbridge] result channel unavailable', message);
		}}
	}};
	globalThis.{RUN_TOKEN_GLOBAL} = {cid};
	let pending;
	try {{
		pending = Promise.resolve(
{script}
		);
	}} catch (error) {{
		pending = Promise.reject(error);
	}}
	pending.then(report, (error) => report({{
		success: false,
		error: {{
			kind: (error && error.kind) || 'ScriptExecutionError',
			message: (error && error.message) || String(error),
		}},
	}}));
}})();"""

	def cancel_script(self, correlation_id: str) -> str:
		return f'(globalThis.{CANCEL_FLAGS_GLOBAL} = globalThis.{CANCEL_FLAGS_GLOBAL} || {{}})[{js_string(correlation_id)}] = true;'

	def cancel_all(self, context_id: str | None = None, reason: str = 'Context closed') -> int:
		"""Fail pending requests, e.g. when their context is destroyed.

		Args:
			context_id: Only cancel requests for this context (all when None)
			reason: Message of the ContextNotReady failure

		Returns:
			Number of requests resolved
		"""
		count = 0
		for correlation_id, pending in list(self.pending.items()):
			if context_id is not None and pending.request.context_id != context_id:
				continue
			if not pending.future.done():
				pending.future.set_result(
					ExecutionResult.failure(ErrorKind.CONTEXT_NOT_READY, reason, correlation_id=correlation_id)
				)
				count += 1
		if count:
			logger.info(f'Cancelled {count} pending executions ({reason})')
		return count

	def forget_context(self, context_id: str) -> None:
		lock = self._locks.get(context_id)
		if lock is not None and not lock.locked():
			self._locks.pop(context_id, None)

	async def _request_cancel(self, context_id: str, correlation_id: str) -> None:
		try:
			await self._dispatch(context_id, self.cancel_script(correlation_id))
			logger.debug(f'Context {context_id}: cancellation requested for {correlation_id}')
		except Exception as e:
			logger.warning(f'Context {context_id}: failed to request cancellation of {correlation_id}: {e}')

	def _remember(self, correlation_id: str, outcome: str) -> None:
		if self.config.finished_history == 0:
			return
		self._finished[correlation_id] = outcome
		while len(self._finished) > self.config.finished_history:
			self._finished.popitem(last=False)
