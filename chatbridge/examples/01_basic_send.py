"""Basic send example: Ensure context → Compile template → Execute → Format.

This example demonstrates the in-process workflow of:
1. Opening a chat site in an embedded context (a browser window)
2. Sending a message through the platform's built-in template
3. Reading the extracted answer

Log in to the chat site in the opened window first; when the page shows a
login wall the result asks for a login prompt instead.
"""

import asyncio
import logging

from browser_use.browser import BrowserProfile
from dotenv import load_dotenv

from chatbridge.automation.service import ChatAutomation
from chatbridge.backends.browser import BrowserBackend, BrowserHostWindow
from chatbridge.contexts.service import ContextManager
from chatbridge.contexts.views import ContextBounds
from chatbridge.shared_views import UserAction
from chatbridge.templates.service import TemplateRegistry
from chatbridge.visibility.service import VisibilityCoordinator
from chatbridge.visibility.views import HostSignal

# Setup
load_dotenv()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
	"""Send one message and print the answer."""

	# ============ STEP 1: START BACKEND ============
	logger.info('=== STEP 1: STARTING BROWSER BACKEND ===')

	backend = BrowserBackend(profile=BrowserProfile(headless=False, disable_security=False))
	await backend.start()

	contexts = ContextManager(backend)
	coordinator = VisibilityCoordinator(contexts, BrowserHostWindow(backend))
	automation = ChatAutomation(TemplateRegistry.with_builtin_templates(), contexts)

	try:
		# ============ STEP 2: SEND MESSAGE ============
		logger.info('=== STEP 2: SENDING MESSAGE ===')

		result = await automation.send(
			'deepseek',
			'Explain the difference between a list and a tuple in Python.',
			url='https://chat.deepseek.com/',
			bounds=ContextBounds(x=0, y=80, width=1000, height=760),
			show=True,
		)

		# ============ STEP 3: SHOW RESULT ============
		logger.info('=== STEP 3: RESULT ===')

		if result.success:
			logger.info(f'✓ Answer received after {result.attempts} attempt(s)')
			print(result.display_text)
		elif result.user_action == UserAction.LOGIN_PROMPT:
			logger.warning('Please log in to the chat site in the opened window and run again')
		else:
			logger.error(f'✗ Send failed: {result.result.error.describe() if result.result.error else "unknown"}')

		# ============ STEP 4: HIDE & RESTORE ============
		logger.info('=== STEP 4: HIDING AND RESTORING HOST ===')

		await coordinator.handle_signal(HostSignal.HIDE_INTENT)
		await asyncio.sleep(1)
		await coordinator.handle_signal(HostSignal.RESTORE_INTENT)

	finally:
		await contexts.close_all()
		await backend.stop()


if __name__ == '__main__':
	asyncio.run(main())
