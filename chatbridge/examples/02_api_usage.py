"""API usage example.

This example demonstrates how to use the chatbridge API to manage contexts,
run scripts and send chat messages via HTTP endpoints.

Before running this example:
1. Start the API server: python -m uvicorn chatbridge.api.server:app
2. The server will run at http://localhost:8000
"""

import asyncio
import logging

import httpx

# Setup
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_BASE_URL = 'http://localhost:8000/api/v1'


async def example_workflow():
	"""Complete API workflow example."""

	async with httpx.AsyncClient(timeout=120.0) as client:
		# ============ STEP 1: LIST TEMPLATES ============
		logger.info('=== STEP 1: LISTING TEMPLATES ===')

		response = await client.get(f'{API_BASE_URL}/templates')
		templates = response.json()

		logger.info(f'Total templates: {len(templates)}')
		for template in templates:
			logger.info(f'  - {template["platformId"]}/{template["name"]}: {template["urlPattern"]}')

		# ============ STEP 2: REGISTER A TEMPLATE ============
		logger.info('=== STEP 2: REGISTERING A CUSTOM TEMPLATE ===')

		custom = {
			'platformId': 'example',
			'name': 'read-heading',
			'urlPattern': r'https://example\.com.*',
			'actions': [
				{'type': 'wait', 'durationMs': 200},
				{
					'type': 'extract',
					'timeoutMs': 5000,
					'pollIntervalMs': 250,
					'extractCode': "() => document.querySelector('h1')?.innerText || ''",
				},
			],
		}
		response = await client.post(f'{API_BASE_URL}/templates', json=custom)
		if response.status_code != 200:
			logger.error(f'Failed to register template: {response.text}')
			return
		logger.info('✓ Template registered')

		# ============ STEP 3: OPEN CONTEXT ============
		logger.info('=== STEP 3: OPENING CONTEXT ===')

		response = await client.post(
			f'{API_BASE_URL}/contexts/example',
			json={'url': 'https://example.com', 'bounds': {'x': 0, 'y': 0, 'width': 900, 'height': 700}},
		)
		context = response.json()
		logger.info(f'✓ Context {context["id"]} is {context["state"]}')

		await client.post(f'{API_BASE_URL}/contexts/example/show')

		# ============ STEP 4: RUN TEMPLATE ============
		logger.info('=== STEP 4: RUNNING TEMPLATE ===')

		response = await client.post(
			f'{API_BASE_URL}/contexts/example/run-template',
			json={'platformId': 'example', 'name': 'read-heading'},
		)
		result = response.json()

		if result['success']:
			logger.info(f'✓ Heading: {result["payload"]["text"]}')
			logger.info(f'  Actions executed: {result["actionsExecuted"]} in {result["durationMs"]}ms')
		else:
			logger.error(f'✗ Failed: {result["error"]}')

		# ============ STEP 5: EVALUATE A RAW SCRIPT ============
		logger.info('=== STEP 5: EVALUATING SCRIPT ===')

		response = await client.post(
			f'{API_BASE_URL}/contexts/example/evaluate',
			json={'script': '({ success: true, payload: { text: document.title } })'},
		)
		logger.info(f'Evaluate result: {response.json()}')

		# ============ STEP 6: HOST SIGNALS ============
		logger.info('=== STEP 6: HIDING AND RESTORING HOST ===')

		response = await client.post(f'{API_BASE_URL}/host/signal', json={'signal': 'hide_intent'})
		logger.info(f'After hide: {response.json()}')
		response = await client.post(f'{API_BASE_URL}/host/signal', json={'signal': 'restore_intent'})
		logger.info(f'After restore: {response.json()}')

		# ============ STEP 7: CLEAN UP ============
		logger.info('=== STEP 7: CLOSING CONTEXT ===')

		await client.delete(f'{API_BASE_URL}/contexts/example')
		await client.delete(f'{API_BASE_URL}/templates/example/read-heading')
		logger.info('✓ Done')


if __name__ == '__main__':
	asyncio.run(example_workflow())
