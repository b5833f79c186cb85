"""JavaScript snippets shared by every compiled script bundle."""

# Page-level globals shared between the bridge wrapper and compiled bundles.
RUN_TOKEN_GLOBAL = '__chatbridgeCurrentRun'
CANCEL_FLAGS_GLOBAL = '__chatbridgeCancelled'

ELEMENT_POLL_INTERVAL_MS = 100

# Helpers available to every fragment. Evaluated synchronously at bundle start,
# so runToken is captured before the first suspension point.
RUNTIME_PRELUDE = f"""const startTime = Date.now();
	const runToken = globalThis.{RUN_TOKEN_GLOBAL} || null;
	const sleep = (ms) => new Promise((resolve) => setTimeout(resolve, ms));
	const fail = (kind, message, selector) => {{
		const error = new Error(message);
		error.kind = kind;
		if (selector) {{
			error.selector = selector;
		}}
		return error;
	}};
	const checkCancelled = () => {{
		const flags = globalThis.{CANCEL_FLAGS_GLOBAL};
		if (runToken && flags && flags[runToken]) {{
			throw fail('Cancelled', 'Execution cancelled by host');
		}}
	}};
	const detectLogin = (selectors) => {{
		for (const sel of selectors || []) {{
			try {{
				if (document.querySelector(sel)) {{
					return sel;
				}}
			}} catch (_err) {{}}
		}}
		return null;
	}};
	const resolveElement = async (target) => {{
		const deadline = Date.now() + target.timeoutMs;
		while (true) {{
			checkCancelled();
			let root = document;
			let kind = 'SelectorNotFound';
			let message = 'Element not found: ' + target.selector;
			if (target.iframeSelector) {{
				const iframe = root.querySelector(target.iframeSelector);
				const doc = iframe ? iframe.contentDocument : null;
				if (doc) {{
					root = doc;
				}} else {{
					root = null;
					kind = 'IframeNotFound';
					message = 'Iframe not found: ' + target.iframeSelector;
				}}
			}}
			if (root && target.shadowHostSelector) {{
				const host = root.querySelector(target.shadowHostSelector);
				if (host && host.shadowRoot) {{
					root = host.shadowRoot;
				}} else {{
					root = null;
					kind = 'ShadowHostNotFound';
					message = 'Shadow host not found: ' + target.shadowHostSelector;
				}}
			}}
			if (root) {{
				const element = root.querySelector(target.selector);
				if (element) {{
					return element;
				}}
			}}
			const wall = detectLogin(target.loginSelectors);
			if (wall) {{
				throw fail('NotLoggedIn', 'Login required (matched ' + wall + ')', target.selector);
			}}
			if (Date.now() >= deadline) {{
				throw fail(kind, message, target.selector);
			}}
			await sleep({ELEMENT_POLL_INTERVAL_MS});
		}}
	}};"""

# Event sequence dispatched by click fragments, at the element centre.
CLICK_SEQUENCE = """const evtInit = { bubbles: true, cancelable: true, composed: true, view: window };
		const centerX = (rect.left + rect.right) / 2;
		const centerY = (rect.top + rect.bottom) / 2;
		const withCoords = (init) => Object.assign({ clientX: centerX, clientY: centerY }, init);
		try {
			element.focus();
		} catch (_err) {}
		element.dispatchEvent(new PointerEvent('pointerdown', withCoords(evtInit)));
		element.dispatchEvent(new MouseEvent('mousedown', withCoords(evtInit)));
		element.dispatchEvent(new PointerEvent('pointerup', withCoords(evtInit)));
		element.dispatchEvent(new MouseEvent('mouseup', withCoords(evtInit)));
		element.dispatchEvent(new MouseEvent('click', withCoords(evtInit)));"""

# Input-then-change events so reactive frameworks observe a programmatic fill.
DISPATCH_INPUT_EVENTS = """const evtOptions = { bubbles: true, cancelable: false, composed: true };
		try {
			element.dispatchEvent(new InputEvent('input', evtOptions));
		} catch (_err) {
			element.dispatchEvent(new Event('input', evtOptions));
		}
		element.dispatchEvent(new Event('change', evtOptions));"""
