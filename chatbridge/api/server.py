"""FastAPI server exposing the chatbridge injection engine and context coordinator."""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatbridge.api.services import ChatBridgeServices
from chatbridge.api.views import (
    EnsureContextRequest,
    EvaluateRequest,
    HostSignalRequest,
    MatchTemplateRequest,
    ServerConfig,
    TemplateScriptRequest,
)
from chatbridge.automation.views import AutomationResult, SendRequest
from chatbridge.contexts.views import Context, ContextBounds
from chatbridge.shared_views import (
    ContextCreationError,
    ContextNotReadyError,
    ExecutionResult,
    InvalidTransitionError,
    TemplateError,
)
from chatbridge.templates.views import Template

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

tags_dict: Dict[str, Optional[List[Union[str, Enum]]]] = {
    "templates": ["Templates"],
    "contexts": ["Contexts"],
    "execution": ["Execution"],
    "host": ["Host Window"],
}


def get_services(request: Request) -> ChatBridgeServices:
    """Resolve the service container, or fail with 503 while it is unavailable."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="chatbridge services not available")
    return services


def create_app(
    services: ChatBridgeServices | None = None, config: ServerConfig | None = None
) -> FastAPI:
    """Create the API application.

    Args:
        services: Prebuilt services; when omitted they are built on startup from config
        config: Process configuration, defaults to ServerConfig.from_env()

    Returns:
        The FastAPI application
    """
    config = config or ServerConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for the API."""
        logger.info("🚀 Initializing chatbridge services...")

        if app.state.services is None:
            try:
                app.state.services = await ChatBridgeServices.from_config(config)
            except Exception as e:
                logger.error(f"⚠️  Failed to start chatbridge services: {e}", exc_info=True)
                app.state.services = None

        logger.info("✅ chatbridge API ready")

        yield

        logger.info("🛑 Shutting down chatbridge API...")
        if app.state.services is not None:
            await app.state.services.shutdown()

    app = FastAPI(
        title="chatbridge API",
        description="Script injection, extraction and context coordination for embedded chat sites",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.config = config

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ContextNotReadyError)
    async def context_not_ready(request: Request, exc: ContextNotReadyError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "contextId": exc.context_id, "state": exc.state},
        )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition(request: Request, exc: InvalidTransitionError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ContextCreationError)
    async def context_creation_failed(request: Request, exc: ContextCreationError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})


def _register_routes(app: FastAPI) -> None:
    # ==================== HEALTH CHECK ====================

    @app.get("/")
    async def root(request: Request):
        """Health check endpoint."""
        services = getattr(request.app.state, "services", None)
        return {
            "service": "chatbridge API",
            "version": API_VERSION,
            "status": "running" if services is not None else "degraded",
            "features": {
                "contexts": services is not None,
                "template_store": services is not None and services.store is not None,
            },
        }

    # ==================== TEMPLATES ====================

    @app.get(
        "/api/v1/templates",
        response_model=list[Template],
        tags=tags_dict["templates"],
    )
    async def list_templates(
        platform_id: str | None = None,
        services: ChatBridgeServices = Depends(get_services),
    ):
        """List registered templates, optionally for one platform."""
        if platform_id:
            return services.registry.get_templates(platform_id)
        return services.registry.all_templates()

    @app.post(
        "/api/v1/templates",
        response_model=Template,
        tags=tags_dict["templates"],
    )
    async def register_template(
        template: Template, services: ChatBridgeServices = Depends(get_services)
    ):
        """Register a template (and persist it when a template store is configured)."""
        services.registry.register(template)

        if services.store is not None:
            try:
                services.store.save_template(template)
            except IOError as e:
                raise HTTPException(status_code=500, detail=str(e))

        return template

    @app.delete(
        "/api/v1/templates/{platform_id}/{name}",
        tags=tags_dict["templates"],
    )
    async def delete_template(
        platform_id: str, name: str, services: ChatBridgeServices = Depends(get_services)
    ):
        """Unregister a template and delete its stored copy."""
        removed = services.registry.unregister(platform_id, name)
        if services.store is not None:
            removed = services.store.delete_template(platform_id, name) or removed

        if not removed:
            raise HTTPException(
                status_code=404, detail=f"Template not found: {platform_id}/{name}"
            )

        return {"status": "deleted", "platformId": platform_id, "name": name}

    @app.post(
        "/api/v1/templates/match",
        response_model=Template,
        tags=tags_dict["templates"],
    )
    async def match_template(
        request: MatchTemplateRequest, services: ChatBridgeServices = Depends(get_services)
    ):
        """Resolve the first template whose URL pattern matches the URL."""
        template = services.registry.find_template_for_url(request.url, request.platform_id)
        if template is None:
            raise HTTPException(status_code=404, detail=f"No template matches {request.url}")
        return template

    # ==================== CONTEXTS ====================

    @app.get(
        "/api/v1/contexts",
        response_model=list[Context],
        tags=tags_dict["contexts"],
    )
    async def list_contexts(services: ChatBridgeServices = Depends(get_services)):
        """List live contexts."""
        return services.contexts.list_contexts()

    @app.post(
        "/api/v1/contexts/{context_id}",
        response_model=Context,
        tags=tags_dict["contexts"],
    )
    async def ensure_context(
        context_id: str,
        request: EnsureContextRequest,
        services: ChatBridgeServices = Depends(get_services),
    ):
        """Create a context, or navigate and resize an existing one."""
        return await services.contexts.ensure(context_id, request.url, request.bounds)

    @app.get(
        "/api/v1/contexts/{context_id}",
        response_model=Context,
        tags=tags_dict["contexts"],
    )
    async def get_context(context_id: str, services: ChatBridgeServices = Depends(get_services)):
        """Get a context record."""
        context = services.contexts.get(context_id)
        if context is None:
            raise HTTPException(status_code=404, detail=f"Context not found: {context_id}")
        return context

    @app.post(
        "/api/v1/contexts/{context_id}/show",
        response_model=Optional[Context],
        tags=tags_dict["contexts"],
    )
    async def show_context(context_id: str, services: ChatBridgeServices = Depends(get_services)):
        """Show a context (deferred while the host window is hidden)."""
        return await services.coordinator.show_context(context_id)

    @app.post(
        "/api/v1/contexts/{context_id}/hide",
        response_model=Context,
        tags=tags_dict["contexts"],
    )
    async def hide_context(context_id: str, services: ChatBridgeServices = Depends(get_services)):
        """Hide a context."""
        return await services.coordinator.hide_context(context_id)

    @app.post(
        "/api/v1/contexts/{context_id}/focus",
        tags=tags_dict["contexts"],
    )
    async def focus_context(context_id: str, services: ChatBridgeServices = Depends(get_services)):
        """Focus a context."""
        focused = await services.contexts.set_focus(context_id)
        return {"contextId": context_id, "focused": focused}

    @app.put(
        "/api/v1/contexts/{context_id}/bounds",
        tags=tags_dict["contexts"],
    )
    async def update_bounds(
        context_id: str,
        bounds: ContextBounds,
        services: ChatBridgeServices = Depends(get_services),
    ):
        """Move or resize a context."""
        await services.contexts.update_bounds(context_id, bounds)
        return {"status": "updated", "contextId": context_id}

    @app.delete(
        "/api/v1/contexts/{context_id}",
        tags=tags_dict["contexts"],
    )
    async def close_context(context_id: str, services: ChatBridgeServices = Depends(get_services)):
        """Destroy a context."""
        closed = await services.contexts.close(context_id)
        if not closed:
            raise HTTPException(status_code=404, detail=f"Context not found: {context_id}")
        return {"status": "closed", "contextId": context_id}

    # ==================== EXECUTION ====================

    @app.post(
        "/api/v1/contexts/{context_id}/evaluate",
        response_model=ExecutionResult,
        tags=tags_dict["execution"],
    )
    async def evaluate_script(
        context_id: str,
        request: EvaluateRequest,
        services: ChatBridgeServices = Depends(get_services),
    ):
        """Run a script in a context and return its correlated result."""
        return await services.contexts.evaluate_script(context_id, request.script, request.timeout_ms)

    @app.post(
        "/api/v1/contexts/{context_id}/run-template",
        response_model=ExecutionResult,
        tags=tags_dict["execution"],
    )
    async def run_template(
        context_id: str,
        request: TemplateScriptRequest,
        services: ChatBridgeServices = Depends(get_services),
    ):
        """Compile a registered template and run it in a context."""
        template = services.registry.find_template(request.platform_id, request.name)
        if template is None:
            raise HTTPException(
                status_code=404,
                detail=f"Template not found: {request.platform_id}/{request.name}",
            )

        try:
            script = services.compiler.generate_template_script(template, request.params)
        except TemplateError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return await services.contexts.evaluate_script(context_id, script, request.timeout_ms)

    @app.post(
        "/api/v1/send",
        response_model=AutomationResult,
        tags=tags_dict["execution"],
    )
    async def send_message(request: SendRequest, services: ChatBridgeServices = Depends(get_services)):
        """Send a message to a chat platform and return the extracted answer."""
        return await services.automation.send(
            request.platform_id,
            request.content,
            url=request.url,
            bounds=request.bounds,
            params=request.params,
            show=request.show,
        )

    # ==================== HOST WINDOW ====================

    @app.post(
        "/api/v1/host/signal",
        response_model=dict[str, Any],
        tags=tags_dict["host"],
    )
    async def host_signal(
        request: HostSignalRequest, services: ChatBridgeServices = Depends(get_services)
    ):
        """Deliver a host-window lifecycle signal."""
        coordinator = services.coordinator
        await coordinator.handle_signal(request.signal)
        return {
            "signal": request.signal.value,
            "hostHidden": coordinator.host_hidden,
            "hostMinimized": coordinator.host_minimized,
            "restoreIds": coordinator.restore_ids,
        }

    @app.post(
        "/api/v1/host/toggle",
        response_model=dict[str, Any],
        tags=tags_dict["host"],
    )
    async def host_toggle(services: ChatBridgeServices = Depends(get_services)):
        """Hide the host window when shown, restore it when hidden."""
        coordinator = services.coordinator
        await coordinator.toggle_host()
        return {"hostHidden": coordinator.host_hidden, "restoreIds": coordinator.restore_ids}


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=app.state.config.host, port=app.state.config.port)


if __name__ == "__main__":
    main()
