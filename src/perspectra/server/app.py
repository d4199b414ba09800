"""FastAPI application.

Routes:
    POST /llm/perspective-convert  stream a perspective conversion as SSE
    POST /llm/chat                 single-turn, non-streaming completion
    GET  /health                   liveness and role configuration status

The app is built by ``create_app`` from explicit collaborators; run it with
``uvicorn --factory perspectra.server.app:create_app`` or ``perspectra serve``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..errors import InvalidRequestError, RoleSide
from ..llm.base import CompletionSource
from ..llm.factory import create_completion_source
from ..llm.models import ChatMessage
from ..roles.loader import load_roles_config
from ..roles.registry import RoleRegistry
from ..session import ConversionRequest, ConversionSession
from .responses import ConversionStreamResponse
from .schemas import (
    ChatBody,
    ChatReply,
    PerspectiveConvertBody,
    error_body,
    role_choice_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/llm")


@router.post("/perspective-convert")
async def perspective_convert(body: PerspectiveConvertBody, request: Request):
    registry: RoleRegistry = request.app.state.registry
    source: CompletionSource = request.app.state.completion_source

    # Without a role mapping ids cannot be checked here; the session reports it
    if registry.available:
        problems = []
        if body.source_role not in registry:
            problems.append(role_choice_message(RoleSide.SOURCE, registry.role_ids))
        if body.target_role not in registry:
            problems.append(role_choice_message(RoleSide.TARGET, registry.role_ids))
        if problems:
            raise InvalidRequestError("; ".join(problems), allowed=registry.role_ids)

    session = ConversionSession(
        ConversionRequest(
            source_role_id=body.source_role,
            target_role_id=body.target_role,
            content=body.content,
        ),
        registry,
        source,
    )
    bridge = session.start()
    return ConversionStreamResponse(session, bridge)


@router.post("/chat", response_model=ChatReply)
async def chat(body: ChatBody, request: Request):
    source: CompletionSource = request.app.state.completion_source
    try:
        response = await source.chat_completion([ChatMessage(role="user", content=body.message)])
    except Exception as e:
        logger.exception("Chat completion failed: %s", e)
        return JSONResponse(status_code=502, content=error_body(502, str(e), "Bad Gateway"))
    return ChatReply(response=response.content)


async def _invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_body(400, str(exc), "Bad Request"))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    registry: RoleRegistry = request.app.state.registry
    messages = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = loc[0] if loc else "body"
        if field == "sourceRole" and registry.available:
            messages.append(role_choice_message(RoleSide.SOURCE, registry.role_ids))
        elif field == "targetRole" and registry.available:
            messages.append(role_choice_message(RoleSide.TARGET, registry.role_ids))
        messages.append(f"{field}: {error.get('msg', 'invalid')}")
    return JSONResponse(status_code=400, content=error_body(400, "; ".join(messages), "Bad Request"))


def create_app(
    settings: Settings | None = None,
    registry: RoleRegistry | None = None,
    completion_source: CompletionSource | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Configuration; loaded from the environment when None
        registry: Role registry; built from ``settings.roles_config_file``
            (or the bundled roles) when None
        completion_source: Backend; built from settings when None

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    if registry is None:
        registry = RoleRegistry(load_roles_config(settings.roles_config_file))
    if completion_source is None:
        completion_source = create_completion_source(
            settings.llm_provider, **settings.completion_config()
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if registry.available:
            logger.info("Serving roles: %s", ", ".join(registry.role_ids))
        else:
            logger.warning("No role configuration loaded; conversions will fail")
        yield
        await completion_source.close()

    app = FastAPI(title="Perspectra", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.completion_source = completion_source

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(InvalidRequestError, _invalid_request_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "roles_loaded": registry.available}

    return app
