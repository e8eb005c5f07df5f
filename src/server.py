"""
Twilio WhatsApp webhook.

Twilio posts each inbound WhatsApp message as form fields (`From`,
`Body`). The message is filtered, handed to the session engine and
acknowledged with an empty TwiML document; the reply itself goes out
through the REST transport. The engine is created when the app starts
and drained and released when it stops.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response

from src.config import settings
from src.conversation.engine import EngineClosedError, SessionEngine
from src.schemas.event_schema import InboundMessage
from src.tools.event_sink import build_event_sink
from src.tools.session_store import JsonFileSessionStore
from src.tools.transport import TwilioWhatsAppTransport, dispatch_inbound

logger = logging.getLogger(__name__)

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def build_engine() -> SessionEngine:
    """Wire the production adapters from settings."""
    responder = settings.responder
    store = JsonFileSessionStore(responder.session_store_path)
    transport = TwilioWhatsAppTransport(
        account_sid=settings.twilio.account_sid,
        auth_token=settings.twilio.auth_token,
        from_number=settings.twilio.whatsapp_from,
    )
    sink = build_event_sink(responder.event_sink, responder.event_log_path)
    return SessionEngine(store, transport, sink)


def create_app(engine_factory: Callable[[], SessionEngine] = build_engine) -> FastAPI:
    """Build the webhook app around an engine created at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = engine_factory()
        app.state.engine = engine
        logger.info("WhatsApp bot '%s' is ready", settings.agent_name)
        try:
            yield
        finally:
            logger.info("Shutting down bot...")
            await engine.aclose()

    app = FastAPI(title=settings.agent_name, lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request) -> dict:
        engine: SessionEngine = request.app.state.engine
        return {
            "status": "ok" if engine.accepting else "draining",
            "in_flight": engine.in_flight,
        }

    @app.post("/whatsapp")
    async def whatsapp_webhook(request: Request) -> Response:
        engine: SessionEngine = request.app.state.engine
        form = await request.form()
        sender = str(form.get("From", "")).strip()
        if not sender:
            raise HTTPException(status_code=400, detail="Missing 'From' field")

        message = InboundMessage(sender=sender, text=str(form.get("Body", "")))
        try:
            await dispatch_inbound(message, engine.handle)
        except EngineClosedError:
            raise HTTPException(status_code=503, detail="Shutting down") from None

        return Response(content=EMPTY_TWIML, media_type="application/xml")

    return app
