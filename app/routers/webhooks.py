"""Inbound webhooks for every platform.

Each endpoint owns one try/except boundary: routing misses and delivery
failures still ack, anything unexpected rolls back and answers 500.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.logging_config import get_logger
from app.services.dispatcher import MessageDispatcher
from app.services.platforms import PlatformAdapter, build_adapters
from app.services.verification import WebhookVerificationError

logger = get_logger("webhooks")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

META_PLATFORMS = ("whatsapp", "messenger", "instagram")

_dispatcher: Optional[MessageDispatcher] = None


def get_dispatcher() -> MessageDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = MessageDispatcher(build_adapters(settings), settings)
    return _dispatcher


def _internal_error() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _query_param(request: Request, name: str) -> Optional[str]:
    # Meta sends hub.mode; some proxies rewrite it to hub_mode
    return request.query_params.get(f"hub.{name}") or request.query_params.get(f"hub_{name}")


async def _read_json(request: Request) -> Optional[Any]:
    try:
        return await request.json()
    except ValueError as e:
        logger.warning(f"Webhook body is not valid JSON: {e}")
        return None


def process_payload(
    db: Session,
    dispatcher: MessageDispatcher,
    adapter: PlatformAdapter,
    payload: Any,
    routing_key: Optional[str] = None,
) -> int:
    """Decode and answer every event in a webhook body. Returns the number handled."""
    handled = 0
    for inbound in adapter.decode_inbound(payload, routing_key=routing_key):
        integration = adapter.resolve_integration(db, inbound.routing_key)
        if integration is None:
            logger.info(
                "No integration for routing key, dropping event",
                extra={"context": {"platform": adapter.platform.value, "message_id": inbound.message_id}},
            )
            continue

        dispatcher.handle(db, integration, inbound)
        db.commit()
        handled += 1
    return handled


@router.get("/{platform}")
def verify_webhook(
    platform: str,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    """Meta subscription handshake: echo hub.challenge when the verify token matches."""
    adapter = dispatcher.adapters.get(platform)
    if platform not in META_PLATFORMS or adapter is None:
        return JSONResponse(status_code=404, content={"error": "Unknown platform"})

    mode = _query_param(request, "mode")
    token = _query_param(request, "verify_token")
    challenge = _query_param(request, "challenge")

    try:
        integration = adapter.find_integration_by_verify_token(db, token)
        expected = integration.verify_token if integration else settings.meta_verify_token
        result = adapter.verify(mode, token, challenge, expected)
    except WebhookVerificationError as e:
        logger.warning(f"{platform} webhook verification failed: {e}")
        return PlainTextResponse("Forbidden", status_code=403)
    except Exception as e:
        logger.error(f"{platform} webhook verification error: {e}", exc_info=True)
        return _internal_error()

    logger.info(f"{platform} webhook verified")
    return PlainTextResponse(result)


@router.post("/telegram")
@router.post("/telegram/{bot_token}")
async def telegram_webhook(
    request: Request,
    bot_token: Optional[str] = None,
    x_telegram_bot_token: Optional[str] = Header(default=None, alias="X-Telegram-Bot-Token"),
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    token = bot_token or x_telegram_bot_token
    if not token:
        return JSONResponse(status_code=400, content={"error": "Bot token not found"})

    try:
        payload = await _read_json(request)
        handled = process_payload(db, dispatcher, dispatcher.adapters["telegram"], payload, routing_key=token)
        logger.debug(f"Telegram webhook handled {handled} events")
        return {"ok": True}
    except Exception as e:
        db.rollback()
        logger.error(f"Telegram webhook error: {e}", exc_info=True)
        return _internal_error()


@router.post("/{platform}")
async def meta_webhook(
    platform: str,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    adapter = dispatcher.adapters.get(platform)
    if platform not in META_PLATFORMS or adapter is None:
        return JSONResponse(status_code=404, content={"error": "Unknown platform"})

    try:
        payload = await _read_json(request)
        handled = process_payload(db, dispatcher, adapter, payload)
        logger.debug(f"{platform} webhook handled {handled} events")
        return {"status": "success"}
    except Exception as e:
        db.rollback()
        logger.error(f"{platform} webhook error: {e}", exc_info=True)
        return _internal_error()
