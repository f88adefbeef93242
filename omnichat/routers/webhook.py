import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from omnichat.channels.meta import parse_meta_webhook
from omnichat.core import config
from omnichat.deps import get_orchestrator
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.webhook_security import SIGNATURE_HEADER, verify_signature, verify_subscription

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)
WEBHOOK_PREFIX = "[META_WEBHOOK]"


@router.get("/meta")
async def verify_meta_webhook(request: Request):
    verify_token = config.META_VERIFY_TOKEN
    if not verify_token:
        logger.error("%s META_VERIFY_TOKEN not configured", WEBHOOK_PREFIX)
        raise HTTPException(status_code=500, detail="Webhook verify token not configured")

    qp = request.query_params
    mode = qp.get("hub.mode")
    token = qp.get("hub.verify_token")
    challenge = qp.get("hub.challenge")

    if verify_subscription(mode, token, verify_token):
        return PlainTextResponse(challenge or "")

    logger.warning("%s verification rejected mode=%s", WEBHOOK_PREFIX, mode)
    raise HTTPException(status_code=403, detail="Invalid verify token")


@router.post("/meta")
async def receive_meta_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    raw_body = await request.body()

    app_secret = config.META_APP_SECRET
    if app_secret:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.error("%s signature missing", WEBHOOK_PREFIX)
            raise HTTPException(status_code=403, detail="Signature missing")
        if not verify_signature(raw_body, signature, app_secret):
            logger.error("%s signature verification failed", WEBHOOK_PREFIX)
            raise HTTPException(status_code=403, detail="Invalid signature")

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        logger.error("%s body is not valid JSON", WEBHOOK_PREFIX)
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    try:
        events = parse_meta_webhook(payload)
        for event in events:
            background_tasks.add_task(orchestrator.process_inbound_event, event)
    except Exception:
        logger.exception("%s unexpected webhook failure", WEBHOOK_PREFIX)
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    logger.info("%s accepted events=%s", WEBHOOK_PREFIX, len(events))
    return {"status": "ok"}
