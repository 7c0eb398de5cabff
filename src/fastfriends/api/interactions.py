"""Slack interactivity endpoint: POST /api/slack/interactions.

Slack expects an acknowledgement within three seconds, so the callback is
parsed and verified inline, and scoring runs as a background task after the
empty 200 goes out.
"""

from __future__ import annotations

import json
import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response

from fastfriends.api.deps import EngineDep, FollowUpsDep, SettingsDep
from fastfriends.core.responses import ingest_interaction
from fastfriends.models.slack import InteractionCallback
from fastfriends.slack.signature import verify_slack_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/slack", tags=["slack"])


def parse_interaction_payload(body: bytes) -> dict:
    """Decode the form-encoded ``payload`` field into a dict.

    Raises:
        HTTPException: 400 when the field is missing or not JSON.
    """
    fields = parse_qs(body.decode("utf-8", errors="replace"))
    raw = fields.get("payload", [""])[0]
    if not raw:
        raise HTTPException(status_code=400, detail="Missing payload")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Malformed payload") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Malformed payload")
    return payload


@router.post("/interactions")
async def slack_interactions(
    request: Request,
    background_tasks: BackgroundTasks,
    engine: EngineDep,
    settings: SettingsDep,
    follow_ups: FollowUpsDep,
) -> Response:
    body = await request.body()
    if settings.slack_signing_secret and not verify_slack_signature(
        settings.slack_signing_secret,
        request.headers.get("x-slack-request-timestamp"),
        body,
        request.headers.get("x-slack-signature"),
    ):
        logger.warning("slack_signature_rejected")
        raise HTTPException(status_code=401, detail="Invalid signature")

    callback = InteractionCallback.from_payload(parse_interaction_payload(body))
    background_tasks.add_task(ingest_interaction, engine, callback, follow_ups)
    return Response(status_code=200)
