"""
Webhook routes for inbound Slack Events API deliveries.

Slack POSTs events here and expects a 200 within 3 seconds. The request is
verified inline; recording the event (which may call the Slack API) runs as a
background task after the response. Only a failed signature check produces a 401.
"""

from __future__ import annotations

from typing import Callable, ContextManager, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.commands.webhooks.slack_events_command import (
    SlackEventsCommand,
    process_slack_event,
)
from shiftwatch.routers.utils.dependencies import get_directory_client, get_session_scope

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    directory_client: Optional[BaseDirectoryClient] = Depends(get_directory_client),
    session_scope: Callable[[], ContextManager[Session]] = Depends(get_session_scope),
) -> Response:
    """
    Receive Slack Events API deliveries for the operations channel.
    Echo the url_verification challenge; otherwise acknowledge with an empty 200.
    """
    raw_body = await request.body()
    headers = dict(request.headers) if request.headers else {}
    command = SlackEventsCommand(None, directory_client=directory_client)
    ack = command.acknowledge(headers, raw_body)
    if ack.event is not None:
        background_tasks.add_task(
            process_slack_event, session_scope, directory_client, ack.event, ack.event_id
        )
    if ack.response is not None:
        return JSONResponse(ack.response)
    return Response(status_code=200)
