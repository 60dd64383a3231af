from typing import Optional

from fastapi import APIRouter, Depends

from shiftwatch.adapters.base import BaseDirectoryClient
from shiftwatch.config import get_settings
from shiftwatch.exceptions import DirectoryLookupError
from shiftwatch.routers.utils.dependencies import get_directory_client
from shiftwatch.schemas.system import ConfigStatus

router = APIRouter(
    prefix="/system",
    tags=["system"],
    responses={404: {"description": "Not found"}},
)


@router.get("/config-status", response_model=ConfigStatus)
def get_config_status(
    directory_client: Optional[BaseDirectoryClient] = Depends(get_directory_client),
) -> ConfigStatus:
    """Report which parts of the Slack integration are configured, without secrets."""
    s = get_settings()
    status = ConfigStatus(
        has_token=bool(s.slack_bot_token),
        has_signing_secret=bool(s.slack_signing_secret),
        has_channel_id=bool(s.operations_channel_id),
        channel_id=s.operations_channel_id,
        operating_timezone=s.operating_timezone,
        ticket_reactions=sorted(s.ticket_reaction_names),
    )

    if directory_client is not None:
        try:
            auth = directory_client.auth_test()
            status.directory_connected = True
            status.bot_name = auth.get("user")
            status.team_name = auth.get("team")
        except DirectoryLookupError as e:
            status.directory_connected = False
            status.directory_error = str(e)

    return status
