"""
Alert Endpoints.

External monitors (SMS gateways, cron checks) post alert texts here; they are
forwarded to the configured Telegram chat.
"""

from typing import Dict

from fastapi import APIRouter

from sitedeploy.build.notifications import send_alert
from sitedeploy.server.schemas import AlertCreate
from sitedeploy.server.services.deps import TelegramNotifierDep

router = APIRouter()


@router.post(
    "/receive-sms",
    summary="Forward Alert",
    description="Send an alert text to the Telegram chat. Comma-separated values are sent one per line.",
    responses={500: {"description": "Telegram is not configured or rejected the message"}},
)
async def receive_sms(alert_in: AlertCreate, telegram: TelegramNotifierDep) -> Dict[str, str]:
    await send_alert(telegram, alert_in.sms_message)
    return {"status": "success"}
