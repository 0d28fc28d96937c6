import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.dependencies import get_countdowns, get_user_id
from storage.countdown_repository import CountdownRepository
from taskwise.models import Countdown, CountdownDraft

router = APIRouter(prefix="/countdowns")
logger = logging.getLogger(__name__)


def _serialize(countdown: Countdown, today) -> dict:
    body = countdown.model_dump(mode="json")
    body["days_remaining"] = countdown.days_remaining(today)
    return body


@router.get("")
async def list_countdowns(
    user_id: str = Depends(get_user_id),
    countdowns: CountdownRepository = Depends(get_countdowns),
) -> dict:
    today = datetime.now(timezone.utc).date()
    return {"countdowns": [_serialize(c, today) for c in await countdowns.list(user_id)]}


@router.post("", status_code=201)
async def add_countdown(
    payload: CountdownDraft,
    user_id: str = Depends(get_user_id),
    countdowns: CountdownRepository = Depends(get_countdowns),
) -> dict:
    countdown = await countdowns.add(user_id, payload)
    return _serialize(countdown, datetime.now(timezone.utc).date())


@router.delete("/{countdown_id}")
async def delete_countdown(
    countdown_id: str,
    user_id: str = Depends(get_user_id),
    countdowns: CountdownRepository = Depends(get_countdowns),
) -> dict:
    await countdowns.delete(user_id, countdown_id)
    return {"status": "deleted"}
