from fastapi import APIRouter, Depends, HTTPException
import logging

from app.api.routes.agent import get_agent_service
from app.domain.errors import CycleInProgressError
from app.services.agent_service import AgentService
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/trigger",
    summary="Run one decision cycle now",
)
async def trigger_cycle(service: AgentService = Depends(get_agent_service)):
    logger.info("📥 Admin triggered agent cycle")

    try:
        outcome = await service.trigger()
    except CycleInProgressError as e:
        logger.warning("⚠️ Trigger rejected: %s", str(e))
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "status": "triggered",
        "outcome": outcome.status.value,
        "timestamp": utc_now().isoformat(),
    }
