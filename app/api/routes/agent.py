"""
Agent API Routes
Status and conversational explanation of past decisions
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from app.services.agent_service import AgentService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_agent_service(request: Request) -> AgentService:
    service = getattr(request.app.state, "agent_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Agent service not initialized")
    return service


# Response models
class CycleRecordResponse(BaseModel):
    timestamp: str
    action: str
    amount: str
    reason: str
    sentimentScore: float
    apySnapshot: float
    txHash: Optional[str]


class AgentStatusResponse(BaseModel):
    walletAddress: str
    currentBalance: str
    cycleInProgress: bool
    lastActivity: List[CycleRecordResponse]


class ChatRequest(BaseModel):
    message: str = Field("", description="Question about the agent's recent decisions")


class ChatResponse(BaseModel):
    reply: str


@router.get("/status", response_model=AgentStatusResponse, summary="Agent wallet, balance and recent activity")
async def agent_status(service: AgentService = Depends(get_agent_service)):
    return await service.status()


@router.post("/chat", response_model=ChatResponse, summary="Ask the agent to explain its decisions")
async def agent_chat(
    payload: Optional[ChatRequest] = None,
    service: AgentService = Depends(get_agent_service),
):
    if payload is None or not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    answer = await service.chat(payload.message)
    return {"reply": answer}
