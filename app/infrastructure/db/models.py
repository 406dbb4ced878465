"""
Database Models (SQLAlchemy ORM)
Insert-only audit tables - NO DELETES
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Float, Text, Enum as SQLEnum
)
import enum

from app.infrastructure.db.database import Base
from app.utils.time import utc_now_naive


# Enums
class AgentActionEnum(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


# Tables

class AgentWalletModel(Base):
    """Custodial agent wallet (singleton row)"""
    __tablename__ = "agent_wallet"

    id = Column(Integer, primary_key=True, autoincrement=True)
    circle_wallet_id = Column(String(64), nullable=False, unique=True)
    address = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utc_now_naive)


class AgentLogModel(Base):
    """Decision cycle outcome - AUDIT RECORD"""
    __tablename__ = "agent_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, default=utc_now_naive, index=True)
    action = Column(SQLEnum(AgentActionEnum), nullable=False)
    amount = Column(String(78), nullable=False)
    reason = Column(Text, nullable=False)
    sentiment_score = Column(Float, nullable=False)
    market_apy_snapshot = Column(Float, nullable=False)
    tx_hash = Column(String(128), nullable=True)
