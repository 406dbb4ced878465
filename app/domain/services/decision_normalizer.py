"""
Decision normalization.

Whatever the decision engine hands back, the orchestrator only ever sees
a Decision whose action is BUY or HOLD.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from app.domain.errors import DecisionError
from app.domain.models import Decision, DecisionAction

logger = logging.getLogger(__name__)

INVALID_RESPONSE_REASON = "Invalid AI response"


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def normalize_decision(raw: Any) -> Decision:
    """Coerce an engine answer into a valid Decision (invalid -> HOLD)."""
    action = _field(raw, "action")
    reason = _field(raw, "reason")

    if isinstance(action, DecisionAction):
        action = action.value

    if action not in (DecisionAction.BUY.value, DecisionAction.HOLD.value):
        logger.warning("Decision engine returned invalid action %r; defaulting to HOLD", action)
        return Decision(action=DecisionAction.HOLD, reason=f"{INVALID_RESPONSE_REASON}: action={action!r}")

    if not isinstance(reason, str) or not reason.strip():
        logger.warning("Decision engine returned no reason; defaulting to HOLD")
        return Decision(action=DecisionAction.HOLD, reason=f"{INVALID_RESPONSE_REASON}: missing reason")

    return Decision(action=DecisionAction(action), reason=reason)


def decision_from_error(exc: BaseException) -> Decision:
    """HOLD decision carrying a diagnostic for a failed engine call."""
    if isinstance(exc, DecisionError):
        reason = str(exc) or "AI Error"
    else:
        reason = f"AI Error: {type(exc).__name__}: {exc}"
    return Decision(action=DecisionAction.HOLD, reason=reason)
