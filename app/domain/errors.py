"""
Agent Error Taxonomy

Each collaborator failure maps to exactly one class below. The cycle
orchestrator decides per class whether the cycle aborts or recovers:

- ProvisioningError  -> abort, no audit record
- ReadError          -> balance treated as zero (dust skip), no audit record
- MarketDataError    -> abort at the cycle boundary, no audit record
- DecisionError      -> recovered: HOLD with a diagnostic reason
- ExecutionError     -> recovered: HOLD, original reason kept, no tx hash
"""


class AgentError(Exception):
    """Base class for all agent errors"""


class ProvisioningError(AgentError):
    """Custodial wallet could not be found or created"""


class ReadError(AgentError):
    """On-chain balance could not be read"""


class MarketDataError(AgentError):
    """Yield quote unavailable or malformed"""


class DecisionError(AgentError):
    """AI decision call failed or returned an invalid answer"""


class ExecutionError(AgentError):
    """Transfer was rejected or could not be submitted"""


class CycleInProgressError(AgentError):
    """A decision cycle is already running"""
