from datetime import datetime
from decimal import Decimal

import pytest

from app.domain.errors import DecisionError, ExecutionError, MarketDataError, ReadError
from app.domain.models import CycleAction, CycleStatus, Decision, DecisionAction

AGENT_ADDRESS = "0x" + "ab" * 20
USDC_ADDRESS = "0x" + "11" * 20
USYC_ADDRESS = "0x" + "22" * 20


FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5)


@pytest.mark.asyncio
async def test_profitable_buy_executes_transfer_and_logs(fakes):
    # 1000 @ 7% -> ~0.19/day > 0.05 gas
    fakes.balance.balance = Decimal("1000")

    outcome = await fakes.orchestrator(clock=lambda: FIXED_NOW).run_once()

    assert outcome.status == CycleStatus.COMPLETED
    assert fakes.executor.calls == [(USYC_ADDRESS, "1000", USDC_ADDRESS)]
    assert len(fakes.audit.records) == 1
    record = fakes.audit.records[0]
    assert record.action == CycleAction.BUY
    assert record.amount == "1000"
    assert record.tx_hash == "tx-123"
    assert record.sentiment_score == 0.8
    assert record.apy_snapshot == 7.0
    assert record.timestamp == FIXED_NOW
    assert outcome.record == record
    assert outcome.wallet_address == AGENT_ADDRESS


@pytest.mark.asyncio
async def test_buy_vetoed_when_not_profitable(fakes):
    # 100 @ 7% -> ~0.019/day < 0.05 gas
    fakes.balance.balance = Decimal("100")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.COMPLETED
    assert fakes.executor.calls == []
    record = fakes.audit.records[0]
    assert record.action == CycleAction.HOLD
    assert record.reason == "Yield beats gas"
    assert record.tx_hash is None


@pytest.mark.asyncio
async def test_dust_balance_skips_without_record(fakes):
    fakes.balance.balance = Decimal("0.5")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.SKIPPED_DUST
    assert fakes.market.calls == 0
    assert fakes.engine.calls == []
    assert fakes.executor.calls == []
    assert fakes.audit.records == []


@pytest.mark.asyncio
async def test_balance_equal_to_threshold_is_not_dust(fakes):
    fakes.balance.balance = Decimal("1.0")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.COMPLETED
    assert fakes.audit.records[0].amount == "1"


@pytest.mark.asyncio
async def test_decision_engine_failure_records_hold(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.engine.error = DecisionError("Missing API Key")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.COMPLETED
    assert fakes.executor.calls == []
    record = fakes.audit.records[0]
    assert record.action == CycleAction.HOLD
    assert record.reason == "Missing API Key"


@pytest.mark.asyncio
async def test_unexpected_engine_exception_records_hold(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.engine.error = RuntimeError("socket closed")

    await fakes.orchestrator().run_once()

    record = fakes.audit.records[0]
    assert record.action == CycleAction.HOLD
    assert "socket closed" in record.reason


@pytest.mark.asyncio
async def test_transfer_failure_records_hold_with_original_reason(fakes):
    fakes.balance.balance = Decimal("10000")
    fakes.engine.decision = Decision(action=DecisionAction.BUY, reason="Original AI text")
    fakes.executor.error = ExecutionError("Circle API 500")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.COMPLETED
    assert len(fakes.executor.calls) == 1
    record = fakes.audit.records[0]
    assert record.action == CycleAction.HOLD
    assert record.tx_hash is None
    assert record.reason == "Original AI text"


@pytest.mark.asyncio
async def test_empty_transaction_id_records_hold(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.executor.tx_id = ""

    await fakes.orchestrator().run_once()

    assert fakes.audit.records[0].action == CycleAction.HOLD


@pytest.mark.asyncio
async def test_missing_destination_records_hold_without_transfer(fakes):
    fakes.balance.balance = Decimal("1000")

    await fakes.orchestrator(destination_address=None).run_once()

    assert fakes.executor.calls == []
    assert fakes.audit.records[0].action == CycleAction.HOLD


@pytest.mark.asyncio
async def test_hold_decision_never_transfers(fakes):
    fakes.balance.balance = Decimal("1000000")
    fakes.engine.decision = Decision(action=DecisionAction.HOLD, reason="Too risky")

    await fakes.orchestrator().run_once()

    assert fakes.executor.calls == []
    assert fakes.audit.records[0].reason == "Too risky"


@pytest.mark.asyncio
async def test_invalid_engine_answer_is_normalized_to_hold(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.engine.decision = {"action": "SELL", "reason": "dump it"}

    await fakes.orchestrator().run_once()

    assert fakes.executor.calls == []
    record = fakes.audit.records[0]
    assert record.action == CycleAction.HOLD
    assert record.reason.startswith("Invalid AI response")


@pytest.mark.asyncio
async def test_balance_read_failure_is_treated_as_zero(fakes):
    fakes.balance.error = ReadError("rpc down")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.SKIPPED_DUST
    assert fakes.audit.records == []


@pytest.mark.asyncio
async def test_provisioning_failure_aborts_cycle(fakes, failing_provisioner):
    fakes.provisioner = failing_provisioner

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.ABORTED
    assert fakes.balance.calls == []
    assert fakes.audit.records == []


@pytest.mark.asyncio
async def test_market_data_failure_fails_cycle_without_record(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.market.error = MarketDataError("feed down")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.FAILED
    assert "feed down" in outcome.detail
    assert fakes.engine.calls == []
    assert fakes.audit.records == []


@pytest.mark.asyncio
async def test_audit_failure_does_not_escape_run_once(fakes):
    fakes.balance.balance = Decimal("1000")
    fakes.audit.error = RuntimeError("db locked")

    outcome = await fakes.orchestrator().run_once()

    assert outcome.status == CycleStatus.FAILED


@pytest.mark.asyncio
async def test_engine_receives_apy_and_gas(fakes):
    fakes.balance.balance = Decimal("1000")

    await fakes.orchestrator(gas_cost=Decimal("0.10")).run_once()

    assert fakes.engine.calls == [(7.0, 0.1)]


def test_format_amount(fakes):
    orchestrator = fakes.orchestrator()
    assert orchestrator.format_amount(Decimal("100")) == "100"
    assert orchestrator.format_amount(Decimal("100.500000")) == "100.5"
    assert orchestrator.format_amount(Decimal("0.1234567")) == "0.123456"
    assert orchestrator.format_amount(Decimal("0")) == "0"
    assert orchestrator.format_amount(Decimal("1E+3")) == "1000"
