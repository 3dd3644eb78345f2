"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema валидаторов:
- Валидность самих схем
- Валидация правильных данных
- Детекция нарушений required полей, типов и enum
- Условные правила verdict stream (skipped / failed)
- Интеграция с Pydantic моделями и StepVerdict
"""

from pathlib import Path

import pytest
from jsonschema import ValidationError

from cdpsim.core.contracts import (
    SchemaLoader,
    StateSnapshotValidator,
    StepVerdictValidator,
    validate_state_snapshot,
    validate_step_verdict,
)
from cdpsim.core.domain import Safe
from cdpsim.engine import ErrorKind, StepVerdict, Violation
from tests.factories import ALICE, make_cdp, make_snapshot, snapshot_payload


@pytest.fixture
def valid_snapshot_payload():
    """Валидный payload снапшота с одной позицией в долге."""
    return snapshot_payload(make_snapshot(make_cdp([Safe(safe_id=1, collateral_amount=10, borrowed_amount=2)])))


@pytest.fixture
def valid_verdict():
    """Валидная запись verdict stream."""
    return {
        "action_type": "OpenSafe",
        "actor": {"label": "Borrower", "address": ALICE.address},
        "parameters": {"safe_id": 1, "amount": 10},
        "passed": True,
        "skipped": False,
        "error_kind": None,
        "diagnostics": [],
    }


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class TestSchemaLoader:
    """Тесты загрузчика схем"""

    def test_loads_bundled_schemas(self):
        loader = SchemaLoader()
        for name in ("state_snapshot", "step_verdict"):
            schema = loader.load_schema(name)
            assert schema["$schema"] == "https://json-schema.org/draft/2020-12/schema"

    def test_lists_bundled_schemas(self):
        assert SchemaLoader().available() == ["state_snapshot", "step_verdict"]

    def test_schema_is_cached(self):
        loader = SchemaLoader()
        assert loader.load_schema("step_verdict") is loader.load_schema("step_verdict")

    def test_unknown_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("portfolio_state")

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(RuntimeError):
            SchemaLoader(tmp_path / "absent")

    def test_invalid_schema_file(self, tmp_path: Path):
        (tmp_path / "broken.json").write_text('{"type": 12}', encoding="utf-8")
        with pytest.raises(ValueError):
            SchemaLoader(tmp_path).load_schema("broken")


# =============================================================================
# STATE SNAPSHOT
# =============================================================================


class TestStateSnapshotContract:
    """Контракт payload снапшота"""

    def test_valid_payload(self, valid_snapshot_payload):
        validate_state_snapshot(valid_snapshot_payload)
        assert StateSnapshotValidator().is_valid(valid_snapshot_payload)

    def test_missing_required_section(self, valid_snapshot_payload):
        del valid_snapshot_payload["price_oracle"]
        with pytest.raises(ValidationError, match="price_oracle"):
            validate_state_snapshot(valid_snapshot_payload)

    def test_negative_amount(self, valid_snapshot_payload):
        valid_snapshot_payload["cdp"]["safes"]["1"]["borrowed_amount"] = -5
        with pytest.raises(ValidationError):
            validate_state_snapshot(valid_snapshot_payload)

    def test_string_amount(self, valid_snapshot_payload):
        valid_snapshot_payload["sbd_token"]["total_supply"] = "100"
        with pytest.raises(ValidationError):
            validate_state_snapshot(valid_snapshot_payload)

    def test_unknown_protocol_mode(self, valid_snapshot_payload):
        valid_snapshot_payload["cdp"]["protocol_mode"] = "RECOVERY"
        with pytest.raises(ValidationError):
            validate_state_snapshot(valid_snapshot_payload)

    def test_extra_field_rejected(self, valid_snapshot_payload):
        valid_snapshot_payload["cdp"]["safes"]["1"]["debt"] = 1
        with pytest.raises(ValidationError):
            validate_state_snapshot(valid_snapshot_payload)

    def test_zero_price_rejected(self, valid_snapshot_payload):
        valid_snapshot_payload["price_oracle"]["price"] = 0
        with pytest.raises(ValidationError):
            validate_state_snapshot(valid_snapshot_payload)

    def test_collects_all_errors(self, valid_snapshot_payload):
        valid_snapshot_payload["block_number"] = -1
        valid_snapshot_payload["timestamp"] = -1
        errors = list(StateSnapshotValidator().iter_errors(valid_snapshot_payload))
        assert len(errors) == 2

    def test_describe_names_fields(self, valid_snapshot_payload):
        valid_snapshot_payload["cdp"]["safes"]["1"]["borrowed_amount"] = -5
        valid_snapshot_payload["block_number"] = -1
        described = StateSnapshotValidator().describe(valid_snapshot_payload)

        assert len(described) == 2
        assert described[0].startswith("block_number: ")
        assert described[1].startswith("cdp.safes.1.borrowed_amount: ")


# =============================================================================
# STEP VERDICT
# =============================================================================


class TestStepVerdictContract:
    """Контракт verdict stream"""

    def test_valid_verdict(self, valid_verdict):
        validate_step_verdict(valid_verdict)

    def test_skipped_must_pass(self, valid_verdict):
        valid_verdict.update(skipped=True, passed=False, error_kind="NoApplicableParameters")
        with pytest.raises(ValidationError):
            validate_step_verdict(valid_verdict)

    def test_skipped_must_name_kind(self, valid_verdict):
        valid_verdict.update(skipped=True, error_kind=None)
        with pytest.raises(ValidationError):
            validate_step_verdict(valid_verdict)

    def test_failure_needs_error_kind(self, valid_verdict):
        valid_verdict.update(passed=False)
        with pytest.raises(ValidationError):
            validate_step_verdict(valid_verdict)

    def test_failure_with_diagnostics(self, valid_verdict):
        valid_verdict.update(
            passed=False,
            error_kind="InvariantViolation",
            diagnostics=[{"invariant": "cdp.total_debt", "expected": 10, "observed": 11, "message": ""}],
        )
        assert StepVerdictValidator().is_valid(valid_verdict)

    def test_diagnostic_requires_invariant(self, valid_verdict):
        valid_verdict.update(
            passed=False,
            error_kind="InvariantViolation",
            diagnostics=[{"expected": 10, "observed": 11}],
        )
        with pytest.raises(ValidationError):
            validate_step_verdict(valid_verdict)


class TestStepVerdictSerialization:
    """StepVerdict.to_dict проходит контракт"""

    def test_failed_verdict_with_model_values(self):
        safe = Safe(safe_id=1, collateral_amount=10, borrowed_amount=0)
        verdict = StepVerdict(
            action_type="AddCollateral",
            actor=ALICE,
            parameters={"safe_id": 1, "amount": 10},
            passed=False,
            error_kind=ErrorKind.INVARIANT_VIOLATION,
            diagnostics=(Violation("cdp.safe_record", safe, None),),
        )
        payload = verdict.to_dict()

        assert payload["error_kind"] == "InvariantViolation"
        assert payload["diagnostics"][0]["expected"]["collateral_amount"] == 10
        assert payload["actor"] == {"label": "Borrower", "address": ALICE.address}

    def test_skipped_verdict(self):
        verdict = StepVerdict(
            action_type="Repay",
            actor=ALICE,
            parameters={},
            passed=True,
            skipped=True,
            error_kind=ErrorKind.NO_APPLICABLE_PARAMETERS,
        )
        assert verdict.to_dict()["skipped"] is True

    def test_inconsistent_verdict_rejected(self):
        verdict = StepVerdict(action_type="Repay", actor=ALICE, parameters={}, passed=False)
        with pytest.raises(ValidationError):
            verdict.to_dict()
