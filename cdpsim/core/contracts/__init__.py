"""
JSON Schema контракты harness.

Схемы в contracts/schema/:
- state_snapshot.json
- step_verdict.json
"""

from .validators import (
    STATE_SNAPSHOT,
    STEP_VERDICT,
    ContractValidator,
    SchemaLoader,
    StateSnapshotValidator,
    StepVerdictValidator,
    error_path,
    validate_state_snapshot,
    validate_step_verdict,
)

__all__ = [
    # Schemas
    "STATE_SNAPSHOT",
    "STEP_VERDICT",
    "SchemaLoader",
    # Validators
    "ContractValidator",
    "StateSnapshotValidator",
    "StepVerdictValidator",
    "error_path",
    "validate_state_snapshot",
    "validate_step_verdict",
]
