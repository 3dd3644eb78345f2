"""
Engine: жизненный цикл действий, модели проверок и исполнитель шагов.
"""

from cdpsim.engine.action import Action, ActionContext, Proposal, Transition
from cdpsim.engine.cdp_checks import CdpChecks
from cdpsim.engine.config import HarnessConfig, QueueModelConfig
from cdpsim.engine.distribution import Payout, ProportionalDistributionModel, split_payout
from cdpsim.engine.errors import (
    ExecutionRejected,
    HarnessError,
    InvariantViolation,
    NoApplicableParameters,
    SnapshotUnavailable,
)
from cdpsim.engine.harness import StepRunner
from cdpsim.engine.interfaces import (
    Event,
    ExecutionOutcome,
    PayloadSnapshotProvider,
    RandomSource,
    SnapshotProvider,
    SutEndpoint,
    find_event,
)
from cdpsim.engine.queue_model import RankedQueueModel
from cdpsim.engine.rng import PseudoRandomSource
from cdpsim.engine.sampling import choose, rejection_sample, sample_amount, uniform_int
from cdpsim.engine.state_machines import (
    DistributionStatusMachine,
    ProtocolModeMachine,
    TransitionResult,
)
from cdpsim.engine.verdict import (
    ErrorKind,
    InvariantChecker,
    RunReport,
    StepVerdict,
    VerificationResult,
    Violation,
)

__all__ = [
    # Action lifecycle
    "Action",
    "ActionContext",
    "Proposal",
    "Transition",
    # Config
    "HarnessConfig",
    "QueueModelConfig",
    # Errors
    "HarnessError",
    "NoApplicableParameters",
    "ExecutionRejected",
    "InvariantViolation",
    "SnapshotUnavailable",
    # Interfaces
    "SutEndpoint",
    "SnapshotProvider",
    "PayloadSnapshotProvider",
    "RandomSource",
    "ExecutionOutcome",
    "Event",
    "find_event",
    # Randomness
    "PseudoRandomSource",
    "uniform_int",
    "choose",
    "rejection_sample",
    "sample_amount",
    # Models
    "CdpChecks",
    "RankedQueueModel",
    "ProportionalDistributionModel",
    "Payout",
    "split_payout",
    "ProtocolModeMachine",
    "DistributionStatusMachine",
    "TransitionResult",
    # Verdicts
    "InvariantChecker",
    "Violation",
    "VerificationResult",
    "StepVerdict",
    "RunReport",
    "ErrorKind",
    # Runner
    "StepRunner",
]
