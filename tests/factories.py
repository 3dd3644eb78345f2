"""
Builders для unit тестов.

Снапшоты собираются из минимальных дефолтов; тесты меняют только то,
что проверяют. Ranked queues по умолчанию выводятся из позиций CDP.
"""

from typing import Any, Iterable, Mapping, Optional, Sequence

from cdpsim.core.domain import (
    Actor,
    CDPState,
    ContractAddresses,
    LiquidationSnapshot,
    PriceOracleState,
    QueueNode,
    RankedQueue,
    Safe,
    StabilityPoolState,
    StakingState,
    StateSnapshot,
    TokenLedger,
)
from cdpsim.core.domain.units import NULL_ID, PRECISION
from cdpsim.engine import (
    ActionContext,
    Event,
    ExecutionOutcome,
    HarnessConfig,
    PseudoRandomSource,
)

E = 10**18

# =============================================================================
# IDENTITIES
# =============================================================================

CDP_ADDRESS = "0x" + "c" * 40
POOL_ADDRESS = "0x" + "5" * 40
STAKING_ADDRESS = "0x" + "d" * 40
SBD_ADDRESS = "0x" + "b" * 40
DFIRE_ADDRESS = "0x" + "f" * 40
ORACLE_ADDRESS = "0x" + "e" * 40

ADDRESSES = ContractAddresses(
    stable_base_cdp=CDP_ADDRESS,
    stability_pool=POOL_ADDRESS,
    dfire_staking=STAKING_ADDRESS,
    sbd_token=SBD_ADDRESS,
    dfire_token=DFIRE_ADDRESS,
    price_oracle=ORACLE_ADDRESS,
)

ALICE = Actor(label="Borrower", address="0x" + "a1" * 20)
BOB = Actor(label="Liquidator", address="0x" + "b2" * 20)
CAROL = Actor(label="Redeemer", address="0x" + "c3" * 20)
ORACLE_OWNER = Actor(label="PriceOracle", address="0x" + "0e" * 20)

STARTING_NATIVE = 1_000 * E


# =============================================================================
# CDP / QUEUES
# =============================================================================


def make_cdp(safes: Sequence[Safe] = (), owner: str = ALICE.address, **fields: Any) -> CDPState:
    """
    CDPState с позициями safes.

    Итоги — суммы записей, snapshots — текущие глобальные аккумуляторы,
    все позиции принадлежат owner. Любое поле переопределяется через fields.
    """
    debt_accumulator = fields.pop("cumulative_debt_per_unit_collateral", 0)
    collateral_accumulator = fields.pop("cumulative_collateral_per_unit_collateral", 0)
    values: dict[str, Any] = {
        "total_collateral": sum(safe.collateral_amount for safe in safes),
        "total_debt": sum(safe.borrowed_amount for safe in safes),
        "cumulative_debt_per_unit_collateral": debt_accumulator,
        "cumulative_collateral_per_unit_collateral": collateral_accumulator,
        "bootstrap_mode_debt_threshold": 10**30,
        "safes": {safe.safe_id: safe for safe in safes},
        "owners": {safe.safe_id: owner for safe in safes},
        "liquidation_snapshots": {
            safe.safe_id: LiquidationSnapshot(
                debt_per_collateral_snapshot=debt_accumulator,
                collateral_per_collateral_snapshot=collateral_accumulator,
            )
            for safe in safes
        },
    }
    values.update(fields)
    return CDPState(**values)


def queue_of(entries: Sequence[tuple[int, int]]) -> RankedQueue:
    """Ranked queue из (safe_id, value) в порядке head → tail."""
    if not entries:
        return RankedQueue()
    ids = [safe_id for safe_id, _ in entries]
    nodes = {}
    for index, (safe_id, value) in enumerate(entries):
        nodes[safe_id] = QueueNode(
            value=value,
            prev=ids[index - 1] if index > 0 else NULL_ID,
            next=ids[index + 1] if index + 1 < len(ids) else NULL_ID,
        )
    return RankedQueue(head=ids[0], tail=ids[-1], nodes=nodes)


def queues_for(cdp: CDPState) -> tuple[RankedQueue, RankedQueue]:
    """Очереди, согласованные с позициями: только позиции с долгом, по возрастанию ключа."""
    indebted = [safe for safe in cdp.safes.values() if safe.has_debt]
    liquidation = sorted(((safe.safe_id, safe.liquidation_key()) for safe in indebted), key=lambda e: (e[1], e[0]))
    redemption = sorted(((safe.safe_id, safe.weight) for safe in indebted), key=lambda e: (e[1], e[0]))
    return queue_of(liquidation), queue_of(redemption)


# =============================================================================
# POOLS / TOKENS
# =============================================================================


def make_pool(**fields: Any) -> StabilityPoolState:
    values: dict[str, Any] = {"total_staked_raw": 0}
    values.update(fields)
    return StabilityPoolState(**values)


def make_staking(**fields: Any) -> StakingState:
    values: dict[str, Any] = {"total_stake": 0}
    values.update(fields)
    return StakingState(**values)


def make_ledger(
    symbol: str,
    balances: Optional[Mapping[str, int]] = None,
    total_supply: Optional[int] = None,
    total_burned: int = 0,
) -> TokenLedger:
    balances = dict(balances or {})
    if total_supply is None:
        total_supply = sum(balances.values())
    return TokenLedger(symbol=symbol, total_supply=total_supply, total_burned=total_burned, balances=balances)


# =============================================================================
# SNAPSHOTS
# =============================================================================


def make_snapshot(
    cdp: Optional[CDPState] = None,
    *,
    native: Optional[Mapping[str, int]] = None,
    sbd: Optional[Mapping[str, int]] = None,
    dfire: Optional[Mapping[str, int]] = None,
    pool: Optional[StabilityPoolState] = None,
    staking: Optional[StakingState] = None,
    price: int = PRECISION,
    block_number: int = 100,
) -> StateSnapshot:
    """
    Снапшот с дефолтами.

    native по умолчанию: у акторов STARTING_NATIVE, у CDP его total_collateral,
    у pool и staking 0.
    """
    cdp = cdp or make_cdp()
    liquidation_queue, redemption_queue = queues_for(cdp)
    if native is None:
        native = {
            ALICE.address: STARTING_NATIVE,
            BOB.address: STARTING_NATIVE,
            CAROL.address: STARTING_NATIVE,
            ORACLE_OWNER.address: STARTING_NATIVE,
            CDP_ADDRESS: cdp.total_collateral,
        }
    # Балансы контрактов обязательны; явный native их переопределяет
    native = {CDP_ADDRESS: cdp.total_collateral, POOL_ADDRESS: 0, STAKING_ADDRESS: 0, **native}
    return StateSnapshot(
        block_number=block_number,
        timestamp=1_700_000_000 + block_number * 12,
        addresses=ADDRESSES,
        native_balances=dict(native),
        cdp=cdp,
        liquidation_queue=liquidation_queue,
        redemption_queue=redemption_queue,
        stability_pool=pool or make_pool(),
        dfire_staking=staking or make_staking(),
        sbd_token=make_ledger("SBD", sbd),
        dfire_token=make_ledger("DFIRE", dfire),
        price_oracle=PriceOracleState(price=price, owner=ORACLE_OWNER.address),
    )


def evolve(snapshot: StateSnapshot, **changes: Any) -> StateSnapshot:
    """Следующий снапшот: block + 1 и заменённые поля."""
    values: dict[str, Any] = {"block_number": snapshot.block_number + 1, "timestamp": snapshot.timestamp + 12}
    values.update(changes)
    return snapshot.model_copy(update=values)


def with_cdp(snapshot: StateSnapshot, cdp: CDPState, derive_queues: bool = True) -> StateSnapshot:
    """Замена CDP; очереди пересчитываются из позиций."""
    if not derive_queues:
        return snapshot.model_copy(update={"cdp": cdp})
    liquidation_queue, redemption_queue = queues_for(cdp)
    return snapshot.model_copy(
        update={"cdp": cdp, "liquidation_queue": liquidation_queue, "redemption_queue": redemption_queue}
    )


def shift_native(snapshot: StateSnapshot, deltas: Mapping[str, int]) -> StateSnapshot:
    balances = dict(snapshot.native_balances)
    for address, delta in deltas.items():
        balances[address] = balances.get(address, 0) + delta
    return snapshot.model_copy(update={"native_balances": balances})


def shift_token(
    snapshot: StateSnapshot,
    name: str,
    deltas: Mapping[str, int],
    supply: int = 0,
    burned: int = 0,
) -> StateSnapshot:
    """Сдвиг балансов token ledger name ('sbd_token' / 'dfire_token')."""
    ledger = snapshot.token(name)
    balances = dict(ledger.balances)
    for address, delta in deltas.items():
        balances[address] = balances.get(address, 0) + delta
    updated = ledger.model_copy(
        update={
            "balances": balances,
            "total_supply": ledger.total_supply + supply,
            "total_burned": ledger.total_burned + burned,
        }
    )
    return snapshot.model_copy(update={name: updated})


def snapshot_payload(snapshot: StateSnapshot) -> dict[str, Any]:
    """JSON payload, каким его отдаёт snapshot provider."""
    return snapshot.model_dump(mode="json")


# =============================================================================
# OUTCOMES / COLLABORATORS
# =============================================================================


def event(name: str, **args: Any) -> Event:
    return Event(name=name, emitter=CDP_ADDRESS, args=args)


def make_outcome(
    *events: Event,
    gas_used: int = 0,
    gas_price: int = 0,
    base_fee: int = 0,
    success: bool = True,
    revert_reason: Optional[str] = None,
) -> ExecutionOutcome:
    return ExecutionOutcome(
        success=success,
        events=tuple(events),
        block_number=101,
        timestamp=1_700_001_212,
        gas_used=gas_used,
        effective_gas_price=gas_price,
        base_fee_per_gas=base_fee,
        revert_reason=revert_reason,
    )


class ScriptedRandom:
    """RandomSource, выдающий заданные значения по кругу."""

    def __init__(self, values: Iterable[int]):
        self.values = list(values)
        self.draws = 0

    def next(self) -> int:
        value = self.values[self.draws % len(self.values)]
        self.draws += 1
        return value


class StubEndpoint:
    """SutEndpoint, записывающий вызовы и возвращающий заданный outcome."""

    def __init__(self, outcome: Optional[ExecutionOutcome] = None):
        self.outcome = outcome or make_outcome()
        self.calls: list[tuple[str, Actor, list[Any], int]] = []

    def submit(self, operation: str, actor: Actor, args: Sequence[Any], value: int = 0) -> ExecutionOutcome:
        self.calls.append((operation, actor, list(args), value))
        return self.outcome


class ScriptedProvider:
    """SnapshotProvider, отдающий снапшоты по очереди; исключение в очереди выбрасывается."""

    def __init__(self, *items: Any):
        self.items = list(items)
        self.reads = 0

    def take_snapshot(self) -> StateSnapshot:
        item = self.items[self.reads]
        self.reads += 1
        if isinstance(item, Exception):
            raise item
        return item


def make_context(random: Any = None, actors: Sequence[Actor] = (ALICE, BOB, CAROL), **config: Any) -> ActionContext:
    return ActionContext(
        random=random if random is not None else PseudoRandomSource(seed=42),
        config=HarnessConfig(**config),
        actors=actors,
    )
