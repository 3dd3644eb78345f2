"""
Common — Общие помощники propose/verify для действий

- позиции актора и их settlement против текущих аккумуляторов
- выбор frontend получателя комиссий
- ожидаемая запись позиции после settlement
"""

from cdpsim.core.domain.actor import Actor
from cdpsim.core.domain.lookup import Absent
from cdpsim.core.domain.position import Safe
from cdpsim.core.domain.snapshot import StateSnapshot
from cdpsim.core.domain.units import ZERO_ADDRESS
from cdpsim.core.math.accumulators import SafeSettlement, settle_safe
from cdpsim.engine.action import ActionContext
from cdpsim.engine.sampling import choose, coin, uniform_int


def owned_safe_ids(snapshot: StateSnapshot, actor: Actor) -> list[int]:
    """Открытые позиции актора с сохранённым snapshot аккумуляторов."""
    return [
        safe_id
        for safe_id in snapshot.cdp.safes_owned_by(actor.address)
        if safe_id in snapshot.cdp.liquidation_snapshots
    ]


def settled_view(snapshot: StateSnapshot, safe_id: int) -> tuple[Safe, SafeSettlement]:
    """Позиция и её settlement против глобальных аккумуляторов снапшота."""
    safe = snapshot.cdp.safes[safe_id]
    return safe, settle_safe(safe, snapshot.cdp.liquidation_snapshots[safe_id], snapshot.cdp)


def settled_positions(snapshot: StateSnapshot, actor: Actor) -> list[tuple[Safe, SafeSettlement]]:
    return [settled_view(snapshot, safe_id) for safe_id in owned_safe_ids(snapshot, actor)]


def settled_safe(safe: Safe, settlement: SafeSettlement, **changes: int) -> Safe:
    """Ожидаемая запись: settled залог/долг плюс изменения действия."""
    fields = {
        "collateral_amount": settlement.settled_collateral,
        "borrowed_amount": settlement.settled_debt,
    }
    fields.update(changes)
    return safe.model_copy(update=fields)


def choose_frontend(context: ActionContext, actor: Actor) -> tuple[str, int]:
    """
    Frontend получатель и ставка комиссии (bps).

    Либо без frontend (нулевой адрес, ставка 0), либо другой известный
    актор со случайной ставкой.
    """
    others = [candidate for candidate in context.actors if candidate.address != actor.address]
    if not others or coin(context.random):
        return ZERO_ADDRESS, 0
    frontend = choose(context.random, others)
    if isinstance(frontend, Absent):
        return ZERO_ADDRESS, 0
    fee_bps = uniform_int(context.random, 0, context.config.max_frontend_fee_bps)
    return frontend.record.address, fee_bps


def spendable_native(context: ActionContext, snapshot: StateSnapshot, actor: Actor) -> int:
    """Native баланс актора за вычетом резерва на газ."""
    return max(0, snapshot.native_balance(actor.address) - context.config.gas_reserve)
