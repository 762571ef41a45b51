"""
Settlement Netter

Turns net balances into a list of pairwise transfers that settles everyone.

Algorithm (greedy, largest first):
1. Receivers (balance > tolerance) sorted by balance, largest first.
   Payers (balance < -tolerance) sorted by balance, most negative first.
2. Walk both lists with one cursor each. Each step moves
   min(what the payer owes, what the receiver is owed) from payer to
   receiver, then advances whichever side is now settled (or both).
3. Stop when either list runs out. Both must run out together; anything
   left over beyond the caller's allowed residual means the balances did
   not sum to zero.

The plan has at most len(receivers) + len(payers) - 1 transfers.
Ties keep the input order, so identical balances always give an
identical plan.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional

import structlog

from household_ledger.config import get_settings
from household_ledger.errors import InvariantViolation
from household_ledger.models.results import ZERO, NetBalance, Transfer


logger = structlog.get_logger(__name__)


def net(
    balances: Mapping[str, Decimal],
    tolerance: Optional[Decimal] = None,
    allowed_residual: Decimal = ZERO,
) -> list[Transfer]:
    """
    Compute the transfers that settle a set of balances.

    Args:
        balances: Member handle to signed balance
        tolerance: Settled-amount tolerance; defaults to the configured value
        allowed_residual: How much may stay unmatched because the balances
                          are known not to sum exactly to zero

    Returns:
        Transfers in the order they should be presented

    Raises:
        InvariantViolation: If settling leaves a residual balance
    """
    if tolerance is None:
        tolerance = get_settings().ledger.balance_tolerance

    # sorted() is stable, so equal balances keep their input order
    receivers = sorted(
        ([member, amount] for member, amount in balances.items() if amount > tolerance),
        key=lambda entry: -entry[1],
    )
    payers = sorted(
        ([member, amount] for member, amount in balances.items() if amount < -tolerance),
        key=lambda entry: entry[1],
    )

    transfers: list[Transfer] = []
    r = 0
    p = 0

    while r < len(receivers) and p < len(payers):
        receiver = receivers[r]
        payer = payers[p]
        amount = min(-payer[1], receiver[1])

        if amount > tolerance:
            transfers.append(Transfer(
                from_member=payer[0],
                to_member=receiver[0],
                amount=amount,
            ))

        receiver[1] -= amount
        payer[1] += amount

        if receiver[1] <= tolerance:
            r += 1
        if payer[1] >= -tolerance:
            p += 1

    leftover = receivers[r:] + payers[p:]
    if sum((abs(amount) for _, amount in leftover), ZERO) > abs(allowed_residual) + tolerance:
        residual = {member: str(amount) for member, amount in leftover}
        raise InvariantViolation(
            "netting_termination",
            "Settlement left unmatched balances; input balances do not sum to zero",
            details={"residual": residual},
        )

    logger.debug(
        "settlement_netted",
        receiver_count=len(receivers),
        payer_count=len(payers),
        transfer_count=len(transfers),
    )
    return transfers


def apply_transfers(
    balances: Mapping[str, Decimal],
    transfers: Iterable[Transfer],
) -> NetBalance:
    """
    Apply a settlement plan to balances.

    Each transfer raises the sender's balance towards zero and lowers the
    recipient's. Returns a new map; the input is not modified.
    """
    settled: NetBalance = dict(balances)
    for transfer in transfers:
        settled[transfer.from_member] = settled.get(transfer.from_member, ZERO) + transfer.amount
        settled[transfer.to_member] = settled.get(transfer.to_member, ZERO) - transfer.amount
    return settled
