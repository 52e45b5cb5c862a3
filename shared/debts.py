import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

TOLERANCE = 0.01


@dataclass
class Debt:
    from_user: str
    to_user: str
    amount: float

    def to_dict(self) -> dict:
        return {
            'from_user': self.from_user,
            'to_user': self.to_user,
            'amount': self.amount,
        }


def _cents(amount: float) -> float:
    """Round to cents, halves up."""
    return math.floor(amount * 100 + 0.5) / 100


def compute_balances(
    members: Iterable[str],
    expenses: Iterable[Tuple[str, float, Iterable[Tuple[str, float]]]],
    settlements: Iterable[Tuple[str, str, float]] = ()
) -> Dict[str, float]:
    """
    Net balance per member. Positive means the group owes them money.

    Args:
        members: member user ids
        expenses: (paid_by, amount, [(user_id, share), ...]) per expense
        settlements: (from_user, to_user, amount) per recorded payment
    """
    balances = {m: 0.0 for m in members}

    for paid_by, amount, splits in expenses:
        balances[paid_by] = balances.get(paid_by, 0.0) + amount
        for user_id, share in splits:
            balances[user_id] = balances.get(user_id, 0.0) - share

    # from_user paid to_user back
    for from_user, to_user, amount in settlements:
        balances[from_user] = balances.get(from_user, 0.0) + amount
        balances[to_user] = balances.get(to_user, 0.0) - amount

    return balances


def simplify_debts(balances: Dict[str, float]) -> List[Debt]:
    """
    Greedy settle-up: repeatedly match the largest debtor with the largest
    creditor. Produces at most n - 1 payments for n non-zero balances.
    """
    creditors = [[user_id, b] for user_id, b in balances.items() if b > TOLERANCE]
    debtors = [[user_id, -b] for user_id, b in balances.items() if b < -TOLERANCE]

    creditors.sort(key=lambda c: c[1], reverse=True)
    debtors.sort(key=lambda d: d[1], reverse=True)

    debts = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]
        amount = min(debtor[1], creditor[1])

        if amount > TOLERANCE:
            debts.append(Debt(from_user=debtor[0], to_user=creditor[0], amount=_cents(amount)))

        debtor[1] -= amount
        creditor[1] -= amount

        if debtor[1] < TOLERANCE:
            i += 1
        if creditor[1] < TOLERANCE:
            j += 1

    return debts
