"""Reconciliation of stored account usage against the transaction ledger"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from credit_usage.domain.models import CreditAccount, Transaction
from credit_usage.domain.usage import ZERO, derive_usage_by_account
from credit_usage.utils.amounts import to_decimal


@dataclass(frozen=True)
class AccountDiscrepancy:
    """Stored running figure disagrees with the ledger-derived one"""

    account_id: str
    account_name: str
    stored_used: Decimal
    derived_used: Decimal
    discrepancy: Decimal  # stored - derived


def find_discrepancies(
    accounts: Iterable[CreditAccount],
    transactions: Iterable[Transaction],
    tolerance: Decimal = ZERO,
) -> List[AccountDiscrepancy]:
    """
    Compare each account's stored used amount with the amount derived from its ledger.

    Rules:
    - derived used = withdrawals - payments for the account (0 without history)
    - a missing stored figure is compared as 0
    - reported when abs(stored - derived) > tolerance
    - read-only: nothing is corrected here
    """
    used_by_account = derive_usage_by_account(transactions)

    discrepancies: List[AccountDiscrepancy] = []
    for account in accounts:
        stored = to_decimal(account.stored_used)
        if stored is None:
            stored = ZERO
        derived = used_by_account.get(account.id, ZERO)
        difference = stored - derived

        if abs(difference) > tolerance:
            discrepancies.append(
                AccountDiscrepancy(
                    account_id=account.id,
                    account_name=account.name,
                    stored_used=stored,
                    derived_used=derived,
                    discrepancy=difference,
                )
            )

    return discrepancies
