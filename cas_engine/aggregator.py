"""
Normalization and aggregation of extracted entities.

Links holdings to their accounts, assigns stable holding ids and computes
the statement summary. Everything here is a pure function of its inputs.
"""

import hashlib
from collections import Counter, OrderedDict
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from cas_engine.models import (
    DEFAULT_CATEGORY,
    ZERO,
    DematAccount,
    Holding,
    InvestorInfo,
    MutualFundFolio,
    StatementBody,
    Summary,
)

HOLDING_ID_PREFIX = "hld_"
HOLDING_ID_LENGTH = 16


def holding_id(account_key: str, security_id: str, occurrence: int = 0) -> str:
    """
    Derive a deterministic id for a holding.

    Args:
        account_key: Key of the owning account.
        security_id: ISIN (or name when no ISIN is printed).
        occurrence: 0 for the first holding of this security in the
            account, n for the (n+1)th duplicate.

    Returns:
        Id of the form "hld_<16 hex chars>".
    """
    source = f"{account_key}|{security_id}"
    if occurrence:
        source = f"{source}#{occurrence}"
    digest = hashlib.sha1(source.encode("utf-8")).hexdigest()
    return f"{HOLDING_ID_PREFIX}{digest[:HOLDING_ID_LENGTH]}"


def _link_holdings(
    accounts: Sequence[DematAccount],
    holdings: Sequence[Holding],
    depository: str,
) -> Tuple[List[DematAccount], List[Holding]]:
    """Ensure every holding points at exactly one account and give it an id."""
    unique: Dict[str, DematAccount] = OrderedDict()
    for account in accounts:
        unique.setdefault(account.key, account)
    accounts = list(unique.values())
    if holdings and not accounts:
        accounts = [DematAccount(depository=depository, participant_id="", client_id="")]

    known = {a.key for a in accounts}
    fallback = accounts[0].key if accounts else ""
    seen: Counter = Counter()
    linked: List[Holding] = []

    for holding in holdings:
        key = holding.account_key if holding.account_key in known else fallback
        security = holding.security_id or holding.name
        occurrence = seen[(key, security)]
        seen[(key, security)] += 1
        linked.append(
            replace(holding, account_key=key, id=holding_id(key, security, occurrence))
        )

    ids_by_account: Dict[str, List[str]] = OrderedDict((a.key, []) for a in accounts)
    for holding in linked:
        ids_by_account[holding.account_key].append(holding.id)

    accounts = [replace(a, holding_ids=tuple(ids_by_account[a.key])) for a in accounts]
    return accounts, linked


def summarize(holdings: Iterable[Holding], funds: Iterable[MutualFundFolio]) -> Summary:
    """
    Compute the statement summary.

    Category totals cover demat holdings only; folios are counted in
    mutual_funds_value.
    """
    holdings = list(holdings)
    funds = list(funds)

    categories: Dict[str, Decimal] = OrderedDict()
    holdings_value = ZERO
    for holding in holdings:
        holdings_value += holding.current_value
        category = holding.category or DEFAULT_CATEGORY
        categories[category] = categories.get(category, ZERO) + holding.current_value

    mutual_funds_value = sum((folio.value for folio in funds), ZERO)

    return Summary(
        total_value=holdings_value + mutual_funds_value,
        holdings_value=holdings_value,
        mutual_funds_value=mutual_funds_value,
        holdings_count=len(holdings),
        funds_count=len(funds),
        categories=categories,
    )


def aggregate(
    investor: InvestorInfo,
    accounts: Sequence[DematAccount],
    holdings: Sequence[Holding],
    funds: Sequence[MutualFundFolio],
    depository: str = "",
) -> Tuple[StatementBody, Summary]:
    """
    Normalize extracted entities into a statement body and its summary.

    Holdings that name no known account go to the first account. When the
    statement has holdings but no accounts, a synthetic account for
    `depository` with empty ids is created to own them.

    Args:
        investor: Extracted investor details.
        accounts: Extracted demat accounts.
        holdings: Extracted holdings, tagged with account keys.
        funds: Extracted mutual fund folios.
        depository: Depository name used for a synthetic account.

    Returns:
        Tuple of (StatementBody, Summary).
    """
    linked_accounts, linked_holdings = _link_holdings(accounts, holdings, depository)
    body = StatementBody(
        investor=investor,
        accounts=tuple(linked_accounts),
        holdings=tuple(linked_holdings),
        mutual_funds=tuple(funds),
    )
    return body, summarize(body.holdings, body.mutual_funds)
