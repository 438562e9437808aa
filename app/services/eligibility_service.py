"""
Eligibility Evaluator

Pure functions that turn a mother's visit history into an incentive verdict.
The incentive schedule is fixed and not configurable per clinic.
"""

from typing import Iterable, List, Union
from app.schemas.payment_schemas import EligibilityReason, EligibilityVerdict
from app.schemas.visit_schemas import VisitType


ANC_THRESHOLD = 4

INCENTIVE_AMOUNTS = {
    EligibilityReason.ANC4: 5000,
    EligibilityReason.DELIVERY: 10000,
}


def _as_type_values(visit_types: Iterable[Union[VisitType, str]]) -> List[str]:
    return [
        vt.value if isinstance(vt, VisitType) else str(vt) for vt in visit_types
    ]


def count_anc_visits(visit_types: Iterable[Union[VisitType, str]]) -> int:
    """Number of visits whose type starts with ``ANC``."""
    return sum(1 for value in _as_type_values(visit_types) if value.startswith("ANC"))


def has_delivery(visit_types: Iterable[Union[VisitType, str]]) -> bool:
    return VisitType.DELIVERY.value in _as_type_values(visit_types)


def evaluate_eligibility(
    visit_types: Iterable[Union[VisitType, str]],
) -> EligibilityVerdict:
    """
    Evaluate a full visit history.

    Rules are checked in a fixed order: four or more ANC visits earn ANC4,
    otherwise a DELIVERY visit earns DELIVERY, otherwise there is no verdict.

    Args:
        visit_types: Types of every visit logged for the mother

    Returns:
        EligibilityVerdict: count, delivery flag, reason and amount
    """
    values = _as_type_values(visit_types)
    anc_count = count_anc_visits(values)
    delivered = has_delivery(values)

    reason = None
    if anc_count >= ANC_THRESHOLD:
        reason = EligibilityReason.ANC4
    elif delivered:
        reason = EligibilityReason.DELIVERY

    return EligibilityVerdict(
        anc_visit_count=anc_count,
        has_delivery=delivered,
        reason=reason,
        amount=INCENTIVE_AMOUNTS[reason] if reason else 0,
    )
