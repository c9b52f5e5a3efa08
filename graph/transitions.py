"""
Transition function for the interview graph.

`determine_next_node` is pure: the next node depends only on the node just
answered and the derived flags known after merging that answer.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from core.models import ConversationNode, DerivedFlags

from .schema import EdgeDef

N = ConversationNode

TransitionRule = Callable[[DerivedFlags], ConversationNode]


def _always(target: ConversationNode) -> TransitionRule:
    return lambda flags: target


def _initial_interest(flags: DerivedFlags) -> ConversationNode:
    if flags.interested_in_selling is True:
        return N.PRICE_RANGE
    if flags.interested_in_selling is False:
        return N.OTHER_PROPERTY
    return N.INITIAL_INTEREST


def _other_property(flags: DerivedFlags) -> ConversationNode:
    if flags.has_other_property is True:
        return N.PRICE_RANGE
    return N.CLOSING


def _occupancy(flags: DerivedFlags) -> ConversationNode:
    if flags.is_tenant_occupied is True:
        return N.LEASE_TYPE
    return N.SELLING_REASON


def _lease_type(flags: DerivedFlags) -> ConversationNode:
    if flags.is_annual_lease is True:
        return N.LEASE_EXPIRY
    return N.SELLING_REASON


TRANSITIONS: Dict[ConversationNode, TransitionRule] = {
    N.INITIAL_INTEREST: _initial_interest,
    N.OTHER_PROPERTY: _other_property,
    N.PRICE_RANGE: _always(N.BEDROOMS_BATHROOMS),
    N.BEDROOMS_BATHROOMS: _always(N.KITCHEN_UPDATES),
    N.KITCHEN_UPDATES: _always(N.PROPERTY_CONDITION),
    N.PROPERTY_CONDITION: _always(N.OCCUPANCY),
    N.OCCUPANCY: _occupancy,
    N.LEASE_TYPE: _lease_type,
    N.LEASE_EXPIRY: _always(N.SELLING_REASON),
    N.SELLING_REASON: _always(N.COLLECT_EMAIL),
    N.COLLECT_EMAIL: _always(N.CLOSING),
    N.CLOSING: _always(N.END),
    N.END: _always(N.END),
}

_missing = [n.value for n in ConversationNode if n not in TRANSITIONS]
if _missing:
    raise RuntimeError(f"Transition rules missing for nodes: {_missing}")


# Every edge the transition table can take. The re-ask loop on
# initial_interest is a self edge and stays out of the graph.
INTERVIEW_EDGES: List[EdgeDef] = [
    EdgeDef(N.INITIAL_INTEREST, N.PRICE_RANGE, "interested"),
    EdgeDef(N.INITIAL_INTEREST, N.OTHER_PROPERTY, "not interested"),
    EdgeDef(N.OTHER_PROPERTY, N.PRICE_RANGE, "has other property"),
    EdgeDef(N.OTHER_PROPERTY, N.CLOSING, "no other property"),
    EdgeDef(N.PRICE_RANGE, N.BEDROOMS_BATHROOMS),
    EdgeDef(N.BEDROOMS_BATHROOMS, N.KITCHEN_UPDATES),
    EdgeDef(N.KITCHEN_UPDATES, N.PROPERTY_CONDITION),
    EdgeDef(N.PROPERTY_CONDITION, N.OCCUPANCY),
    EdgeDef(N.OCCUPANCY, N.LEASE_TYPE, "tenant"),
    EdgeDef(N.OCCUPANCY, N.SELLING_REASON, "owner / vacant"),
    EdgeDef(N.LEASE_TYPE, N.LEASE_EXPIRY, "annual"),
    EdgeDef(N.LEASE_TYPE, N.SELLING_REASON, "monthly"),
    EdgeDef(N.LEASE_EXPIRY, N.SELLING_REASON),
    EdgeDef(N.SELLING_REASON, N.COLLECT_EMAIL),
    EdgeDef(N.COLLECT_EMAIL, N.CLOSING),
    EdgeDef(N.CLOSING, N.END),
]


def determine_next_node(node: ConversationNode, flags: DerivedFlags) -> ConversationNode:
    """Return the node that follows `node` given the currently known flags"""
    return TRANSITIONS[ConversationNode(node)](flags)


# ============================================================================
# Derived flag mapping
# ============================================================================

def _yes_no(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "yes":
            return True
        if lowered == "no":
            return False
    return None


def derive_flag_updates(node: ConversationNode, value: Any) -> Dict[str, Any]:
    """Map an extracted value onto the derived flag owned by `node`"""
    if node == N.INITIAL_INTEREST:
        return {'interested_in_selling': _yes_no(value)}
    if node == N.OTHER_PROPERTY:
        return {'has_other_property': _yes_no(value)}
    if node == N.OCCUPANCY:
        return {'is_tenant_occupied': value == "tenant"}
    if node == N.LEASE_TYPE:
        return {'is_annual_lease': value == "annual"}
    if node == N.COLLECT_EMAIL and isinstance(value, str) and value:
        return {'email': value}
    return {}
