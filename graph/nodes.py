"""
Node registry: question text and validation contract for every interview node.
"""
from __future__ import annotations

from typing import Dict

from core.errors import UnknownNodeError
from core.models import ConversationNode
from core.prompts import Prompts

from .schema import ContractType, NodeDef

N = ConversationNode

# Clarification fallbacks, one per contract
CLARIFICATIONS: Dict[ContractType, str] = {
    ContractType.BOOLEAN: "Sorry, I didn't quite catch that. Could you answer with a yes or a no?",
    ContractType.SCALE_1_10: "Could you give me a number from 1 to 10 for the condition of the property?",
    ContractType.CURRENCY_RANGE: "No problem if it's not exact. Do you have a rough figure or range in mind, like 250k to 300k?",
    ContractType.ROOM_COUNT: "Sorry, how many bedrooms and how many bathrooms does the property have? Something like 3 bed 2 bath works.",
    ContractType.OCCUPANCY: "Just to confirm, do you live in the property yourself, or is it rented out to tenants?",
    ContractType.LEASE_TYPE: "Is the lease month-to-month, or is it an annual lease?",
    ContractType.DATE_OR_TIMEFRAME: "Roughly when does the lease end? A month or a timeframe is fine.",
    ContractType.EMAIL_OR_DECLINED: "Could you share an email address, like name@example.com? Or just say skip if you'd rather not.",
    ContractType.FREE_TEXT: "Could you tell me a little more about that?",
    ContractType.NONE: "",
}

GENERIC_CLARIFICATION = "I didn't quite understand that. Could you please rephrase?"
BACKEND_FAILURE_CLARIFICATION = "I had trouble understanding that. Could you please try again?"


def _node(name: ConversationNode, question: str, contract: ContractType,
          instruction: str = "", schema: str = "", stage: str = "collect") -> NodeDef:
    return NodeDef(
        name=name,
        question=question,
        contract=contract,
        instruction=instruction,
        response_schema=schema,
        clarification=CLARIFICATIONS[contract],
        stage=stage,
    )


NODE_REGISTRY: Dict[ConversationNode, NodeDef] = {
    N.INITIAL_INTEREST: _node(
        N.INITIAL_INTEREST,
        "Hi, I'm calling you about the property, just wanted to ask if you've ever considered "
        "or had any intention of selling before?",
        ContractType.BOOLEAN, Prompts.initial_interest_instruction, Prompts.yes_no_schema, stage="start"),
    N.OTHER_PROPERTY: _node(
        N.OTHER_PROPERTY,
        "Alright, do you happen to have any other property you would like to sell?",
        ContractType.BOOLEAN, Prompts.other_property_instruction, Prompts.yes_no_schema, stage="decision"),
    N.PRICE_RANGE: _node(
        N.PRICE_RANGE,
        "Great! May I ask you a few questions about the condition? Let me start by asking you "
        "if you have a price range in mind?",
        ContractType.CURRENCY_RANGE, Prompts.price_range_instruction, Prompts.price_range_schema),
    N.BEDROOMS_BATHROOMS: _node(
        N.BEDROOMS_BATHROOMS,
        "How many bedrooms and bathrooms?",
        ContractType.ROOM_COUNT, Prompts.bedrooms_bathrooms_instruction, Prompts.room_count_schema),
    N.KITCHEN_UPDATES: _node(
        N.KITCHEN_UPDATES,
        "Have you made any updates to the kitchen or bathrooms within the past 5 years?",
        ContractType.BOOLEAN, Prompts.kitchen_updates_instruction, Prompts.yes_no_schema),
    N.PROPERTY_CONDITION: _node(
        N.PROPERTY_CONDITION,
        "On a scale of 1 to 10, how would you rate the condition of your property?",
        ContractType.SCALE_1_10, Prompts.property_condition_instruction, Prompts.scale_schema),
    N.OCCUPANCY: _node(
        N.OCCUPANCY,
        "Is the property occupied by you or tenants (renters)?",
        ContractType.OCCUPANCY, Prompts.occupancy_instruction, Prompts.occupancy_schema, stage="decision"),
    N.LEASE_TYPE: _node(
        N.LEASE_TYPE,
        "May I ask, are they on a monthly lease or an annual lease?",
        ContractType.LEASE_TYPE, Prompts.lease_type_instruction, Prompts.lease_type_schema, stage="decision"),
    N.LEASE_EXPIRY: _node(
        N.LEASE_EXPIRY,
        "When will the lease expire?",
        ContractType.DATE_OR_TIMEFRAME, Prompts.lease_expiry_instruction, Prompts.text_schema),
    N.SELLING_REASON: _node(
        N.SELLING_REASON,
        "What is the main reason for selling this property?",
        ContractType.FREE_TEXT, Prompts.selling_reason_instruction, Prompts.text_schema),
    N.COLLECT_EMAIL: _node(
        N.COLLECT_EMAIL,
        "What's the best email address to send you more information?",
        ContractType.EMAIL_OR_DECLINED, Prompts.collect_email_instruction, Prompts.email_schema),
    N.CLOSING: _node(
        N.CLOSING,
        "I'd like to thank you for your time and the info. The next step is that one of our acquisition "
        "team will call you back to discuss the next step and follow up with you regarding our call within "
        "the next two business days. Can we reach you again on this number?",
        ContractType.FREE_TEXT, Prompts.closing_instruction, Prompts.text_schema, stage="end"),
    N.END: _node(N.END, "", ContractType.NONE, stage="end"),
}


def get_node_def(node: ConversationNode) -> NodeDef:
    try:
        return NODE_REGISTRY[ConversationNode(node)]
    except (KeyError, ValueError):
        raise UnknownNodeError(str(node)) from None


def get_question(node: ConversationNode) -> str:
    return get_node_def(node).question
