"""Enums for the Wallet Service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class TrustType(str, enum.Enum):
    """Capability class stored on an edge."""

    SEND = "send"
    MANAGE = "manage"
    DEDUCT = "deduct"


class TrustRequestType(str, enum.Enum):
    """What the requester asked for. Direction matters: see TrustType mapping."""

    SEND = "send"
    RECEIVE = "receive"
    MANAGE = "manage"
    YIELD = "yield"
    DEDUCT = "deduct"


# request_type -> stored type
REQUEST_TYPE_TO_TRUST_TYPE = {
    TrustRequestType.SEND: TrustType.SEND,
    TrustRequestType.RECEIVE: TrustType.SEND,
    TrustRequestType.MANAGE: TrustType.MANAGE,
    TrustRequestType.YIELD: TrustType.MANAGE,
    TrustRequestType.DEDUCT: TrustType.DEDUCT,
}


class TrustState(str, enum.Enum):
    REQUESTED = "requested"
    TRUSTED = "trusted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    REVOKED = "revoked"


# Allowed state transitions. Anything not listed is terminal.
TRUST_TRANSITIONS = {
    TrustState.REQUESTED: frozenset(
        {TrustState.TRUSTED, TrustState.DECLINED, TrustState.CANCELLED}
    ),
    TrustState.TRUSTED: frozenset({TrustState.REVOKED}),
}

LIVE_TRUST_STATES = (TrustState.REQUESTED, TrustState.TRUSTED)


class TransactionType(str, enum.Enum):
    INITIAL_CREDIT = "initial_credit"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class TransactionDirection(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
