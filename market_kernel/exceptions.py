"""
Typed Exception Hierarchy for the Market Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Admin tooling needs to tell apart "nothing happened" (bad input, missing
row), "someone else already handled this" (the row left its source state)
and "the operation does not apply here" (wrong transaction type, order not
refundable).  Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        engine.approve_transaction(txn_id, actor)
    except AlreadyProcessedError as e:
        # Not fatal for a UI polling the same view
        refresh_row(e.entity_id, e.current_status)
    except NotFoundError as e:
        api_response(status=404, code=e.code, entity=e.entity_type)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MarketKernelError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- UserNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- OrderNotFoundError
    |   +-- TaskNotFoundError
    |
    +-- TransitionError
    |   +-- AlreadyProcessedError
    |   +-- InvalidTransactionTypeError
    |   +-- NotRefundableError
    |
    +-- LedgerError
    |   +-- InsufficientFundsError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedActorError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- InternalError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Missing/short reason, bad status, bad page
----------------|-----------------------------|-----------------------------------------
Not found       | USER_NOT_FOUND              | Ledger target user doesn't exist
                | TRANSACTION_NOT_FOUND       | Transaction ID doesn't exist
                | ORDER_NOT_FOUND             | Order ID doesn't exist
                | TASK_NOT_FOUND              | Task ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Transition      | ALREADY_PROCESSED           | Entity left the expected source state
                | INVALID_TRANSACTION_TYPE    | Type has no admin review transition
                | NOT_REFUNDABLE              | Order not completed/processing
----------------|-----------------------------|-----------------------------------------
Ledger          | INSUFFICIENT_FUNDS          | Delta would drive balance below zero
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED_ACTOR          | Actor role may not mutate state
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying a terminal/append-only record
----------------|-----------------------------|-----------------------------------------
Internal        | INTERNAL_ERROR              | Persistence failure

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ALREADY_PROCESSED IS NOT FATAL:

    try:
        engine.approve_order(order_id, actor)
    except AlreadyProcessedError:
        # Another admin got there first; nothing was changed by this call
        pass

2. BULK CALLERS NEVER CATCH ITEM ERRORS:

    result = engine.bulk_action(EntityKind.ORDER, ids, BulkAction.APPROVE, actor)
    for outcome in result.errors:
        report(outcome.entity_id, outcome.error_code)

3. USE STRUCTURED DATA (not message parsing):

    except InsufficientFundsError as e:
        return {"error": e.code, "balance": e.balance, "delta": e.delta}

===============================================================================
"""


class MarketKernelError(Exception):
    """
    Base exception for all market kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MARKET_KERNEL_ERROR"


# Validation


class ValidationError(MarketKernelError):
    """Malformed or missing input.  Raised before any row is touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Lookup


class NotFoundError(MarketKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class UserNotFoundError(NotFoundError):
    code: str = "USER_NOT_FOUND"
    entity_type: str = "User"


class TransactionNotFoundError(NotFoundError):
    code: str = "TRANSACTION_NOT_FOUND"
    entity_type: str = "Transaction"


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"
    entity_type: str = "Order"


class TaskNotFoundError(NotFoundError):
    code: str = "TASK_NOT_FOUND"
    entity_type: str = "Task"


# State transitions


class TransitionError(MarketKernelError):
    """Base exception for state-machine violations."""

    code: str = "TRANSITION_ERROR"


class AlreadyProcessedError(TransitionError):
    """
    Entity is no longer in the source state the transition requires.

    This is the error a second (or concurrent) caller sees after another
    request has already moved the entity.  No mutation was performed.
    """

    code: str = "ALREADY_PROCESSED"

    def __init__(self, entity_type: str, entity_id: str, current_status: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        super().__init__(
            f"{entity_type} {entity_id} already processed "
            f"(status={current_status})"
        )


class InvalidTransactionTypeError(TransitionError):
    """Transaction type has no admin approval/rejection transition."""

    code: str = "INVALID_TRANSACTION_TYPE"

    def __init__(self, transaction_id: str, transaction_type: str, action: str):
        self.transaction_id = transaction_id
        self.transaction_type = transaction_type
        self.action = action
        super().__init__(
            f"Invalid transaction type for {action}: {transaction_type} "
            f"(transaction {transaction_id})"
        )


class NotRefundableError(TransitionError):
    """Order is not in a refundable status."""

    code: str = "NOT_REFUNDABLE"

    def __init__(self, order_id: str, current_status: str):
        self.order_id = order_id
        self.current_status = current_status
        super().__init__(
            f"Order {order_id} cannot be refunded from status {current_status}"
        )


# Ledger


class LedgerError(MarketKernelError):
    """Base exception for balance mutation errors."""

    code: str = "LEDGER_ERROR"


class InsufficientFundsError(LedgerError):
    """Applying the delta would drive the balance below zero."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, user_id: str, balance: str, delta: str):
        self.user_id = user_id
        self.balance = balance
        self.delta = delta
        super().__init__(
            f"Insufficient funds for user {user_id}: "
            f"balance={balance}, delta={delta}"
        )


# Authorization


class AuthorizationError(MarketKernelError):
    """Base exception for actor permission errors."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedActorError(AuthorizationError):
    """Actor's role is not allowed to perform the action."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(self, actor_id: str, role: str, action: str):
        self.actor_id = actor_id
        self.role = role
        self.action = action
        super().__init__(
            f"Actor {actor_id} with role {role} may not perform {action}"
        )


# Immutability


class ImmutabilityError(MarketKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempt to modify a terminal or append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# Persistence


class InternalError(MarketKernelError):
    """Unclassified persistence failure.  The atomic unit was rolled back."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")
