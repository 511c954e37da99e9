"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Underwriting input is structurally invalid (negative revenue, FICO out of range, ...)"""

    pass


class MissingPrerequisiteError(DomainException):
    """A required input for the requested calculation is unknown"""

    pass


class DealNotFoundError(DomainException):
    """Referenced deal does not exist"""

    def __init__(self, deal_id: str):
        self.deal_id = deal_id
        super().__init__(f"Deal {deal_id} not found")


class InvalidDecisionError(DomainException):
    """Decision payload is missing fields required for the decision type"""

    pass


class InvalidTransitionError(DomainException):
    """Raised when a deal stage transition is not allowed."""

    def __init__(self, current_stage, target_stage, reason: str):
        self.current_stage = current_stage
        self.target_stage = target_stage
        self.reason = reason
        super().__init__(
            f"Invalid transition from {current_stage.value} to {target_stage.value}: {reason}"
        )


class ConcurrencyConflictError(DomainException):
    """Deal was modified by another writer; reload and retry"""

    def __init__(self, deal_id: str, detail: str = "deal was modified concurrently"):
        self.deal_id = deal_id
        super().__init__(f"Conflict on deal {deal_id}: {detail}")
