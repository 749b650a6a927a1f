"""
Error taxonomy shared by the escrow, payment and reputation services.

BusinessRuleError subclasses mean "not allowed yet" and are safe to show to the
user. InfrastructureError subclasses mean the platform could not complete the
request and the caller should retry later. PreconditionFailedError means a
compare-and-set write lost a race and may be retried after a fresh read.
"""


class SettlementError(Exception):
    """Base class for every error raised by the settlement core."""

    def to_dict(self):
        return {"error": self.__class__.__name__, "message": str(self)}


class NotFoundError(SettlementError):
    def __init__(self, entity, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")

    def to_dict(self):
        data = super().to_dict()
        data.update({"entity": self.entity, "identifier": str(self.identifier)})
        return data


class BusinessRuleError(SettlementError):
    pass


class InvalidStateError(BusinessRuleError):
    """A status precondition was not met. Always reports current vs expected."""

    def __init__(self, transaction_id, entity, current, expected, message=None):
        self.transaction_id = transaction_id
        self.entity = entity
        self.current = current
        self.expected = tuple(expected)
        super().__init__(
            message
            or f"Cannot proceed: {entity} of transaction {transaction_id} is {current}, "
               f"expected one of {', '.join(self.expected)}"
        )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            "transaction_id": str(self.transaction_id),
            "entity": self.entity,
            "current": self.current,
            "expected": list(self.expected),
        })
        return data


class PaymentNotConfirmedError(BusinessRuleError):
    def __init__(self, transaction_id, payment_status):
        self.transaction_id = transaction_id
        self.payment_status = payment_status
        super().__init__(
            f"Cannot release funds for transaction {transaction_id}: "
            f"payment is {payment_status or 'missing'}, expected COMPLETED"
        )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            "transaction_id": str(self.transaction_id),
            "payment_status": self.payment_status,
        })
        return data


class NotParticipantError(BusinessRuleError):
    def __init__(self, transaction_id, user_id):
        self.transaction_id = transaction_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a participant of transaction {transaction_id}")


class PreconditionFailedError(SettlementError):
    """A conditional write found the row in an unexpected state."""

    retryable = True

    def __init__(self, entity, pk, expected, actual):
        self.entity = entity
        self.pk = pk
        self.expected = tuple(expected)
        self.actual = actual
        super().__init__(
            f"Conditional update of {entity} {pk} failed: "
            f"expected status in {', '.join(self.expected)}, found {actual}"
        )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            "entity": self.entity,
            "identifier": str(self.pk),
            "expected": list(self.expected),
            "actual": self.actual,
        })
        return data


class InfrastructureError(SettlementError):
    pass


class GatewayError(InfrastructureError):
    def __init__(self, message, gateway=None, status_code=None):
        self.gateway = gateway
        self.status_code = status_code
        super().__init__(message)


class UnknownGatewayStatusError(InfrastructureError):
    def __init__(self, gateway_status):
        self.gateway_status = gateway_status
        super().__init__(f"Gateway returned unmapped payment status {gateway_status!r}")

    def to_dict(self):
        data = super().to_dict()
        data["gateway_status"] = self.gateway_status
        return data
