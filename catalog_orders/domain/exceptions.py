class DomainException(Exception):
    pass


class NotFoundError(DomainException):
    def __init__(self, entity: str, key=None):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found" if key is None else f"{entity} with ID {key} not found")


class ValidationError(DomainException):
    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


class BusinessRuleError(DomainException):
    pass


class InvalidOrderStateError(BusinessRuleError):
    pass


class InsufficientStockError(BusinessRuleError):
    def __init__(self, available: int, required: int, product_name: str | None = None):
        self.available = available
        self.required = required
        self.product_name = product_name
        if product_name:
            super().__init__(f"Insufficient stock for product '{product_name}'")
        else:
            super().__init__("Insufficient stock")


class DuplicateError(DomainException):
    def __init__(self, entity: str, field: str, value):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"{entity} with {field} '{value}' already exists")
