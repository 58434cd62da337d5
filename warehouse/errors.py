class WarehouseError(Exception):
    """Base class for every domain failure raised by the services."""


class ValidationError(WarehouseError, ValueError):
    """User input missing or invalid. ``fields`` maps field names to messages."""

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        super().__init__(message)
        self.fields = fields or {}


class InvalidAdjustment(ValidationError):
    pass


class DuplicateUsername(ValidationError):
    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists", {"username": "already exists"})
        self.username = username


class NotFoundError(WarehouseError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class InsufficientStock(WarehouseError):
    def __init__(self, material_id: str, current: float, delta: float):
        super().__init__(f"Insufficient stock. Current: {current}, requested change: {delta}")
        self.material_id = material_id
        self.current = current
        self.delta = delta


class PermissionDenied(WarehouseError):
    def __init__(self, module: str, permission: str):
        super().__init__(f"Permission '{permission}' on '{module}' is required")
        self.module = module
        self.permission = permission


class PersistenceError(WarehouseError):
    def __init__(self, collection: str, operation: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {operation} {collection}{detail}")
        self.collection = collection
        self.operation = operation
