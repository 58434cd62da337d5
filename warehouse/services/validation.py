import math
import re

from warehouse.errors import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FieldErrors:
    """Collects field errors so a form reports every problem at once."""

    def __init__(self):
        self.errors: dict[str, str] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def required(self, data: dict, *fields: str) -> None:
        for field in fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                self.add(field, "required")

    def positive(self, field: str, value) -> None:
        if value is None or not math.isfinite(value) or value <= 0:
            self.add(field, "must be greater than 0")

    def email(self, field: str, value: str | None) -> None:
        if value and not EMAIL_RE.match(value):
            self.add(field, "invalid email address")

    def raise_if_any(self, message: str = "Invalid input") -> None:
        if self.errors:
            raise ValidationError(message, dict(self.errors))
