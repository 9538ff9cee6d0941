import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Mapping, Optional

from ..errors import ValidationError


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class FormValidator:
    """Collects field errors for one submitted form.

    Each ``require_*`` method returns the cleaned value (or None when the
    field failed) so callers can build the record while validating::

        v = FormValidator(payload)
        name = v.require_text("name", 3, "Name must be at least 3 characters")
        v.raise_if_errors()
    """

    def __init__(self, data: Optional[Mapping[str, Any]]):
        self.data = data or {}
        self.errors: Dict[str, str] = {}

    def _raw(self, field: str) -> Any:
        value = self.data.get(field)
        return value.strip() if isinstance(value, str) else value

    def fail(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def require_text(self, field: str, min_length: int, message: str) -> Optional[str]:
        value = self._raw(field)
        if value is None or len(str(value)) < min_length:
            self.fail(field, message)
            return None
        return str(value)

    def optional_text(self, field: str, min_length: int = 0, message: str = "") -> Optional[str]:
        value = self._raw(field)
        if value in (None, ""):
            return None
        if len(str(value)) < min_length:
            self.fail(field, message)
            return None
        return str(value)

    def require_email(self, field: str = "email", message: str = "Invalid email address") -> Optional[str]:
        value = self._raw(field)
        if not value or not EMAIL_RE.match(str(value)):
            self.fail(field, message)
            return None
        return str(value).lower()

    def require_decimal(self, field: str, minimum: Decimal, message: str) -> Optional[Decimal]:
        try:
            value = Decimal(str(self._raw(field)))
        except (InvalidOperation, ValueError):
            self.fail(field, message)
            return None
        if not value.is_finite() or value < minimum:
            self.fail(field, message)
            return None
        return value.quantize(Decimal("0.01"))

    def require_int(
        self,
        field: str,
        message: str,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
    ) -> Optional[int]:
        raw = self._raw(field)
        try:
            value = int(str(raw))
        except (TypeError, ValueError):
            self.fail(field, message)
            return None
        if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
            self.fail(field, message)
            return None
        return value

    def require_choice(self, field: str, choices: Iterable[str], message: str) -> Optional[str]:
        value = self._raw(field)
        if value not in set(choices):
            self.fail(field, message)
            return None
        return value

    def raise_if_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)
