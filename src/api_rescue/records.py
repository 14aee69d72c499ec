"""Record lookup and validation helpers for SQLAlchemy models.

Repositories and endpoints use ``find`` and ``save`` so that missing records
and invalid input surface as ``RecordNotFound`` and ``RecordInvalid``, which
the rescue policy renders as 404 and 422 responses.
"""

from collections.abc import Iterator
from typing import Any, Self

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

BASE = "base"


class Errors:
    """Ordered mapping of field name to validation messages."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    @property
    def messages(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._messages.items()}

    def full_messages(self) -> list[str]:
        """Messages prefixed with their humanized field name.

        ``{"first_name": ["can't be blank"]}`` gives ``["First name can't be blank"]``.
        Messages on the ``base`` field are returned unchanged.
        """
        result = []
        for field, messages in self._messages.items():
            for message in messages:
                if field == BASE:
                    result.append(message)
                else:
                    result.append(f"{_humanize(field)} {message}")
        return result

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> Self:
        """Collect pydantic errors, keyed by their dotted location."""
        errors = cls()
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or BASE
            errors.add(field, err["msg"])
        return errors

    def __bool__(self) -> bool:
        return bool(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __repr__(self) -> str:
        return f"Errors({self._messages!r})"


def _humanize(field: str) -> str:
    return field.replace("_", " ").replace(".", " ").strip().capitalize()


class RecordNotFound(Exception):
    """Raised when a requested record does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        self.message = f"{entity} with id {identifier} not found"
        super().__init__(self.message)


class RecordInvalid(Exception):
    """Raised when a record fails validation.

    The message lists every failure, e.g. ``"Validation failed: Name can't be blank"``.
    """

    def __init__(self, record: Any = None, errors: Errors | None = None) -> None:
        self.record = record
        if errors is None:
            errors = record.errors if record is not None else Errors()
        self.errors = errors
        full = ", ".join(errors.full_messages())
        self.message = f"Validation failed: {full}" if full else "Validation failed"
        super().__init__(self.message)


class ValidatesMixin:
    """Adds validation to a SQLAlchemy model.

    Subclasses override ``validate`` and add messages to ``errors``::

        class User(ValidatesMixin, Base):
            def validate(self, errors: Errors) -> None:
                if not self.name:
                    errors.add("name", "can't be blank")
    """

    def validate(self, errors: Errors) -> None:
        pass

    @property
    def errors(self) -> Errors:
        errors: Errors | None = getattr(self, "_validation_errors", None)
        if errors is None:
            errors = self._validation_errors = Errors()
        return errors

    def valid(self) -> bool:
        """Run validations into a fresh ``errors`` collection."""
        errors = Errors()
        self.validate(errors)
        self._validation_errors = errors
        return not errors


async def find[T](session: AsyncSession, model: type[T], identifier: object) -> T:
    """Return the record with the given primary key or raise RecordNotFound."""
    record = await session.get(model, identifier)
    if record is None:
        raise RecordNotFound(model.__name__, identifier)
    return record


async def save[T: ValidatesMixin](session: AsyncSession, record: T) -> T:
    """Validate and flush ``record``; raise RecordInvalid if it has errors."""
    if not record.valid():
        raise RecordInvalid(record)
    session.add(record)
    await session.flush()
    return record


async def create[T: ValidatesMixin](session: AsyncSession, model: type[T], **attrs: Any) -> T:
    """Build a ``model`` from ``attrs`` and save it."""
    return await save(session, model(**attrs))
