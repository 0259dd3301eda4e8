"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service in the kernel.  Concrete services receive a
    SQLAlchemy ``Session`` and use ``session.flush()`` and savepoints --
    never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit.  Multi-step mutations run inside a
      savepoint (``session.begin_nested()``) so a failure undoes only that
      operation and leaves the caller's earlier work intact.
"""

from abc import ABC

from sqlalchemy.orm import Session

from distro_kernel.domain.clock import Clock, SystemClock
from distro_kernel.exceptions import ValidationError


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()``; the caller controls
          transaction boundaries (``session_scope()``).

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong in
          ``distro_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()


def require_quantity(value: object, field: str, allow_zero: bool = False) -> int:
    """Return value if it is an int quantity in range, else raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer, got {value!r}", field=field)
    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise ValidationError(f"{field} must be {bound}, got {value}", field=field)
    return value
