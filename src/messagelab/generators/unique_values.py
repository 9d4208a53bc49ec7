"""Per-field registry of values already handed out by random draws."""
import math
from collections.abc import Callable

from messagelab.exceptions import UniqueValuesExhaustedError

DEFAULT_MAX_ATTEMPTS = 10000


class UniqueValuePool:
    """Tracks used values per field so random draws never repeat within a run.

    A draw first checks whether the field's value space is already used up,
    then retries the producer a bounded number of times. Both dead ends raise
    :class:`UniqueValuesExhaustedError`.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        """Initialize an empty pool.

        Args:
            max_attempts: Upper bound on candidates drawn for one value
        """
        self.max_attempts = max_attempts
        self._used: dict[str, set[str]] = {}

    def is_empty(self) -> bool:
        return not self._used

    def used_count(self, field_id: str) -> int:
        """Get the number of distinct values handed out for a field."""
        return len(self._used.get(field_id, ()))

    def has_value(self, field_id: str, value: str) -> bool:
        return value in self._used.get(field_id, ())

    def draw(self, field_id: str, space: int, produce: Callable[[], str]) -> str:
        """Draw a value for ``field_id`` that was not handed out before.

        Args:
            field_id: Field the value belongs to
            space: Estimated number of distinct values ``produce`` can return
            produce: Candidate generator

        Returns:
            A fresh value, recorded as used

        Raises:
            UniqueValuesExhaustedError: If the space is used up or no fresh
                candidate came up within the attempt budget
        """
        used = self._used.setdefault(field_id, set())
        if len(used) >= space:
            raise UniqueValuesExhaustedError(field_id, len(used), space)

        attempts = min(self.max_attempts, math.ceil(2 * space))
        for _ in range(attempts):
            candidate = produce()
            if candidate not in used:
                used.add(candidate)
                return candidate

        raise UniqueValuesExhaustedError(field_id, len(used), space)

    def clear(self) -> None:
        """Forget every used value."""
        self._used.clear()
