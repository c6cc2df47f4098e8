"""Per-run store of tool results, keyed by role.

Each role holds an ordered list. A write with an index assigns that slot
(growing the list with ``None`` holes), so ``read(role, i)`` is stable no
matter in which order workouts are processed; a write without an index
appends. A read without an index returns the latest entry.
"""

from typing import Any

from loguru import logger

from trainlog.agents.workout_logger.results import (
    STORAGE_KEY_MAP,
    STORED_VALUE_ADAPTER,
    RoleKey,
    StoredValue,
    ToolError,
)


class ResultStore:
    """Role-keyed, array-valued store owned by a single extraction run."""

    def __init__(self) -> None:
        self._entries: dict[str, list[StoredValue | None]] = {}

    def write(self, role: RoleKey, value: StoredValue | dict[str, Any], index: int | None = None) -> StoredValue:
        """Validate and store a tool result.

        Raises:
            ValueError: If the index is negative or the value belongs to another role
            pydantic.ValidationError: If the value is not a known tool result
        """
        stored = STORED_VALUE_ADAPTER.validate_python(value)
        expected_role = STORAGE_KEY_MAP[stored.tool]
        if expected_role != role:
            raise ValueError(f"Result of {stored.tool} cannot be stored under role '{role}'")
        if index is not None and index < 0:
            raise ValueError(f"Workout index must be >= 0, got {index}")

        entries = self._entries.setdefault(role, [])
        if index is None:
            entries.append(stored)
        else:
            if index >= len(entries):
                entries.extend([None] * (index + 1 - len(entries)))
            entries[index] = stored

        logger.debug(
            "Stored tool result",
            role=role,
            index=index if index is not None else len(entries) - 1,
            entries=len(entries),
            is_error=isinstance(stored, ToolError),
        )
        return stored

    def read(self, role: RoleKey, index: int | None = None) -> StoredValue | None:
        """Return the slot at ``index``, or the latest entry when no index is given."""
        entries = self._entries.get(role)
        if not entries:
            return None
        if index is None:
            return entries[-1]
        if 0 <= index < len(entries):
            return entries[index]
        return None

    def read_all(self, role: RoleKey) -> list[StoredValue | None]:
        return list(self._entries.get(role, []))

    def roles(self) -> list[str]:
        return [role for role, entries in self._entries.items() if entries]

    def successful_count(self) -> int:
        """Number of stored non-error results across all roles."""
        return sum(
            1
            for entries in self._entries.values()
            for entry in entries
            if entry is not None and not isinstance(entry, ToolError)
        )
