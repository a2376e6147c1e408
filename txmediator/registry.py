"""Registry of known applications, operations, payload types and id types."""

import threading
from dataclasses import dataclass, field

from txmediator.models.enums import RegistryCategory


@dataclass
class ValueRegistry:
    """In-memory, additive-only store of known keys per category.

    Each category maps a key to its display entry. Keys are never removed
    or overwritten once present; ``ensure`` is an atomic insert-if-absent,
    so concurrent mediation passes registering the same fallback key
    produce exactly one insert.
    """

    applications: dict[str, str] = field(default_factory=dict)
    operations: dict[str, str] = field(default_factory=dict)
    payload_types: dict[str, str] = field(default_factory=dict)
    id_types: dict[str, str] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def _category(self, category: RegistryCategory) -> dict[str, str]:
        if category is RegistryCategory.APPLICATIONS:
            return self.applications
        if category is RegistryCategory.OPERATIONS:
            return self.operations
        if category is RegistryCategory.PAYLOAD_TYPES:
            return self.payload_types
        return self.id_types

    def exists(self, category: RegistryCategory, key: str | None) -> bool:
        """Check whether ``key`` is known in ``category``."""
        if key is None:
            return False
        with self._lock:
            return key in self._category(category)

    def entry(self, category: RegistryCategory, key: str | None) -> str | None:
        """Return the display entry for ``key``, or the key itself if absent."""
        with self._lock:
            return self._category(category).get(key, key) if key is not None else None

    def ensure(self, category: RegistryCategory, key: str, display_entry: str) -> bool:
        """Insert ``key`` unless it is already present.

        Returns
        -------
        bool
            True if this call performed the insert.
        """
        with self._lock:
            entries = self._category(category)
            if key in entries:
                return False
            entries[key] = display_entry
            return True

    def keys(self, category: RegistryCategory) -> list[str]:
        """Return a snapshot of the keys in ``category``."""
        with self._lock:
            return list(self._category(category))

    def summary(self) -> dict[str, int]:
        """Return counts of known keys per category."""
        with self._lock:
            return {category.value: len(self._category(category)) for category in RegistryCategory}
