"""
=============================================================================
HEADER MULTIMAP
=============================================================================

HTTP lets a field appear more than once, and a single field line may carry
several comma-separated values. Both end up in the same place here:

    X-Foo: a, b\r\n                    Headers
    X-Foo: c\r\n          ──parse──►   {"X-Foo": ["a", "b", "c"]}

    Headers                            X-Foo: a,b,c\r\n
    {"X-Foo": ["a", "b", "c"]} ─write─►

Field names are kept exactly as received (case-sensitive keys). Values for
one name keep their insertion order; the order of different names is not
significant.
=============================================================================
"""

from typing import Dict, List, Optional


class Headers(Dict[str, List[str]]):
    """
    Mapping of field name to an ordered list of string values.

    Keys created through add() or set() always hold at least one value.

    Example:
        headers = Headers()
        headers.set("Content-Type", "application/json")
        headers.add("X-Multi", "one")
        headers.add("X-Multi", "two")
        headers["X-Multi"]   # ["one", "two"]
    """

    def add(self, name: str, value: str) -> "Headers":
        """Append a value under name, creating the key if needed."""
        self.setdefault(name, []).append(value)
        return self

    def set(self, name: str, value: str) -> "Headers":
        """Replace every value under name with a single value."""
        self[name] = [value]
        return self

    def get_all(self, name: str) -> List[str]:
        """Return a copy of the values for name (empty list if absent)."""
        return list(self.get(name, []))

    def first(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value for name, or default."""
        values = self.get(name)
        return values[0] if values else default

    def copy(self) -> "Headers":
        return Headers({name: list(values) for name, values in self.items()})
