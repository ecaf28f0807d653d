from __future__ import annotations

from typing import Any, Dict, Iterator


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class AttributeOverlay:
    """Uncommitted per-locale attribute values of one owning entity."""

    def __init__(self) -> None:
        self._pending: Dict[str, Dict[str, Any]] = {}

    def get_or_insert(self, locale: str) -> Dict[str, Any]:
        attributes = self._pending.get(locale)
        if attributes is None:
            attributes = {}
            self._pending[locale] = attributes
        return attributes

    def set(self, locale: str, attribute: str, value: Any) -> None:
        self.get_or_insert(locale)[attribute] = value

    def get(self, locale: str, attribute: str) -> Any:
        return self._pending.get(locale, {}).get(attribute, MISSING)

    def pending_for(self, locale: str) -> Dict[str, Any]:
        return dict(self._pending.get(locale, {}))

    def is_empty(self) -> bool:
        return not any(self._pending.values())

    def all_locales_with_pending(self) -> set[str]:
        return {locale for locale, attributes in self._pending.items() if attributes}

    def items(self) -> Iterator[tuple[str, Dict[str, Any]]]:
        for locale, attributes in self._pending.items():
            if attributes:
                yield locale, dict(attributes)

    def clear(self) -> None:
        self._pending.clear()

    def __repr__(self) -> str:
        return f"AttributeOverlay({self._pending!r})"
