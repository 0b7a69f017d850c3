from __future__ import annotations

from collections.abc import Iterable, Mapping

from portfoliodesk.config.settings import settings


def _has_exchange_suffix(symbol: str, known_suffixes: Iterable[str]) -> bool:
    if "." in symbol:
        return True
    return any(symbol.endswith(suffix.upper()) for suffix in known_suffixes)


def resolve_symbol(
    symbol: str,
    *,
    aliases: Mapping[str, str] | None = None,
    default_suffix: str | None = None,
    known_suffixes: Iterable[str] | None = None,
) -> str:
    """Map a user-facing ticker to the provider symbol (``TCS`` -> ``TCS.NS``)."""
    if aliases is None:
        aliases = settings.symbols.aliases
    if default_suffix is None:
        default_suffix = settings.symbols.default_suffix
    if known_suffixes is None:
        known_suffixes = settings.symbols.known_suffixes

    normalized = symbol.strip().upper()
    if _has_exchange_suffix(normalized, known_suffixes):
        return normalized
    return aliases.get(normalized) or f"{normalized}{default_suffix}"
