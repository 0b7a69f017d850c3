from portfoliodesk.config.settings import settings
from portfoliodesk.symbols.resolver import resolve_symbol


def test_suffixed_symbols_are_uppercased_unchanged() -> None:
    assert resolve_symbol("RELIANCE.NS") == "RELIANCE.NS"
    assert resolve_symbol("reliance.ns") == "RELIANCE.NS"
    assert resolve_symbol("infy.bo") == "INFY.BO"


def test_any_dot_counts_as_an_exchange_suffix() -> None:
    assert resolve_symbol("brk.b") == "BRK.B"


def test_known_ticker_uses_fixed_mapping() -> None:
    assert resolve_symbol("RELIANCE") == "RELIANCE.NS"
    assert resolve_symbol("tcs") == "TCS.NS"
    assert resolve_symbol("  hdfcbank ") == "HDFCBANK.NS"


def test_unknown_ticker_gets_default_suffix() -> None:
    assert resolve_symbol("UNKNOWNTICKER") == f"UNKNOWNTICKER{settings.symbols.default_suffix}"
    assert resolve_symbol("unknownticker") == "UNKNOWNTICKER.NS"


def test_overrides_take_precedence_over_settings() -> None:
    resolved = resolve_symbol("acme", aliases={"ACME": "ACME.BO"}, default_suffix=".NS")
    assert resolved == "ACME.BO"
    assert resolve_symbol("other", aliases={}, default_suffix=".BO") == "OTHER.BO"


def test_resolution_is_idempotent() -> None:
    once = resolve_symbol("wipro")
    assert resolve_symbol(once) == once
