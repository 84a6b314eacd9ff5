"""
Instrument resolution for the Dhan API.

Maps trading symbols to Dhan security ids and exchange codes to Dhan
exchange segments. Orders carrying an explicit security_id bypass the table.
"""

# Mapping: Trading Symbol -> Dhan security id (NSE cash segment)
SECURITY_ID_MAP = {
    "RELIANCE": "2885",
    "TCS": "11536",
    "INFY": "1594",
    "HDFCBANK": "1333",
    "ICICIBANK": "4963",
    "SBIN": "3045",
    "BAJFINANCE": "317",
    "TATASTEEL": "3499",
    "NIFTY": "13",
    "BANKNIFTY": "25",
}

# Indices are quoted on the index segment regardless of requested exchange
INDEX_SYMBOLS = {"NIFTY", "BANKNIFTY"}

# Mapping: Exchange -> Dhan exchange segment
EXCHANGE_SEGMENT_MAP = {
    "NSE": "NSE_EQ",
    "BSE": "BSE_EQ",
    "NFO": "NSE_FNO",
    "MCX": "MCX_COMM",
}


class UnknownInstrumentError(Exception):
    """Raised when a symbol has no known security id."""

    pass


def resolve_security_id(symbol: str, security_id: str | None = None) -> str:
    """
    Resolve the Dhan security id for a symbol.

    Args:
        symbol: Trading symbol (case-insensitive)
        security_id: Explicit id, returned unchanged when given

    Returns:
        Dhan security id

    Raises:
        UnknownInstrumentError: symbol not in the table and no id supplied
    """
    if security_id:
        return security_id
    upper_symbol = symbol.strip().upper()
    resolved = SECURITY_ID_MAP.get(upper_symbol)
    if resolved is None:
        raise UnknownInstrumentError(f"No security id known for {upper_symbol}")
    return resolved


def resolve_exchange_segment(exchange: str, symbol: str | None = None) -> str:
    """Resolve the Dhan exchange segment for an exchange code."""
    if symbol and symbol.strip().upper() in INDEX_SYMBOLS:
        return "IDX_I"
    return EXCHANGE_SEGMENT_MAP.get(exchange.upper(), "NSE_EQ")
