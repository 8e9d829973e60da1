BASE_CURRENCY = "USD"

def convert(amount: float, from_currency: str, to_currency: str, rates: dict | None) -> float:
    """
    Convert through the USD base using a backend rates payload
    ({"base": "USD", "rates": {...}, "symbols": {...}}). Unknown currencies
    use a rate of 1; without rates the amount is returned unchanged.
    """
    if not rates or from_currency == to_currency:
        return amount

    table = rates.get("rates", {})
    usd = amount if from_currency == BASE_CURRENCY else amount / (table.get(from_currency) or 1)
    return usd if to_currency == BASE_CURRENCY else usd * (table.get(to_currency) or 1)

def get_symbol(currency: str, rates: dict | None) -> str:
    return ((rates or {}).get("symbols") or {}).get(currency, "$")

def format_price(amount: float, currency: str, rates: dict | None) -> str:
    return f"{get_symbol(currency, rates)}{amount:,.2f}"
