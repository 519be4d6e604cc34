"""Indian-style number and currency formatting."""

LAKH = 100_000
CRORE = 10_000_000


def _group_indian(digits: str) -> str:
    """Group an integer digit string as 12,34,56,789."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(value: float, decimals: int = 0) -> str:
    """Format a number with en-IN digit grouping."""
    sign = "-" if value < 0 else ""
    text = f"{abs(value):.{decimals}f}"
    whole, _, fraction = text.partition(".")
    grouped = _group_indian(whole)
    return f"{sign}{grouped}.{fraction}" if fraction else f"{sign}{grouped}"


def format_inr(amount: float) -> str:
    """Format rupees, switching to lakh (L) and crore (Cr) for large amounts."""
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if amount >= CRORE:
        return f"{sign}₹{amount / CRORE:.2f} Cr"
    elif amount >= LAKH:
        return f"{sign}₹{amount / LAKH:.2f} L"
    else:
        return f"{sign}₹{format_number(amount)}"


def format_inr_compact(amount: float) -> str:
    """Short ASCII rupee format for tables, e.g. Rs.1.23Cr or Rs.4.5L."""
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if amount >= CRORE:
        return f"{sign}Rs.{amount / CRORE:.2f}Cr"
    if amount >= LAKH:
        return f"{sign}Rs.{amount / LAKH:.1f}L"
    return f"{sign}Rs.{format_number(amount)}"


def format_rate(rate: float, unit: str = "kWh") -> str:
    return f"₹{rate:.2f}/{unit}"
