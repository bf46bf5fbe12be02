"""Small helpers shared by the order pipeline."""


def validate_email(email: str) -> bool:
    """True when *email* has a local part and a dotted domain."""
    local, _, domain = email.partition("@")
    return bool(local) and "." in domain


def format_name(first: str, last: str) -> str:
    return f"{first.strip().title()} {last.strip().title()}"


def calculate_total(items: list, tax_rate: float = 0.1) -> float:
    """Sum *items* and add tax, rounded to cents."""
    subtotal = sum(items)
    if subtotal <= 0:
        return 0.0
    return round(subtotal * (1 + tax_rate), 2)
