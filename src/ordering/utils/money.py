"""Money helpers. All amounts are RUB floats rounded to kopecks."""

MONEY_EPSILON = 0.01


def round_money(value: float) -> float:
    return round(float(value), 2)


def amounts_match(left: float, right: float, epsilon: float = MONEY_EPSILON) -> bool:
    return abs(float(left) - float(right)) <= epsilon


def to_kopecks(value: float) -> int:
    return int(round(float(value) * 100))
