"""Money value object — fixed-point amounts in integer minor units.

Amounts are never floats. Decimal input (a price typed by a supplier, an
imported catalogue value) is converted once, rounding half away from zero to
the currency's minor-unit precision; everything after that is integer math.
"""

from decimal import ROUND_HALF_UP, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from ordering.domain import ordering
from ordering.exceptions import CurrencyMismatch

# ISO 4217 minor-unit exponents that differ from the usual two decimals
_MINOR_UNIT_EXPONENTS = {
    "JPY": 0,
    "KRW": 0,
    "CLP": 0,
    "ISK": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
    "TND": 3,
}

VALID_CURRENCIES = frozenset(
    {
        "EUR",
        "USD",
        "GBP",
        "CHF",
        "SEK",
        "NOK",
        "DKK",
        "PLN",
        "CZK",
        "CAD",
        "AUD",
        "NZD",
        "MXN",
        "BRL",
        "INR",
        "SGD",
        "HKD",
        "ZAR",
    }
    | set(_MINOR_UNIT_EXPONENTS)
)


def minor_unit_exponent(currency: str) -> int:
    return _MINOR_UNIT_EXPONENTS.get(currency, 2)


@ordering.value_object
class Money:
    """An amount of money in minor units (cents for EUR) with its currency."""

    amount: Integer(required=True)
    currency: String(max_length=3, default="EUR")

    @invariant.post
    def currency_must_be_valid_iso_4217(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    # -------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------
    @classmethod
    def zero(cls, currency: str = "EUR") -> "Money":
        return cls(amount=0, currency=currency)

    @classmethod
    def from_major(cls, value, currency: str = "EUR") -> "Money":
        """Convert a decimal major-unit amount, e.g. ``"12.345"`` EUR -> 1235 cents."""
        exponent = minor_unit_exponent(currency)
        minor = (Decimal(str(value)).scaleb(exponent)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return cls(amount=int(minor), currency=currency)

    # -------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------
    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(self.currency, other.currency)

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, factor: int) -> "Money":
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise TypeError("Money can only be multiplied by an integer quantity")
        return Money(amount=self.amount * factor, currency=self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    # -------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------
    def to_major(self) -> Decimal:
        return Decimal(self.amount).scaleb(-minor_unit_exponent(self.currency))

    def format(self) -> str:
        exponent = minor_unit_exponent(self.currency)
        quantum = Decimal(1).scaleb(-exponent)
        return f"{self.to_major().quantize(quantum)} {self.currency}"
