"""
ledger_kernel.db.types -- Money and currency types shared by every model.

Rules:
    - Amounts are ``Decimal`` end to end; ``to_money`` refuses floats.
    - Stored amounts keep full precision.  ``round_money`` (half-up) is used
      only for derived figures: percentages, runways, tax splits.
    - Currencies are ISO 4217 codes, upper case.  Nothing here converts
      between them; each vault and obligation keeps its own.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

from ledger_kernel.exceptions import InvalidCurrencyError

Money = Annotated[Decimal, Numeric(38, 9)]
Currency = Annotated[str, String(3)]

ZERO = Decimal("0")


def to_money(value: Decimal | int | str) -> Decimal:
    """Coerce to Decimal.  Raises TypeError for floats."""
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_money(value: Decimal, decimal_places: int = 2) -> Decimal:
    """Half-up rounding to ``decimal_places`` (0 rounds to a whole number)."""
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


ISO_4217_CURRENCIES: frozenset[str] = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND
    BOB BRL BSD BTN BWP BYN BZD CAD CDF CHF CLP CNY COP CRC CUP CVE CZK DJF
    DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GNF GTQ GYD HKD
    HNL HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS KHR KMF KPW KRW
    KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT MOP MRU MUR
    MVR MWK MXN MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK PHP PKR PLN
    PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK SGD SHP SLE SOS SRD SSP STN
    SYP SZL THB TJS TMT TND TOP TRY TTD TWD TZS UAH UGX USD UYU UZS VES VND
    VUV WST XAF XCD XOF XPF YER ZAR ZMW ZWL
    """.split()
)


def validate_currency(currency: str) -> str:
    """
    Normalise a currency code (trim, upper-case) and check it is ISO 4217.

    Raises:
        InvalidCurrencyError: empty, non-string or unknown code.
    """
    if not isinstance(currency, str) or not currency.strip():
        raise InvalidCurrencyError(str(currency))
    code = currency.strip().upper()
    if code not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return code


def is_valid_currency(currency: str) -> bool:
    try:
        validate_currency(currency)
    except InvalidCurrencyError:
        return False
    return True
