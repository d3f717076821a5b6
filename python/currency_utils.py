"""
Currency Conversion Utilities

Static exchange-rate table used to normalize report debts to USD, plus the
currency and country metadata shown to member companies.

Rates are approximate (December 2025) and are applied as
amount * rate_to_usd, rounded to cents. Unknown currency codes convert at 1.0.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Union

Amount = Union[Decimal, float, int, str]

CENTS = Decimal("0.01")

# Exchange rates to USD (base currency)
EXCHANGE_RATES: Dict[str, Decimal] = {
    'USD': Decimal('1.0'),
    'MXN': Decimal('0.059'),
    'EUR': Decimal('1.10'),
    'GBP': Decimal('1.27'),
    'CAD': Decimal('0.74'),
    'BRL': Decimal('0.20'),
    'ARS': Decimal('0.0010'),
    'COP': Decimal('0.00025'),
    'CLP': Decimal('0.0011'),
    'PEN': Decimal('0.27'),
    'JPY': Decimal('0.0071'),
    'CNY': Decimal('0.14'),
    'INR': Decimal('0.012'),
    'AUD': Decimal('0.66'),
    'NZD': Decimal('0.61'),
}

CURRENCY_NAMES: Dict[str, str] = {
    'USD': 'US Dollar',
    'MXN': 'Mexican Peso',
    'EUR': 'Euro',
    'GBP': 'British Pound',
    'CAD': 'Canadian Dollar',
    'BRL': 'Brazilian Real',
    'ARS': 'Argentine Peso',
    'COP': 'Colombian Peso',
    'CLP': 'Chilean Peso',
    'PEN': 'Peruvian Sol',
    'JPY': 'Japanese Yen',
    'CNY': 'Chinese Yuan',
    'INR': 'Indian Rupee',
    'AUD': 'Australian Dollar',
    'NZD': 'New Zealand Dollar',
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    'USD': '$',
    'MXN': '$',
    'EUR': '€',
    'GBP': '£',
    'CAD': 'CA$',
    'BRL': 'R$',
    'ARS': 'AR$',
    'COP': 'CO$',
    'CLP': 'CL$',
    'PEN': 'S/',
    'JPY': '¥',
    'CNY': '¥',
    'INR': '₹',
    'AUD': 'A$',
    'NZD': 'NZ$',
}

# Currencies displayed without decimals
ZERO_DECIMAL_CURRENCIES = frozenset({'JPY', 'CLP'})

EURO_COUNTRIES = frozenset({'ES', 'FR', 'DE', 'IT', 'PT', 'NL', 'BE', 'AT', 'IE', 'FI', 'GR'})

COUNTRY_CURRENCIES: Dict[str, str] = {
    'MX': 'MXN',
    'US': 'USD',
    'BR': 'BRL',
    'AR': 'ARS',
    'CO': 'COP',
    'CL': 'CLP',
    'PE': 'PEN',
    'GB': 'GBP',
    'CA': 'CAD',
    'JP': 'JPY',
    'CN': 'CNY',
    'IN': 'INR',
    'AU': 'AUD',
    'NZ': 'NZD',
}

SUPPORTED_COUNTRIES: List[Dict[str, str]] = [
    {'code': 'MX', 'name': 'Mexico', 'currency': 'MXN', 'tax_id': 'RFC'},
    {'code': 'US', 'name': 'United States', 'currency': 'USD', 'tax_id': 'SSN/EIN'},
    {'code': 'ES', 'name': 'Spain', 'currency': 'EUR', 'tax_id': 'NIF/CIF'},
    {'code': 'BR', 'name': 'Brazil', 'currency': 'BRL', 'tax_id': 'CPF/CNPJ'},
    {'code': 'AR', 'name': 'Argentina', 'currency': 'ARS', 'tax_id': 'CUIT/CUIL'},
    {'code': 'CO', 'name': 'Colombia', 'currency': 'COP', 'tax_id': 'NIT'},
    {'code': 'CL', 'name': 'Chile', 'currency': 'CLP', 'tax_id': 'RUT'},
    {'code': 'PE', 'name': 'Peru', 'currency': 'PEN', 'tax_id': 'RUC'},
    {'code': 'FR', 'name': 'France', 'currency': 'EUR', 'tax_id': 'SIREN'},
    {'code': 'DE', 'name': 'Germany', 'currency': 'EUR', 'tax_id': 'Steuernummer'},
    {'code': 'GB', 'name': 'United Kingdom', 'currency': 'GBP', 'tax_id': 'UTR'},
    {'code': 'CA', 'name': 'Canada', 'currency': 'CAD', 'tax_id': 'SIN/BN'},
    {'code': 'JP', 'name': 'Japan', 'currency': 'JPY', 'tax_id': 'Corporate Number'},
    {'code': 'CN', 'name': 'China', 'currency': 'CNY', 'tax_id': 'USCC'},
    {'code': 'IN', 'name': 'India', 'currency': 'INR', 'tax_id': 'PAN'},
    {'code': 'AU', 'name': 'Australia', 'currency': 'AUD', 'tax_id': 'TFN/ABN'},
    {'code': 'NZ', 'name': 'New Zealand', 'currency': 'NZD', 'tax_id': 'IRD'},
]


def _to_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def _round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def exchange_rate(currency: str) -> Decimal:
    """Rate from currency to USD; 1.0 for unknown codes."""
    return EXCHANGE_RATES.get(currency.upper(), Decimal('1.0'))


def is_valid_currency(currency: str) -> bool:
    return currency.upper() in EXCHANGE_RATES


def default_currency(country_code: str) -> str:
    """
    Default ISO 4217 currency for an ISO 3166-1 alpha-2 country code.

    Unknown countries default to USD.
    """
    code = country_code.upper()
    if code in EURO_COUNTRIES:
        return 'EUR'
    return COUNTRY_CURRENCIES.get(code, 'USD')


def convert_to_usd(amount: Amount, from_currency: str) -> Decimal:
    """
    Convert an amount to USD.

    USD amounts are returned unchanged; everything else is converted and
    rounded to cents.
    """
    value = _to_decimal(amount)
    if from_currency.upper() == 'USD':
        return value
    return _round_cents(value * exchange_rate(from_currency))


def convert_from_usd(usd_amount: Amount, to_currency: str) -> Decimal:
    value = _to_decimal(usd_amount)
    if to_currency.upper() == 'USD':
        return value
    return _round_cents(value / exchange_rate(to_currency))


def convert(amount: Amount, from_currency: str, to_currency: str) -> Decimal:
    """Convert between two currencies through USD."""
    return convert_from_usd(convert_to_usd(amount, from_currency), to_currency)


def format_amount(amount: Amount, currency: str) -> str:
    """
    Format an amount with its currency symbol and thousands separators.

    format_amount(12345.6, 'USD') -> '$12,345.60'
    format_amount(1500, 'JPY') -> '¥1,500'
    """
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    value = _to_decimal(amount)

    if code in ZERO_DECIMAL_CURRENCIES:
        value = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{symbol}{value:,.0f}"

    return f"{symbol}{_round_cents(value):,.2f}"


def supported_currencies() -> List[Dict[str, str]]:
    return [
        {'code': code, 'name': CURRENCY_NAMES[code], 'symbol': CURRENCY_SYMBOLS[code]}
        for code in EXCHANGE_RATES
    ]


def supported_countries() -> List[Dict[str, str]]:
    return [dict(country) for country in SUPPORTED_COUNTRIES]
