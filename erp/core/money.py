"""
Money arithmetic shared by every document type.

KWD is the base currency and carries 3 decimal places. Foreign-currency
amounts (AED, USD) carry 2. Rounding is always half-up.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

KWD_PLACES = Decimal('0.001')
FX_PLACES = Decimal('0.01')
RATE_PLACES = Decimal('0.0001')
ZERO_KWD = Decimal('0.000')


def to_decimal(value, default=Decimal('0')):
    """Convert a number, string or None into a Decimal"""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default


def quantize_kwd(value):
    return to_decimal(value).quantize(KWD_PLACES, rounding=ROUND_HALF_UP)


def quantize_fx(value):
    return to_decimal(value).quantize(FX_PLACES, rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price):
    """Line total in KWD: quantity x unit price, rounded to 3 places"""
    return quantize_kwd(to_decimal(quantity) * to_decimal(unit_price))


def fx_total(total_kwd, rate):
    """FX total: KWD total x rate, rounded to 2 places. None when there is no rate."""
    rate = to_decimal(rate, default=None)
    if rate is None or rate == 0:
        return None
    return quantize_fx(to_decimal(total_kwd) * rate)


def document_totals(lines, fx_rate=None):
    """
    Compute line totals and document totals for a list of line dicts.

    Each line needs ``quantity`` and ``price_kwd``. The line dicts are
    updated in place with ``total_kwd`` and returned together with the
    document's KWD total and FX total (None when no rate is given).
    """
    total_kwd = ZERO_KWD
    for line in lines:
        line['total_kwd'] = line_total(line.get('quantity', 1), line.get('price_kwd'))
        total_kwd += line['total_kwd']
    total_kwd = quantize_kwd(total_kwd)
    return lines, total_kwd, fx_total(total_kwd, fx_rate)
