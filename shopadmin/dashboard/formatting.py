"""Display formatting for list rows"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_datetime


def ordinal(day):
    if 10 <= day % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th')
    return f"{day}{suffix}"


def parse_timestamp(value):
    """Accept a datetime or an ISO 8601 string (as serialized by the API)"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return parse_datetime(str(value))


def format_date(value):
    """
    Format a creation timestamp the way list pages show it, e.g. "July 4th, 2024".
    Aware datetimes are shown in the current time zone.
    """
    dt = parse_timestamp(value)
    if dt is None:
        return ''
    if timezone.is_aware(dt):
        dt = timezone.localtime(dt)
    return f"{dt.strftime('%B')} {ordinal(dt.day)}, {dt.year}"


def to_decimal(value):
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def format_price(value):
    """Format a price as US dollars, e.g. "$1,234.50" """
    amount = to_decimal(value)
    if amount is None:
        return ''
    return f"${amount:,.2f}"
