# calendar_helper.py
# Jalali date helpers: parsing, formatting and month arithmetic for due dates.
# Dates cross the storage boundary as ASCII "YYYY/MM/DD" strings.
import re
import datetime
import jdatetime
import pytz

from config import TIMEZONE, GREGORIAN_YEAR_THRESHOLD
from exceptions import InvalidDateError

# Persian and Arabic-Indic digits -> ASCII
_DIGITS = str.maketrans("۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩", "01234567890123456789")
_PERSIAN = str.maketrans("0123456789", "۰۱۲۳۴۵۶۷۸۹")
_DATE_RE = re.compile(r"^([0-9]{1,4})[/-]([0-9]{1,2})[/-]([0-9]{1,2})$")


def _split(text):
    if not isinstance(text, str):
        raise InvalidDateError(f"expected a date string, got {text!r}")
    match = _DATE_RE.match(text.strip().translate(_DIGITS))
    if not match:
        raise InvalidDateError(f"malformed date: {text!r}")
    return tuple(int(part) for part in match.groups())


def is_leap_year(year):
    return jdatetime.date(year, 1, 1).isleap()


def days_in_month(year, month):
    if not 1 <= month <= 12:
        raise InvalidDateError(f"month out of range: {month}")
    # first day of next month minus one day
    try:
        next_month = jdatetime.date(year + month // 12, month % 12 + 1, 1)
    except ValueError as e:
        raise InvalidDateError(f"year out of range: {year}") from e
    last = next_month - jdatetime.timedelta(days=1)
    return last.day


def parse_date(text):
    """
    text: "1403/01/15", "1403-1-15" or the same with Persian digits
    return: jdatetime.date
    """
    y, m, d = _split(text)
    if not 1 <= m <= 12:
        raise InvalidDateError(f"month out of range in {text!r}")
    try:
        return jdatetime.date(y, m, d)
    except ValueError as e:
        raise InvalidDateError(f"invalid jalali date {text!r}: {e}") from e


def format_date(jdate):
    return f"{jdate.year:04d}/{jdate.month:02d}/{jdate.day:02d}"


def add_months(jdate, months):
    """
    jdate: jdatetime.date
    months: int (may be negative)
    return: jdatetime.date

    Keeps the day of month; when the target month is shorter the day is
    clamped to its last day. Clamping loses information, so
    add_months(add_months(d, 1), -1) is not always d (1403/06/31 -> 1403/07/30
    -> 1403/06/30).
    """
    total = jdate.month + months
    new_y = jdate.year + (total - 1) // 12
    new_m = (total - 1) % 12 + 1
    new_d = min(jdate.day, days_in_month(new_y, new_m))
    try:
        return jdatetime.date(new_y, new_m, new_d)
    except ValueError as e:
        raise InvalidDateError(f"{months} months from {format_date(jdate)} is out of range") from e


def installment_due_date(agreement_date, installment_number):
    """Due date of installment N: agreement date + N months, as a storage string."""
    return format_date(add_months(parse_date(agreement_date), installment_number))


def normalize_date(text):
    """Return a storage-form jalali string, converting Gregorian input first."""
    y, m, d = _split(text)
    if y > GREGORIAN_YEAR_THRESHOLD:
        try:
            gdate = datetime.date(y, m, d)
        except ValueError as e:
            raise InvalidDateError(f"invalid gregorian date {text!r}: {e}") from e
        return format_date(jdatetime.date.fromgregorian(date=gdate))
    return format_date(parse_date(text))


def to_persian_digits(text):
    return str(text).translate(_PERSIAN)


def today(tz_name=TIMEZONE):
    tz = pytz.timezone(tz_name)
    return jdatetime.date.fromgregorian(date=datetime.datetime.now(tz).date())
