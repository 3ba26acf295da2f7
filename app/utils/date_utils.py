# app/utils/date_utils.py
import datetime

ONE_DAY = datetime.timedelta(days=1)


def to_naive_utc(value):
    """Aware datetimes become naive UTC; naive ones are already taken as UTC."""
    if value is None:
        return None
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time.min)
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def upper_bound(date_to):
    """
    Exclusive upper bound for an inclusive `date_to` filter.

    A bare date or a midnight timestamp covers that whole day.
    Anything else is inclusive to the instant, hence the extra microsecond.
    """
    date_to = to_naive_utc(date_to)
    if date_to is None:
        return None
    if date_to.time() == datetime.time.min:
        return date_to + ONE_DAY
    return date_to + datetime.timedelta(microseconds=1)


def in_range(when, date_from=None, date_to=None) -> bool:
    if when is None:
        return True
    when = to_naive_utc(when)
    if date_from is not None and when < to_naive_utc(date_from):
        return False
    if date_to is not None and when >= upper_bound(date_to):
        return False
    return True
