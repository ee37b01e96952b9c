"""
Daily Numbering Service

Allocates human-readable numbers of the form ``PREFIX-YYYYMMDD-NNNN`` for
orders (``INV``) and issuance records (``ISS``). The sequence restarts at
0001 every calendar day (local time).

Two requests can compute the same next number. The unique constraint on
the number field rejects the loser, which retries inside a savepoint with a
fresh number.
"""

import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models.functions import Length
from django.utils import timezone

from utils.constants import DAILY_SEQUENCE_WIDTH
from utils.exceptions import DuplicateNumberError

logger = logging.getLogger(__name__)


def daily_prefix(prefix, on_date=None):
    on_date = on_date or timezone.localdate()
    return f"{prefix}-{on_date.strftime('%Y%m%d')}"


def next_daily_number(model, field, prefix, on_date=None):
    """
    Return the next free number for ``prefix`` on ``on_date``.

    Looks up the greatest existing value starting with ``PREFIX-YYYYMMDD-``,
    parses its trailing sequence and adds one. Starts at 1 when none exist.
    """
    day_prefix = daily_prefix(prefix, on_date)
    # Longer numbers first so -10000 sorts above -9999
    latest = (
        model.objects
        .filter(**{f'{field}__startswith': f'{day_prefix}-'})
        .annotate(number_length=Length(field))
        .order_by('-number_length', f'-{field}')
        .values_list(field, flat=True)
        .first()
    )

    sequence = 1
    if latest:
        try:
            sequence = int(latest.rsplit('-', 1)[-1]) + 1
        except ValueError:
            logger.warning(f"Unparseable {model.__name__}.{field} value {latest!r}; restarting sequence")

    return f"{day_prefix}-{sequence:0{DAILY_SEQUENCE_WIDTH}d}"


def create_with_daily_number(model, field, prefix, **fields):
    """
    Create a ``model`` row with a freshly allocated daily number in ``field``.

    Only a collision on ``field`` is retried. Any other integrity failure
    (check constraint, foreign key, NOT NULL) propagates unchanged.

    Raises:
        DuplicateNumberError: If every attempt collided with an existing number
        IntegrityError: If the row violates any other constraint
    """
    max_attempts = settings.DAILY_NUMBER_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        number = next_daily_number(model, field, prefix)
        try:
            with transaction.atomic():
                return model.objects.create(**{field: number}, **fields)
        except IntegrityError:
            if not model.objects.filter(**{field: number}).exists():
                raise
            logger.warning(
                f"{model.__name__} number {number} already taken "
                f"(attempt {attempt}/{max_attempts})"
            )

    logger.error(f"Could not allocate a {prefix} number after {max_attempts} attempts")
    raise DuplicateNumberError()
