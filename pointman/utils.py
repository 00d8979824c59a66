"""Shared helpers: bounded retries, calendar months and days, pagination."""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, TypeVar

from django.core.paginator import EmptyPage, Paginator
from django.utils import timezone

from pointman.conf import pointman_settings
from pointman.exceptions import StorageConflict
from pointman.gates import Gates

logger = logging.getLogger(__name__)

T = TypeVar("T")


def bounded_retry(
    produce: Callable[[], T],
    accept: Callable[[T], bool],
    max_attempts: int,
) -> tuple[T | None, int]:
    """
    Call ``produce`` until ``accept`` approves a value or attempts run out.

    Returns:
        (value, attempts) where value is None when every attempt was rejected
    """
    attempts = 0
    while attempts < max_attempts:
        attempts += 1
        candidate = produce()
        if accept(candidate):
            return candidate, attempts
    return None, attempts


def retry_on_conflict(operation: Callable[[], T], attempts: int | None = None) -> T:
    """
    Run ``operation``, re-running it when it raises StorageConflict.

    The operation must be a complete unit of work (its own
    transaction.atomic()), so a retry starts from committed state.
    The last StorageConflict propagates when attempts run out.
    """
    if attempts is None:
        attempts = pointman_settings.CONFLICT_RETRY_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StorageConflict as exc:
            if attempt == attempts:
                raise
            logger.warning("Storage conflict (%s), retrying %d/%d", exc.code, attempt, attempts)
    raise StorageConflict(attempts=attempts)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day (Jan 31 + 1 -> Feb 28/29)."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def local_day_start(moment: datetime) -> datetime:
    """Local midnight opening the day of ``moment`` (aware, current time zone)."""
    local = timezone.localtime(moment)
    return _localize(local.replace(hour=0, minute=0, second=0, microsecond=0))


def local_month_start(moment: datetime) -> datetime:
    """Local midnight on the 1st of the month of ``moment``."""
    local = timezone.localtime(moment)
    return _localize(local.replace(day=1, hour=0, minute=0, second=0, microsecond=0))


def _localize(local: datetime) -> datetime:
    # Re-localize: the offset at midnight can differ from the one at ``moment`` (DST)
    return timezone.make_aware(local.replace(tzinfo=None), timezone.get_current_timezone())


@dataclass
class Page(Generic[T]):
    """One page of a newest-first listing."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


def paginate(queryset, page: int = 1, limit: int | None = None) -> Page:
    """Slice an ordered queryset. Pages past the end are empty, not errors."""
    if limit is None:
        limit = pointman_settings.DEFAULT_PAGE_SIZE
    Gates.page_bounds(page, limit)

    paginator = Paginator(queryset, limit)
    try:
        items = list(paginator.page(page).object_list)
    except EmptyPage:
        items = []
    return Page(items=items, total=paginator.count, page=page, limit=limit)
