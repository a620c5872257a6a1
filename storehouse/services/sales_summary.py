"""
Sales period comparison
"""
from datetime import datetime, timedelta
from typing import Tuple

from storehouse.models.order import OrderStatus
from storehouse.schemas.order import SalesPeriodSummary

# Orders that still count as revenue
SALES_STATUSES = tuple(
    s.value for s in OrderStatus
    if s not in (OrderStatus.CANCELED, OrderStatus.RETURNED)
)

Period = Tuple[datetime, datetime]


def day_periods(now: datetime) -> Tuple[Period, Period]:
    """(today, yesterday) as half-open ranges"""
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return (start, start + timedelta(days=1)), (start - timedelta(days=1), start)


def month_periods(now: datetime) -> Tuple[Period, Period]:
    """(current month, previous month) as half-open ranges"""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    next_start = (start + timedelta(days=32)).replace(day=1)
    previous_start = (start - timedelta(days=1)).replace(day=1)
    return (start, next_start), (previous_start, start)


def year_periods(now: datetime) -> Tuple[Period, Period]:
    """(current year, previous year) as half-open ranges"""
    start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return (start, start.replace(year=start.year + 1)), (start.replace(year=start.year - 1), start)


def compare_periods(current: float, previous: float) -> SalesPeriodSummary:
    """Trend, percentage change and progress of current against previous"""
    if current > previous:
        trend = "up"
    elif current < previous:
        trend = "down"
    else:
        trend = "neutral"
    
    if previous > 0:
        percentage_change = (current - previous) / previous * 100
        progress = min(100.0, current / previous * 100)
    else:
        percentage_change = 100.0 if current > 0 else 0.0
        progress = 100.0 if current > 0 else 0.0
    
    return SalesPeriodSummary(
        amount=round(current, 2),
        trend=trend,
        percentage_change=round(percentage_change, 2),
        progress_bar_percentage=float(round(progress)),
    )
