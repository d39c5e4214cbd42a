# Overview: Dashboard statistics and period sales reports.

"""
Reporting engine.

Aggregation happens in Python over already-filtered rows: one query for the
sales in the window, one batched query for their items, one batched lookup
for product categories. All day boundaries are store-local (see
time_utils.get_local_timezone); nothing here raises on empty data.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ..extensions import db
from ..models import Product, ProductCategory, Sale, SaleItem, Service
from ..time_utils import (
    day_window,
    get_local_timezone,
    normalize_local,
    start_of_day,
    subtract_months,
    to_local,
    to_utc_naive,
    to_utc_z,
)
from .. import cache
from .products_service import count_low_stock_products


PERIOD_TODAY = "today"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_YEAR = "year"
PERIODS = (PERIOD_TODAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_YEAR)
DEFAULT_PERIOD = PERIOD_WEEK

DASHBOARD_RECENT_SALES = 5
DASHBOARD_DAYS = 7
REPORT_RECENT_SALES = 20
TOP_PRODUCTS_LIMIT = 10

# Fixed English labels so output does not depend on the server locale
WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# SQLite caps bound parameters per statement
_IN_CHUNK = 500


def _chunks(values: list, size: int = _IN_CHUNK) -> Iterable[list]:
    for i in range(0, len(values), size):
        yield values[i:i + size]


def _sales_between(start: datetime, end: datetime | None = None) -> list[Sale]:
    """Sales with start <= created_at (< end), newest first."""
    query = db.session.query(Sale).filter(Sale.created_at >= to_utc_naive(start))
    if end is not None:
        query = query.filter(Sale.created_at < to_utc_naive(end))
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def _items_for(sales: list[Sale]) -> list[SaleItem]:
    """Items of the given sales, in sale order (newest first) then item id."""
    sale_ids = [s.id for s in sales]
    if not sale_ids:
        return []
    by_sale: dict[int, list[SaleItem]] = {sid: [] for sid in sale_ids}
    for chunk in _chunks(sale_ids):
        rows = (
            db.session.query(SaleItem)
            .filter(SaleItem.sale_id.in_(chunk))
            .order_by(SaleItem.id.asc())
            .all()
        )
        for item in rows:
            by_sale[item.sale_id].append(item)
    return [item for sid in sale_ids for item in by_sale[sid]]


def _product_categories(product_ids: set[int]) -> dict[int, str]:
    """Batched id -> category lookup. Deleted products are simply absent."""
    ids = sorted(product_ids)
    categories: dict[int, str] = {}
    for chunk in _chunks(ids):
        rows = db.session.query(Product.id, Product.category).filter(Product.id.in_(chunk)).all()
        categories.update({row.id: row.category for row in rows})
    return categories


def _average_cents(total_cents: int, count: int) -> int:
    if count == 0:
        return 0
    avg = (Decimal(total_cents) / Decimal(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(avg)


def day_label(day) -> str:
    """'MMM D', e.g. 'Oct 9'."""
    return f"{MONTH_LABELS[day.month - 1]} {day.day}"


# =============================================================================
# DASHBOARD
# =============================================================================


def _compute_dashboard_stats(now_local: datetime, tz: tzinfo) -> dict:
    today = now_local.date()
    today_start, tomorrow_start = day_window(today, tz)
    week_start = start_of_day(today - timedelta(days=DASHBOARD_DAYS - 1), tz)

    # Dense buckets, oldest first, ending today
    day_totals: OrderedDict = OrderedDict(
        (today - timedelta(days=offset), 0)
        for offset in range(DASHBOARD_DAYS - 1, -1, -1)
    )

    today_sales = 0
    today_revenue = 0
    for sale in _sales_between(week_start, tomorrow_start):
        sale_day = to_local(sale.created_at, tz).date()
        if sale_day not in day_totals:
            continue
        day_totals[sale_day] += sale.total_cents
        if sale_day == today:
            today_sales += 1
            today_revenue += sale.total_cents

    recent = (
        db.session.query(Sale)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(DASHBOARD_RECENT_SALES)
        .all()
    )

    return {
        "today_sales": today_sales,
        "today_revenue_cents": today_revenue,
        "total_products": db.session.query(Product).count(),
        "total_services": db.session.query(Service).count(),
        "low_stock_count": count_low_stock_products(),
        "recent_sales": [s.to_dict() for s in recent],
        "weekly_sales": [
            {
                "day": WEEKDAY_LABELS[day.weekday()],
                "date": day.isoformat(),
                "total_cents": total,
            }
            for day, total in day_totals.items()
        ],
        "generated_at": to_utc_z(now_local),
    }


def get_dashboard_stats(now: datetime | None = None) -> dict:
    """
    Today's count/revenue, catalog counts, low-stock count, the 5 latest
    sales and a 7-entry daily revenue series ending today.

    Results are cached only for the live clock (now=None).
    """
    tz = get_local_timezone()
    now_local = normalize_local(now, tz)
    if now is not None:
        return _compute_dashboard_stats(now_local, tz)

    key = cache.make_key("stats", now_local.date().isoformat())
    return cache.get_cache().get_or_set(
        cache.DASHBOARD, key, lambda: _compute_dashboard_stats(now_local, tz)
    )


# =============================================================================
# SALES REPORT
# =============================================================================


def resolve_period(period: str | None) -> str:
    """Unknown or missing periods fall back to a rolling week."""
    period = (period or "").strip().lower()
    return period if period in PERIODS else DEFAULT_PERIOD


def period_start(period: str, now_local: datetime) -> datetime:
    """
    today -> local midnight; week -> now - 7 days; month -> now - 1 calendar
    month; year -> now - 1 calendar year. Only "today" is floored to midnight.
    """
    if period == PERIOD_TODAY:
        return start_of_day(now_local.date(), now_local.tzinfo)
    if period == PERIOD_MONTH:
        return subtract_months(now_local, 1)
    if period == PERIOD_YEAR:
        return subtract_months(now_local, 12)
    return now_local - timedelta(days=7)


def _sales_by_day(sales: list[Sale], tz: tzinfo) -> list[dict]:
    """Sparse: only days with at least one sale, newest day first."""
    days: OrderedDict = OrderedDict()
    for sale in sales:
        day = to_local(sale.created_at, tz).date()
        bucket = days.setdefault(day, {"total_cents": 0, "count": 0})
        bucket["total_cents"] += sale.total_cents
        bucket["count"] += 1
    return [
        {
            "date": day_label(day),
            "iso_date": day.isoformat(),
            "total_cents": data["total_cents"],
            "count": data["count"],
        }
        for day, data in days.items()
    ]


def _sales_by_category(items: list[SaleItem]) -> list[dict]:
    """
    Fixed buckets seeded at zero; empty buckets are dropped.

    Product lines count toward their product's current category, service
    lines toward "services". Lines whose product has since been deleted
    are not attributed to any bucket.
    """
    buckets = OrderedDict(
        (category, {"category": category, "total_cents": 0, "count": 0})
        for category in ProductCategory.values()
    )
    categories = _product_categories({i.product_id for i in items if i.product_id is not None})

    for item in items:
        if item.product_id is not None:
            category = categories.get(item.product_id)
        elif item.service_id is not None:
            category = ProductCategory.SERVICES.value
        else:
            category = None

        bucket = buckets.get(category)
        if bucket is None:
            continue
        bucket["total_cents"] += item.total_cents
        bucket["count"] += item.quantity

    return [b for b in buckets.values() if b["total_cents"] > 0]


def _top_products(items: list[SaleItem], limit: int = TOP_PRODUCTS_LIMIT) -> list[dict]:
    """Grouped by the name snapshot, highest revenue first; ties keep first-seen order."""
    grouped: OrderedDict = OrderedDict()
    for item in items:
        entry = grouped.setdefault(item.name, {"name": item.name, "quantity": 0, "revenue_cents": 0})
        entry["quantity"] += item.quantity
        entry["revenue_cents"] += item.total_cents
    ranked = sorted(grouped.values(), key=lambda e: e["revenue_cents"], reverse=True)
    return ranked[:limit]


def _compute_sales_report(period: str, now_local: datetime, tz: tzinfo) -> dict:
    start = period_start(period, now_local)
    sales = _sales_between(start)
    items = _items_for(sales)

    total_sales = len(sales)
    total_revenue = sum(s.total_cents for s in sales)

    return {
        "period": period,
        "start": to_utc_z(start),
        "end": to_utc_z(now_local),
        "total_sales": total_sales,
        "total_revenue_cents": total_revenue,
        "average_order_value_cents": _average_cents(total_revenue, total_sales),
        "sales_by_day": _sales_by_day(sales, tz),
        "sales_by_category": _sales_by_category(items),
        "top_products": _top_products(items),
        "recent_sales": [s.to_dict() for s in sales[:REPORT_RECENT_SALES]],
    }


def get_sales_report(period: str | None, now: datetime | None = None) -> dict:
    """
    Revenue summary for a period (today/week/month/year; anything else is
    treated as week). Cached only for the live clock (now=None).
    """
    effective = resolve_period(period)
    tz = get_local_timezone()
    now_local = normalize_local(now, tz)
    if now is not None:
        return _compute_sales_report(effective, now_local, tz)

    key = cache.make_key("sales", effective, now_local.date().isoformat())
    return cache.get_cache().get_or_set(
        cache.REPORTS, key, lambda: _compute_sales_report(effective, now_local, tz)
    )
