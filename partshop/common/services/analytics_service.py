from typing import Dict, Optional
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from ..errors import ValidationError
from ..models.order import Order
from ..models.user import Profile


TIMEFRAMES = {"7d": 7, "30d": 30, "90d": 90}


def _growth(current: Decimal, previous: Decimal) -> float:
    if previous == 0:
        return 100.0
    return float((current - previous) / previous * 100)


class AnalyticsService:
    """Sales summary over a rolling window compared with the window before it."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def summary(self, timeframe: str = "30d", now: Optional[datetime] = None) -> Dict:
        if timeframe not in TIMEFRAMES:
            raise ValidationError({"timeframe": "Timeframe must be one of 7d, 30d, 90d"})
        days = TIMEFRAMES[timeframe]
        end = now or datetime.now(timezone.utc).replace(tzinfo=None)
        start = end - timedelta(days=days)
        previous_start = start - timedelta(days=days)

        with self._session_factory() as session:
            current = (
                session.query(Order.total_amount, Order.created_at)
                .filter(Order.created_at >= start, Order.created_at <= end, Order.status != "cancelled")
                .order_by(Order.created_at.asc())
                .all()
            )
            previous = (
                session.query(Order.total_amount)
                .filter(Order.created_at >= previous_start, Order.created_at < start, Order.status != "cancelled")
                .all()
            )
            customers = session.query(Profile.id).filter(Profile.role == "customer").count()

        revenue = sum((Decimal(str(amount)) for amount, _ in current), Decimal("0"))
        previous_revenue = sum((Decimal(str(amount)) for (amount,) in previous), Decimal("0"))
        order_count = len(current)
        previous_count = len(previous)
        aov = revenue / order_count if order_count else Decimal("0")
        previous_aov = previous_revenue / previous_count if previous_count else Decimal("0")

        daily: Dict[str, Decimal] = {}
        for amount, created_at in current:
            key = created_at.date().isoformat()
            daily[key] = daily.get(key, Decimal("0")) + Decimal(str(amount))

        return {
            "timeframe": timeframe,
            "total_revenue": float(revenue),
            "total_orders": order_count,
            "total_customers": customers,
            "average_order_value": float(round(aov, 2)),
            "revenue_growth": _growth(revenue, previous_revenue),
            "orders_growth": _growth(Decimal(order_count), Decimal(previous_count)),
            "aov_growth": _growth(aov, previous_aov),
            "daily_revenue": [{"date": d, "amount": float(a)} for d, a in sorted(daily.items())],
        }
