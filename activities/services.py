from __future__ import annotations

from decimal import Decimal

from core.money import positive_money

from .models import Activity, MembershipPlan


ACTIVITY_PRICE_FIELDS = ("price", "cost", "monthly_price")


def get_current_activity_price(gym, activity_id) -> Decimal | None:
    """Текущая цена активности или None.

    Сначала поля цены самой активности (первое положительное), затем
    активный тариф этой активности. Ничего не пишет.
    """
    if not activity_id:
        return None

    activity = Activity.objects.filter(gym=gym, pk=activity_id).first()
    if activity is not None:
        for field in ACTIVITY_PRICE_FIELDS:
            price = positive_money(getattr(activity, field, None))
            if price is not None:
                return price

    plan = (
        MembershipPlan.objects
        .filter(gym=gym, activity_id=activity_id, is_active=True)
        .order_by("id")
        .first()
    )
    if plan is not None:
        return positive_money(plan.cost)
    return None


def get_active_plan(gym, activity_id) -> MembershipPlan | None:
    if not activity_id:
        return None
    return (
        MembershipPlan.objects
        .filter(gym=gym, activity_id=activity_id, is_active=True)
        .order_by("id")
        .first()
    )
