from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from activities.services import get_active_plan, get_current_activity_price
from core.money import add_months, money, ZERO
from payments.services import bill_membership

from .models import Membership


logger = logging.getLogger(__name__)


@transaction.atomic
def assign_membership(
    *,
    member,
    activity,
    start_date=None,
    cost=None,
    auto_renewal: bool = True,
    description: str = "",
) -> Membership:
    """Назначить клиенту активность и выставить первый платёж.

    Цена: явно переданная, иначе текущая цена активности/тарифа.
    Период: один календарный месяц от start_date (по умолчанию сегодня в зале).
    """
    gym = member.gym
    if activity.gym_id != gym.pk:
        raise ValidationError("Активность принадлежит другому залу")

    already = (
        Membership.objects
        .filter(member=member, activity=activity)
        .exclude(status=Membership.Status.CANCELLED)
        .exists()
    )
    if already:
        raise ValidationError("У клиента уже есть абонемент на эту активность")

    plan = get_active_plan(gym, activity.pk)
    if cost is None:
        cost = get_current_activity_price(gym, activity.pk)
    if cost is None:
        raise ValidationError("Не удалось определить цену активности")
    cost = money(cost)
    if cost < ZERO:
        raise ValidationError("Стоимость не может быть отрицательной")

    start = start_date or gym.localdate()
    membership = Membership.objects.create(
        member=member,
        activity=activity,
        activity_name=activity.name,
        description=description or "",
        cost=cost,
        status=Membership.Status.ACTIVE,
        auto_renewal=auto_renewal,
        start_date=start,
        end_date=add_months(start, 1),
        max_attendances=plan.max_attendances if plan else 0,
        current_attendances=0,
    )
    payment = bill_membership(membership)
    logger.info(
        "Membership %s assigned: member=%s activity=%s cost=%s first_payment=%s",
        membership.pk,
        member.pk,
        activity.pk,
        cost,
        payment.pk if payment else None,
    )
    return membership


def pause_membership(membership: Membership, reason: str = "") -> Membership:
    # Уже выставленные платежи не трогаем, только перестаём выставлять новые
    if membership.status != Membership.Status.ACTIVE:
        raise ValidationError("Поставить на паузу можно только активный абонемент")
    membership.status = Membership.Status.PAUSED
    membership.paused_at = timezone.now()
    membership.pause_reason = reason or ""
    membership.save(update_fields=["status", "paused_at", "pause_reason", "updated_at"])
    return membership


@transaction.atomic
def resume_membership(membership: Membership) -> Membership:
    if membership.status != Membership.Status.PAUSED:
        raise ValidationError("Абонемент не на паузе")
    membership.status = Membership.Status.ACTIVE
    membership.paused_at = None
    membership.pause_reason = ""
    membership.save(update_fields=["status", "paused_at", "pause_reason", "updated_at"])
    bill_membership(membership)
    return membership


def cancel_membership(membership: Membership) -> Membership:
    if membership.status == Membership.Status.CANCELLED:
        return membership
    membership.status = Membership.Status.CANCELLED
    membership.cancelled_at = timezone.now()
    membership.save(update_fields=["status", "cancelled_at", "updated_at"])
    return membership


def set_auto_renewal(membership: Membership, enabled: bool) -> Membership:
    enabled = bool(enabled)
    if membership.auto_renewal != enabled:
        membership.auto_renewal = enabled
        membership.save(update_fields=["auto_renewal", "updated_at"])
    return membership
