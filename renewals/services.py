from __future__ import annotations

import logging
import time
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from activities.services import get_current_activity_price
from core.money import add_months, money, ZERO
from core.telegram_notify import renewal_summary_text, tg_send
from gyms.models import Gym
from members.models import Member
from memberships.models import Membership
from payments.services import chargeable_memberships, create_renewal_payment

from .models import RenewalHistory


logger = logging.getLogger(__name__)

# Сколько раз повторяем продление на свежих данных после конфликта версий
MAX_CONFLICT_RETRIES = 1


class RenewalConflict(Exception):
    """Абонемент изменили между чтением и записью (например, продлил другой администратор)."""


def _resolve_gym(gym) -> Gym:
    if isinstance(gym, Gym):
        return gym
    return Gym.objects.get(pk=gym)


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc) or exc.__class__.__name__


def get_expired_auto_renewal_memberships(gym, today=None) -> list[Membership]:
    gym = _resolve_gym(gym)
    today = today or gym.localdate()
    return list(chargeable_memberships(gym).filter(end_date__lte=today))


def get_upcoming_auto_renewals(gym, days_ahead: int = 7, today=None) -> list[Membership]:
    gym = _resolve_gym(gym)
    today = today or gym.localdate()
    horizon = today + timedelta(days=int(days_ahead))
    return list(
        chargeable_memberships(gym)
        .filter(end_date__gt=today, end_date__lte=horizon)
        .order_by("end_date", "member_id", "id")
    )


def _new_detail(membership: Membership) -> dict:
    old_price = money(membership.cost)
    return {
        "membership_id": membership.pk,
        "member_id": membership.member_id,
        "member_name": membership.member.get_full_name(),
        "activity_name": membership.activity_name or "Без активности",
        "old_price": old_price,
        "new_price": old_price,
        "price_changed": False,
        "renewed": False,
        "new_start_date": None,
        "new_end_date": None,
        "payment_id": None,
        "error": None,
    }


def _renew_once(gym, membership: Membership, today) -> dict:
    old_price = money(membership.cost)
    # Нет актуальной цены: остаётся прежняя, в ноль не уходим
    new_price = get_current_activity_price(gym, membership.activity_id) or old_price
    price_changed = new_price != old_price

    start = today
    end = add_months(today, 1)
    now = timezone.now()

    with transaction.atomic():
        updated = (
            Membership.objects
            .filter(pk=membership.pk, version=membership.version)
            .update(
                start_date=start,
                end_date=end,
                cost=new_price,
                current_attendances=0,
                renewed_automatically=True,
                renewal_date=now,
                updated_at=now,
                version=F("version") + 1,
            )
        )
        if not updated:
            raise RenewalConflict("Абонемент уже продлён или изменён другим пользователем")

        payment = None
        if new_price > ZERO:
            payment = create_renewal_payment(
                membership,
                amount=new_price,
                start_date=start,
                previous_price=old_price,
                price_changed=price_changed,
            )

    membership.start_date = start
    membership.end_date = end
    membership.cost = new_price
    membership.current_attendances = 0
    membership.renewed_automatically = True
    membership.renewal_date = now
    membership.version += 1

    if price_changed:
        logger.info("Membership %s price updated: %s -> %s", membership.pk, old_price, new_price)

    return {
        "old_price": old_price,
        "new_price": new_price,
        "price_changed": price_changed,
        "new_start_date": start,
        "new_end_date": end,
        "payment_id": payment.pk if payment else None,
    }


def renew_membership_with_updated_price(gym, membership: Membership, today=None) -> dict:
    """Продлить один абонемент на календарный месяц от today по актуальной цене.

    Обновление абонемента и новый платёж пишутся в одной транзакции.
    Ошибки не выбрасываются, а возвращаются в detail["error"].
    """
    detail = _new_detail(membership)
    try:
        gym = _resolve_gym(gym)
        today = today or gym.localdate()
        if membership.member.gym_id != gym.pk:
            raise ValidationError("Абонемент принадлежит другому залу")
        if membership.status != Membership.Status.ACTIVE:
            raise ValidationError("Абонемент не активен")

        for attempt in range(MAX_CONFLICT_RETRIES + 1):
            try:
                outcome = _renew_once(gym, membership, today)
                break
            except RenewalConflict:
                fresh = (
                    Membership.objects
                    .select_related("member", "activity")
                    .filter(pk=membership.pk)
                    .first()
                )
                if attempt >= MAX_CONFLICT_RETRIES or fresh is None or not fresh.needs_renewal(today):
                    raise
                logger.warning("Membership %s changed concurrently, retrying renewal", membership.pk)
                membership = fresh
    except Exception as exc:
        logger.exception("Renewal failed for membership %s", membership.pk)
        detail["error"] = _error_message(exc)
        return detail

    detail.update(outcome)
    detail["renewed"] = True
    return detail


def _summarize(details: list[dict], errors: list[str], *, cancelled: bool = False) -> dict:
    renewed = [d for d in details if d["renewed"]]
    return {
        "success": not errors,
        "renewed_count": len(renewed),
        "total_amount": money(sum((d["new_price"] for d in renewed), ZERO)),
        "price_update_count": sum(1 for d in renewed if d["price_changed"]),
        "errors": errors,
        "details": details,
        "cancelled": cancelled,
    }


def _jsonable_detail(detail: dict) -> dict:
    out = {}
    for key, value in detail.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        out[key] = value
    return out


def record_renewal_process(gym, details: list[dict], errors: list[str], execution_type: str):
    """Запись в историю продлений. Best effort: ошибка логируется и не поднимается."""
    summary = _summarize(details, errors)
    try:
        with transaction.atomic():
            return RenewalHistory.objects.create(
                gym=gym,
                execution_type=execution_type,
                processed_memberships=len(details),
                successful_renewals=summary["renewed_count"],
                failed_renewals=len(details) - summary["renewed_count"],
                price_updates=summary["price_update_count"],
                total_amount=summary["total_amount"],
                errors=list(errors),
                details=[_jsonable_detail(d) for d in details],
            )
    except Exception:
        logger.exception("Renewal history was not recorded for gym %s", gym.pk)
        return None


def _run_batch(gym, memberships, today, *, execution_type: str, cancel=None) -> dict:
    details: list[dict] = []
    errors: list[str] = []
    cancelled = False
    throttle = float(getattr(settings, "RENEWAL_THROTTLE_SECONDS", 0) or 0)

    for index, membership in enumerate(memberships):
        # Отмена только между абонементами; уже продлённые остаются продлёнными
        if cancel is not None and cancel.is_set():
            cancelled = True
            logger.info("Renewal batch for gym %s cancelled after %s memberships", gym.pk, index)
            break
        if index and throttle > 0:
            time.sleep(throttle)

        detail = renew_membership_with_updated_price(gym, membership, today)
        details.append(detail)
        if detail["error"]:
            errors.append(f"{detail['member_name']} - {detail['activity_name']}: {detail['error']}")

    result = _summarize(details, errors, cancelled=cancelled)
    record_renewal_process(gym, details, errors, execution_type)

    logger.info(
        "Renewal batch for gym %s: renewed=%s total=%s price_updates=%s errors=%s",
        gym.pk,
        result["renewed_count"],
        result["total_amount"],
        result["price_update_count"],
        len(errors),
    )
    if result["renewed_count"] or errors:
        tg_send(renewal_summary_text(gym, result))
    return result


def process_all_auto_renewals(
    gym,
    today=None,
    *,
    execution_type: str = RenewalHistory.ExecutionType.AUTOMATIC,
    cancel=None,
) -> dict:
    """Продлить все истёкшие абонементы зала с автопродлением.

    Ошибка одного абонемента не останавливает пакет. success=False только
    если есть ошибки или не удалось получить список кандидатов.
    `cancel`: объект с is_set() (например threading.Event).
    """
    try:
        gym = _resolve_gym(gym)
        today = today or gym.localdate()
        candidates = get_expired_auto_renewal_memberships(gym, today)
    except Exception as exc:
        logger.exception("Renewal batch could not start for gym %s", gym)
        return _summarize([], [_error_message(exc)])

    if not candidates:
        return _summarize([], [])

    logger.info("Renewal batch for gym %s: %s candidates", gym.pk, len(candidates))
    return _run_batch(gym, candidates, today, execution_type=execution_type, cancel=cancel)


def renew_selected_memberships(gym, memberships, today=None) -> dict:
    """Ручное продление выбранных абонементов (без проверки даты окончания)."""
    gym = _resolve_gym(gym)
    today = today or gym.localdate()
    return _run_batch(
        gym,
        list(memberships),
        today,
        execution_type=RenewalHistory.ExecutionType.INDIVIDUAL,
    )


def get_renewal_history(gym, limit: int = 10) -> list[RenewalHistory]:
    gym = _resolve_gym(gym)
    return list(RenewalHistory.objects.filter(gym=gym).order_by("-executed_at", "-id")[: int(limit)])


def get_membership_expiration_stats(gym, today=None) -> dict:
    gym = _resolve_gym(gym)
    today = today or gym.localdate()
    week = today + timedelta(days=7)
    month = add_months(today, 1)

    active = Q(status=Membership.Status.ACTIVE)
    return (
        Membership.objects
        .filter(member__gym=gym, member__status=Member.Status.ACTIVE)
        .aggregate(
            total_count=Count("id"),
            active_count=Count("id", filter=active),
            auto_renewal_count=Count("id", filter=active & Q(auto_renewal=True)),
            expired_count=Count("id", filter=active & Q(end_date__lte=today)),
            expiring_this_week=Count("id", filter=active & Q(end_date__gt=today, end_date__lte=week)),
            expiring_this_month=Count("id", filter=active & Q(end_date__gt=week, end_date__lte=month)),
        )
    )


def get_renewal_status(end_date, today) -> dict:
    days = (end_date - today).days
    if days < 0:
        status = "expired"
    elif days == 0:
        status = "today"
    elif days <= 7:
        status = "soon"
    else:
        status = "scheduled"
    return {"status": status, "days": days}
