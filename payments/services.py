from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.money import add_months, money, ZERO
from members.models import Member
from memberships.models import Membership

from .models import MonthlyPayment


logger = logging.getLogger(__name__)

DUE_DAY = 15


def billing_period_for(start_date) -> tuple[int, int]:
    """(год, месяц), за который выставляется первый платёж.

    До cutoff-дня включительно текущий месяц, позже следующий.
    """
    cutoff = int(getattr(settings, "BILLING_CUTOFF_DAY", DUE_DAY))
    if start_date.day <= cutoff:
        return start_date.year, start_date.month
    nxt = add_months(start_date.replace(day=1), 1)
    return nxt.year, nxt.month


def due_date_for(year: int, month: int) -> date:
    return date(year, month, DUE_DAY)


def chargeable_memberships(gym):
    return (
        Membership.objects
        .filter(
            member__gym=gym,
            member__status=Member.Status.ACTIVE,
            status=Membership.Status.ACTIVE,
            auto_renewal=True,
        )
        .select_related("member", "activity")
        .order_by("member_id", "id")
    )


def is_period_billed(membership, year: int, month: int) -> bool:
    return MonthlyPayment.objects.filter(
        membership=membership,
        billing_year=year,
        billing_month=month,
    ).exists()


def _create_payment(membership, *, year: int, month: int, due_date, amount: Decimal, **extra):
    member = membership.member
    try:
        # savepoint: гонка двух сессий упирается в unique-ограничение
        with transaction.atomic():
            return MonthlyPayment.objects.create(
                gym_id=member.gym_id,
                member=member,
                membership=membership,
                activity_id=membership.activity_id,
                member_name=member.get_full_name(),
                activity_name=membership.activity_name,
                amount=amount,
                status=MonthlyPayment.Status.PENDING,
                due_date=due_date,
                billing_year=year,
                billing_month=month,
                auto_generated=True,
                **extra,
            )
    except IntegrityError:
        if is_period_billed(membership, year, month):
            logger.info("Period %s-%02d already billed for membership %s", year, month, membership.pk)
            return None
        raise


def bill_membership(membership) -> MonthlyPayment | None:
    """Выставить платёж за период абонемента, если он ещё не выставлен.

    Пауза, отмена, выключенное автопродление или неактивный клиент: ничего не выставляем.
    """
    if membership.status != Membership.Status.ACTIVE or not membership.auto_renewal:
        return None
    if membership.member.status != Member.Status.ACTIVE:
        return None

    amount = money(membership.cost)
    if amount <= ZERO:
        return None

    year, month = billing_period_for(membership.start_date)
    if is_period_billed(membership, year, month):
        return None

    return _create_payment(
        membership,
        year=year,
        month=month,
        due_date=due_date_for(year, month),
        amount=amount,
    )


def create_renewal_payment(
    membership,
    *,
    amount: Decimal,
    start_date,
    previous_price: Decimal,
    price_changed: bool,
) -> MonthlyPayment | None:
    """Платёж продления за период нового начала (то же правило 15-го, что и у генерации).

    Срок оплаты: дата начала нового периода. Вызывается внутри транзакции
    продления. Если этот период уже выставлен (повторное продление в том же
    периоде), второй платёж не создаём.
    """
    year, month = billing_period_for(start_date)
    if is_period_billed(membership, year, month):
        return None
    return _create_payment(
        membership,
        year=year,
        month=month,
        due_date=start_date,
        amount=money(amount),
        renewal_payment=True,
        price_updated=bool(price_changed),
        previous_price=money(previous_price),
    )


def generate_monthly_payments(gym) -> dict:
    """Проход генерации: первый/текущий платёж для всех подходящих абонементов зала."""
    errors: list[str] = []
    generated = 0
    total = ZERO

    try:
        memberships = list(chargeable_memberships(gym))
    except Exception as exc:
        logger.exception("Monthly generation failed for gym %s", getattr(gym, "pk", gym))
        return {"success": False, "generated_count": 0, "total_amount": ZERO, "errors": [str(exc)]}

    for membership in memberships:
        try:
            payment = bill_membership(membership)
        except Exception as exc:
            logger.exception("Monthly payment was not generated for membership %s", membership.pk)
            errors.append(f"{membership.member.get_full_name()} - {membership.activity_name}: {exc}")
            continue
        if payment is not None:
            generated += 1
            total += payment.amount

    logger.info(
        "Monthly generation for gym %s: generated=%s total=%s errors=%s",
        gym.pk,
        generated,
        total,
        len(errors),
    )
    return {
        "success": not errors,
        "generated_count": generated,
        "total_amount": money(total),
        "errors": errors,
    }


@transaction.atomic
def register_payment(payment: MonthlyPayment, *, method: str, amount=None, paid_at=None) -> MonthlyPayment:
    # Lock the ledger row so two cashiers can't both mark it paid.
    locked = MonthlyPayment.objects.select_for_update().get(pk=payment.pk)
    if locked.status == MonthlyPayment.Status.PAID:
        raise ValidationError("Этот платёж уже оплачен")
    if method not in MonthlyPayment.Method.values:
        raise ValidationError("Неизвестный способ оплаты")
    if amount is not None and money(amount) != money(locked.amount):
        raise ValidationError(f"Сумма не совпадает. Ожидалось {locked.amount}")

    locked.status = MonthlyPayment.Status.PAID
    locked.payment_method = method
    locked.paid_at = paid_at or timezone.now()
    locked.save(update_fields=["status", "payment_method", "paid_at"])
    logger.info("Monthly payment %s registered as paid (%s)", locked.pk, method)
    return locked


def get_overdue_payments(gym, today=None) -> list[MonthlyPayment]:
    today = today or gym.localdate()
    return list(
        MonthlyPayment.objects
        .filter(gym=gym)
        .overdue(today)
        .select_related("member", "membership")
        .order_by("due_date", "member_name", "id")
    )


def get_monthly_summary(gym, year: int, month: int, today=None) -> dict:
    today = today or gym.localdate()
    qs = MonthlyPayment.objects.filter(gym=gym).for_period(year, month)
    paid = Q(status=MonthlyPayment.Status.PAID)
    overdue = Q(status=MonthlyPayment.Status.OVERDUE) | Q(status=MonthlyPayment.Status.PENDING, due_date__lt=today)
    row = qs.aggregate(
        total=Sum("amount"),
        collected=Sum("amount", filter=paid),
        payments=Count("id"),
        paid_count=Count("id", filter=paid),
        overdue_count=Count("id", filter=overdue),
        members=Count("member", distinct=True),
    )
    total = money(row["total"])
    collected = money(row["collected"])
    return {
        "year": year,
        "month": month,
        "members": row["members"] or 0,
        "payments": row["payments"] or 0,
        "paid_count": row["paid_count"] or 0,
        "overdue_count": row["overdue_count"] or 0,
        "total_to_collect": total,
        "total_collected": collected,
        "total_pending": money(total - collected),
    }
