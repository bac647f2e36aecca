from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase, override_settings

from activities.models import Activity, MembershipPlan
from gyms.models import Gym
from members.models import Member
from memberships.models import Membership
from memberships.services import assign_membership

from .models import MonthlyPayment
from .services import (
    bill_membership,
    billing_period_for,
    generate_monthly_payments,
    get_monthly_summary,
    get_overdue_payments,
    register_payment,
)


class BillingPeriodTests(TestCase):
    def test_cutoff_is_the_15th(self):
        self.assertEqual(billing_period_for(date(2025, 3, 1)), (2025, 3))
        self.assertEqual(billing_period_for(date(2025, 3, 15)), (2025, 3))
        self.assertEqual(billing_period_for(date(2025, 3, 16)), (2025, 4))
        self.assertEqual(billing_period_for(date(2025, 12, 20)), (2026, 1))

    @override_settings(BILLING_CUTOFF_DAY=10)
    def test_cutoff_is_configurable(self):
        self.assertEqual(billing_period_for(date(2025, 3, 11)), (2025, 4))


@override_settings(RENEWAL_THROTTLE_SECONDS=0, TELEGRAM_NOTIFICATIONS=False)
class LedgerTestBase(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro")
        self.activity = Activity.objects.create(gym=self.gym, name="Funcional", price=Decimal("10000"))
        MembershipPlan.objects.create(gym=self.gym, activity=self.activity, name="Mensual", cost=Decimal("10000"), max_attendances=8)
        self.member = Member.objects.create(gym=self.gym, first_name="Ana", last_name="Lopez")

    def _membership(self, member=None, **kwargs):
        data = {
            "member": member or self.member,
            "activity": self.activity,
            "activity_name": self.activity.name,
            "cost": Decimal("10000"),
            "start_date": date(2025, 3, 5),
            "end_date": date(2025, 4, 5),
        }
        data.update(kwargs)
        return Membership.objects.create(**data)


class ProrationTests(LedgerTestBase):
    def test_assigned_on_the_15th_bills_current_month(self):
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 15))

        payment = MonthlyPayment.objects.get(membership=m)
        self.assertEqual((payment.billing_year, payment.billing_month), (2025, 3))
        self.assertEqual(payment.due_date, date(2025, 3, 15))
        self.assertEqual(payment.amount, Decimal("10000.00"))
        self.assertTrue(payment.auto_generated)
        self.assertFalse(payment.renewal_payment)

    def test_assigned_on_the_16th_bills_following_month(self):
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 16))

        payment = MonthlyPayment.objects.get(membership=m)
        self.assertEqual((payment.billing_year, payment.billing_month), (2025, 4))
        self.assertEqual(payment.due_date, date(2025, 4, 15))


class GenerationPassTests(LedgerTestBase):
    def _other(self, name, **kwargs):
        return Member.objects.create(gym=self.gym, first_name=name, **kwargs)

    def test_generation_skips_paused_cancelled_manual_and_inactive(self):
        billed = self._membership()
        self._membership(self._other("Paused"), status=Membership.Status.PAUSED)
        self._membership(self._other("Cancelled"), status=Membership.Status.CANCELLED)
        self._membership(self._other("Manual"), auto_renewal=False)
        self._membership(self._other("Free"), cost=Decimal("0"))
        self._membership(self._other("Gone", status=Member.Status.INACTIVE))

        result = generate_monthly_payments(self.gym)

        self.assertTrue(result["success"])
        self.assertEqual(result["generated_count"], 1)
        self.assertEqual(result["total_amount"], Decimal("10000.00"))
        self.assertEqual(list(MonthlyPayment.objects.values_list("membership_id", flat=True)), [billed.pk])

    def test_generation_never_duplicates_a_billed_month(self):
        self._membership()

        generate_monthly_payments(self.gym)
        again = generate_monthly_payments(self.gym)

        self.assertEqual(again["generated_count"], 0)
        self.assertEqual(MonthlyPayment.objects.count(), 1)

    def test_bill_membership_returns_none_for_billed_period(self):
        m = self._membership()

        self.assertIsNotNone(bill_membership(m))
        self.assertIsNone(bill_membership(m))

    def test_amount_is_fixed_at_creation(self):
        m = self._membership()
        payment = bill_membership(m)

        m.cost = Decimal("20000")
        m.save()

        payment.refresh_from_db()
        self.assertEqual(payment.amount, Decimal("10000.00"))

    def test_command_generates_for_gym(self):
        self._membership()
        out = StringIO()

        call_command("generate_monthly_payments", "--gym", str(self.gym.pk), stdout=out)

        self.assertIn("generated 1", out.getvalue())


class OverdueTests(LedgerTestBase):
    def test_overdue_is_derived_from_due_date(self):
        payment = bill_membership(self._membership())

        self.assertFalse(payment.is_overdue(date(2025, 3, 15)))
        self.assertTrue(payment.is_overdue(date(2025, 3, 16)))
        self.assertEqual(payment.display_status(date(2025, 3, 20)), MonthlyPayment.Status.OVERDUE)
        self.assertEqual(payment.days_overdue(date(2025, 3, 20)), 5)
        payment.refresh_from_db()
        self.assertEqual(payment.status, MonthlyPayment.Status.PENDING)

    def test_paid_is_never_overdue(self):
        payment = bill_membership(self._membership())
        register_payment(payment, method=MonthlyPayment.Method.CARD)
        payment.refresh_from_db()

        self.assertFalse(payment.is_overdue(date(2025, 6, 1)))
        self.assertEqual(get_overdue_payments(self.gym, date(2025, 6, 1)), [])

    def test_overdue_list(self):
        late = bill_membership(self._membership())
        other = Member.objects.create(gym=self.gym, first_name="Leo")
        bill_membership(self._membership(other, start_date=date(2025, 3, 20), end_date=date(2025, 4, 20)))

        overdue = get_overdue_payments(self.gym, date(2025, 3, 16))

        self.assertEqual([p.pk for p in overdue], [late.pk])


class RegisterPaymentTests(LedgerTestBase):
    def test_register_marks_paid(self):
        payment = bill_membership(self._membership())

        paid = register_payment(payment, method=MonthlyPayment.Method.CASH, amount=Decimal("10000"))

        self.assertEqual(paid.status, MonthlyPayment.Status.PAID)
        self.assertEqual(paid.payment_method, MonthlyPayment.Method.CASH)
        self.assertIsNotNone(paid.paid_at)

    def test_cannot_pay_twice(self):
        payment = bill_membership(self._membership())
        register_payment(payment, method=MonthlyPayment.Method.CASH)

        with self.assertRaises(ValidationError):
            register_payment(payment, method=MonthlyPayment.Method.CASH)

    def test_amount_mismatch_and_unknown_method(self):
        payment = bill_membership(self._membership())

        with self.assertRaises(ValidationError):
            register_payment(payment, method=MonthlyPayment.Method.CASH, amount=Decimal("9999"))
        with self.assertRaises(ValidationError):
            register_payment(payment, method="bitcoin")

        payment.refresh_from_db()
        self.assertEqual(payment.status, MonthlyPayment.Status.PENDING)

    def test_monthly_summary(self):
        first = bill_membership(self._membership())
        other = Member.objects.create(gym=self.gym, first_name="Leo")
        bill_membership(self._membership(other, cost=Decimal("5000")))
        register_payment(first, method=MonthlyPayment.Method.TRANSFER)

        summary = get_monthly_summary(self.gym, 2025, 3, today=date(2025, 3, 20))

        self.assertEqual(summary["members"], 2)
        self.assertEqual(summary["payments"], 2)
        self.assertEqual(summary["paid_count"], 1)
        self.assertEqual(summary["overdue_count"], 1)
        self.assertEqual(summary["total_to_collect"], Decimal("15000.00"))
        self.assertEqual(summary["total_collected"], Decimal("10000.00"))
        self.assertEqual(summary["total_pending"], Decimal("5000.00"))
