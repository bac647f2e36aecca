from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from activities.models import Activity, MembershipPlan
from gyms.models import Gym
from members.models import Member
from payments.models import MonthlyPayment

from .models import Membership
from .services import (
    assign_membership,
    cancel_membership,
    pause_membership,
    resume_membership,
    set_auto_renewal,
)


class AssignMembershipTests(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro")
        self.activity = Activity.objects.create(gym=self.gym, name="Pilates", price=Decimal("9000"))
        self.member = Member.objects.create(gym=self.gym, first_name="Ana", last_name="Lopez")

    def test_period_is_one_calendar_month_clamped(self):
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 1, 31))

        self.assertEqual(m.start_date, date(2025, 1, 31))
        self.assertEqual(m.end_date, date(2025, 2, 28))
        self.assertEqual(m.cost, Decimal("9000.00"))
        self.assertEqual(m.activity_name, "Pilates")
        self.assertTrue(m.auto_renewal)
        self.assertEqual(m.status, Membership.Status.ACTIVE)

    def test_attendance_limit_comes_from_plan(self):
        MembershipPlan.objects.create(gym=self.gym, activity=self.activity, name="8 clases", cost=Decimal("7000"), max_attendances=8)

        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 1))

        self.assertEqual(m.max_attendances, 8)
        # цена активности важнее цены тарифа
        self.assertEqual(m.cost, Decimal("9000.00"))

    def test_explicit_cost_wins(self):
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 1), cost="5000")

        self.assertEqual(m.cost, Decimal("5000.00"))
        self.assertEqual(MonthlyPayment.objects.get(membership=m).amount, Decimal("5000.00"))

    def test_without_auto_renewal_nothing_is_billed(self):
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 1), auto_renewal=False)

        self.assertFalse(MonthlyPayment.objects.filter(membership=m).exists())

    def test_duplicate_is_rejected_until_cancelled(self):
        first = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 1))

        with self.assertRaises(ValidationError):
            assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 2))

        cancel_membership(first)
        again = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 3, 2))
        self.assertNotEqual(again.pk, first.pk)

    def test_activity_of_another_gym(self):
        other = Gym.objects.create(name="Norte")
        foreign = Activity.objects.create(gym=other, name="Box", price=Decimal("1000"))

        with self.assertRaises(ValidationError):
            assign_membership(member=self.member, activity=foreign)
        self.assertFalse(Membership.objects.exists())

    def test_activity_without_price(self):
        bare = Activity.objects.create(gym=self.gym, name="Sin precio")

        with self.assertRaises(ValidationError):
            assign_membership(member=self.member, activity=bare)

    def test_negative_cost(self):
        with self.assertRaises(ValidationError):
            assign_membership(member=self.member, activity=self.activity, cost=Decimal("-1"))


class MembershipLifecycleTests(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro")
        self.activity = Activity.objects.create(gym=self.gym, name="Funcional", price=Decimal("10000"))
        self.member = Member.objects.create(gym=self.gym, first_name="Ana", last_name="Lopez")
        self.m = Membership.objects.create(
            member=self.member,
            activity=self.activity,
            activity_name="Funcional",
            cost=Decimal("10000"),
            start_date=date(2025, 3, 5),
            end_date=date(2025, 4, 5),
            max_attendances=2,
        )

    def test_attendance_limit(self):
        self.assertEqual(self.m.attendances_left(), 2)

        self.m.register_attendance()
        self.m.register_attendance()

        self.assertEqual(self.m.current_attendances, 2)
        self.assertFalse(self.m.can_attend())
        with self.assertRaises(ValidationError):
            self.m.register_attendance()
        self.m.refresh_from_db()
        self.assertEqual(self.m.current_attendances, 2)

    def test_unlimited_attendance(self):
        self.m.max_attendances = 0
        self.m.save()

        for _ in range(5):
            self.m.register_attendance()

        self.assertIsNone(self.m.attendances_left())
        self.assertEqual(self.m.current_attendances, 5)

    def test_paused_cannot_attend(self):
        pause_membership(self.m, reason="Viaje")

        self.assertFalse(self.m.can_attend())
        with self.assertRaises(ValidationError):
            self.m.register_attendance()

    def test_pause_and_resume(self):
        pause_membership(self.m, reason="Lesión")
        self.m.refresh_from_db()
        self.assertEqual(self.m.status, Membership.Status.PAUSED)
        self.assertEqual(self.m.pause_reason, "Lesión")
        self.assertIsNotNone(self.m.paused_at)
        self.assertFalse(self.m.needs_renewal(date(2025, 5, 1)))

        with self.assertRaises(ValidationError):
            pause_membership(self.m)

        resume_membership(self.m)
        self.m.refresh_from_db()
        self.assertEqual(self.m.status, Membership.Status.ACTIVE)
        self.assertIsNone(self.m.paused_at)
        self.assertEqual(self.m.pause_reason, "")

        with self.assertRaises(ValidationError):
            resume_membership(self.m)

    def test_resume_bills_unbilled_period_once(self):
        pause_membership(self.m)

        resume_membership(self.m)
        pause_membership(self.m)
        resume_membership(self.m)

        payments = MonthlyPayment.objects.filter(membership=self.m)
        self.assertEqual(payments.count(), 1)
        self.assertEqual((payments[0].billing_year, payments[0].billing_month), (2025, 3))

    def test_cancel_is_idempotent(self):
        cancel_membership(self.m)
        first_cancel = Membership.objects.get(pk=self.m.pk).cancelled_at

        cancel_membership(self.m)

        self.m.refresh_from_db()
        self.assertEqual(self.m.status, Membership.Status.CANCELLED)
        self.assertEqual(self.m.cancelled_at, first_cancel)
        with self.assertRaises(ValidationError):
            pause_membership(self.m)

    def test_auto_renewal_toggle(self):
        set_auto_renewal(self.m, False)
        self.m.refresh_from_db()
        self.assertFalse(self.m.auto_renewal)
        self.assertFalse(self.m.needs_renewal(date(2025, 4, 5)))

        set_auto_renewal(self.m, True)
        self.m.refresh_from_db()
        self.assertTrue(self.m.needs_renewal(date(2025, 4, 5)))
        self.assertFalse(self.m.needs_renewal(date(2025, 4, 4)))
