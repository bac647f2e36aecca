from datetime import date
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import DatabaseError
from django.db.models import F
from django.test import TestCase, override_settings

from activities.models import Activity, MembershipPlan
from gyms.models import Gym
from members.models import Member
from memberships.models import Membership
from memberships.services import assign_membership
from payments import services as payment_services
from payments.models import MonthlyPayment

from .models import RenewalHistory
from .services import (
    get_current_activity_price,
    get_expired_auto_renewal_memberships,
    get_membership_expiration_stats,
    get_renewal_history,
    get_renewal_status,
    get_upcoming_auto_renewals,
    process_all_auto_renewals,
    renew_membership_with_updated_price,
)


TODAY = date(2025, 2, 3)


@override_settings(RENEWAL_THROTTLE_SECONDS=0, TELEGRAM_NOTIFICATIONS=False)
class RenewalTestBase(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro", timezone="America/Argentina/Buenos_Aires")
        self.activity = Activity.objects.create(gym=self.gym, name="Funcional", price=Decimal("12000.00"))
        self.member = self._member("Ana", "Lopez")

    def _member(self, first, last, *, gym=None, status=Member.Status.ACTIVE):
        return Member.objects.create(gym=gym or self.gym, first_name=first, last_name=last, status=status)

    def _membership(self, member=None, **kwargs):
        data = {
            "member": member or self.member,
            "activity": self.activity,
            "activity_name": self.activity.name,
            "cost": Decimal("10000.00"),
            "status": Membership.Status.ACTIVE,
            "auto_renewal": True,
            "start_date": date(2024, 12, 31),
            "end_date": date(2025, 1, 31),
            "max_attendances": 12,
            "current_attendances": 7,
        }
        data.update(kwargs)
        return Membership.objects.create(**data)


class CandidateSelectionTests(RenewalTestBase):
    def test_only_active_auto_renewal_expired_memberships_of_active_members(self):
        eligible = self._membership()
        ends_today = self._membership(self._member("Eva", "Diaz"), end_date=TODAY, start_date=date(2025, 1, 3))

        self._membership(self._member("Paula", "Paused"), status=Membership.Status.PAUSED)
        self._membership(self._member("Nico", "Manual"), auto_renewal=False)
        self._membership(self._member("Flor", "Future"), end_date=date(2025, 2, 10), start_date=date(2025, 1, 10))
        self._membership(self._member("Carla", "Cancelled"), status=Membership.Status.CANCELLED)
        self._membership(self._member("Sus", "Pended", status=Member.Status.SUSPENDED))

        other_gym = Gym.objects.create(name="Norte")
        self._membership(self._member("Otro", "Gym", gym=other_gym))

        found = get_expired_auto_renewal_memberships(self.gym, TODAY)

        self.assertEqual([m.pk for m in found], [eligible.pk, ends_today.pk])

    def test_accepts_gym_primary_key(self):
        m = self._membership()
        self.assertEqual([x.pk for x in get_expired_auto_renewal_memberships(self.gym.pk, TODAY)], [m.pk])

    def test_upcoming_renewals_are_sorted_by_end_date_and_read_only(self):
        later = self._membership(self._member("B", "Later"), start_date=date(2025, 1, 9), end_date=date(2025, 2, 9))
        sooner = self._membership(self._member("A", "Sooner"), start_date=date(2025, 1, 5), end_date=date(2025, 2, 5))
        self._membership(self._member("C", "Far"), start_date=date(2025, 1, 20), end_date=date(2025, 2, 20))
        self._membership(self._member("D", "Paused"), status=Membership.Status.PAUSED, end_date=date(2025, 2, 4))
        self._membership()  # already expired

        upcoming = get_upcoming_auto_renewals(self.gym, days_ahead=7, today=TODAY)

        self.assertEqual([m.pk for m in upcoming], [sooner.pk, later.pk])
        self.assertEqual(MonthlyPayment.objects.count(), 0)


class SingleRenewalTests(RenewalTestBase):
    def test_renewal_uses_calendar_month_new_price_and_resets_attendance(self):
        m = self._membership()

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(detail["renewed"])
        self.assertIsNone(detail["error"])
        self.assertEqual(detail["old_price"], Decimal("10000.00"))
        self.assertEqual(detail["new_price"], Decimal("12000.00"))
        self.assertTrue(detail["price_changed"])

        m.refresh_from_db()
        self.assertEqual(m.start_date, date(2025, 2, 3))
        self.assertEqual(m.end_date, date(2025, 3, 3))
        self.assertEqual(m.cost, Decimal("12000.00"))
        self.assertEqual(m.current_attendances, 0)
        self.assertTrue(m.renewed_automatically)
        self.assertIsNotNone(m.renewal_date)
        self.assertEqual(m.version, 1)

        payment = MonthlyPayment.objects.get()
        self.assertEqual(detail["payment_id"], payment.pk)
        self.assertEqual(payment.amount, Decimal("12000.00"))
        self.assertEqual(payment.status, MonthlyPayment.Status.PENDING)
        self.assertEqual(payment.due_date, TODAY)
        self.assertEqual((payment.billing_year, payment.billing_month), (2025, 2))
        self.assertTrue(payment.auto_generated)
        self.assertTrue(payment.renewal_payment)
        self.assertTrue(payment.price_updated)
        self.assertEqual(payment.previous_price, Decimal("10000.00"))
        self.assertEqual(payment.member_name, "Ana Lopez")

    def test_price_falls_back_to_stored_cost(self):
        bare = Activity.objects.create(gym=self.gym, name="Yoga")
        m = self._membership(activity=bare, activity_name="Yoga")

        self.assertIsNone(get_current_activity_price(self.gym, bare.pk))
        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(detail["renewed"])
        self.assertEqual(detail["new_price"], Decimal("10000.00"))
        self.assertFalse(detail["price_changed"])
        payment = MonthlyPayment.objects.get()
        self.assertEqual(payment.amount, Decimal("10000.00"))
        self.assertFalse(payment.price_updated)

    def test_price_comes_from_active_plan_when_activity_has_none(self):
        bare = Activity.objects.create(gym=self.gym, name="Pilates")
        MembershipPlan.objects.create(gym=self.gym, activity=bare, name="Old", cost=Decimal("5000"), is_active=False)
        MembershipPlan.objects.create(gym=self.gym, activity=bare, name="Mensual", cost=Decimal("9000"))
        m = self._membership(activity=bare, activity_name="Pilates")

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertEqual(detail["new_price"], Decimal("9000.00"))
        self.assertTrue(detail["price_changed"])

    def test_membership_without_activity_keeps_cost(self):
        m = self._membership(activity=None, activity_name="")

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(detail["renewed"])
        self.assertEqual(detail["activity_name"], "Без активности")
        self.assertEqual(detail["new_price"], Decimal("10000.00"))

    def test_free_membership_renews_without_ledger_entry(self):
        bare = Activity.objects.create(gym=self.gym, name="Free")
        m = self._membership(activity=bare, cost=Decimal("0"))

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(detail["renewed"])
        self.assertIsNone(detail["payment_id"])
        self.assertEqual(MonthlyPayment.objects.count(), 0)

    def test_ledger_failure_rolls_back_membership_update(self):
        m = self._membership()

        with mock.patch("renewals.services.create_renewal_payment", side_effect=DatabaseError("ledger down")):
            detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertFalse(detail["renewed"])
        self.assertEqual(detail["error"], "ledger down")
        m.refresh_from_db()
        self.assertEqual(m.end_date, date(2025, 1, 31))
        self.assertEqual(m.cost, Decimal("10000.00"))
        self.assertEqual(m.current_attendances, 7)
        self.assertEqual(m.version, 0)
        self.assertEqual(MonthlyPayment.objects.count(), 0)

    def test_stale_membership_already_renewed_elsewhere_is_not_renewed_again(self):
        m = self._membership()
        # другой администратор успел продлить
        Membership.objects.filter(pk=m.pk).update(
            start_date=TODAY,
            end_date=date(2025, 3, 3),
            version=F("version") + 1,
        )

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertFalse(detail["renewed"])
        self.assertIn("уже продлён", detail["error"])
        m.refresh_from_db()
        self.assertEqual(m.version, 1)
        self.assertEqual(MonthlyPayment.objects.count(), 0)

    def test_conflict_is_retried_when_membership_is_still_expired(self):
        m = self._membership()
        Membership.objects.filter(pk=m.pk).update(version=F("version") + 1, current_attendances=9)

        detail = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(detail["renewed"])
        fresh = Membership.objects.get(pk=m.pk)
        self.assertEqual(fresh.version, 2)
        self.assertEqual(fresh.current_attendances, 0)
        self.assertEqual(fresh.end_date, date(2025, 3, 3))

    def test_manual_renewal_twice_in_same_month_bills_once(self):
        m = self._membership()

        first = renew_membership_with_updated_price(self.gym, m, today=TODAY)
        second = renew_membership_with_updated_price(self.gym, m, today=TODAY)

        self.assertTrue(first["renewed"])
        self.assertTrue(second["renewed"])
        self.assertIsNotNone(first["payment_id"])
        self.assertIsNone(second["payment_id"])
        self.assertEqual(MonthlyPayment.objects.count(), 1)

    def test_renewal_after_first_charge_of_same_month_does_not_double_bill(self):
        m = self._membership(start_date=date(2025, 1, 3), end_date=date(2025, 2, 3))
        payment_services.bill_membership(m)
        m.refresh_from_db()

        detail = renew_membership_with_updated_price(self.gym, m, today=date(2025, 2, 3))

        self.assertTrue(detail["renewed"])
        # январь выставлен первым платежом, продление выставляет февраль
        self.assertEqual(
            sorted(MonthlyPayment.objects.values_list("billing_month", flat=True)),
            [1, 2],
        )

    def test_late_renewal_of_membership_assigned_after_cutoff_is_billed(self):
        # 20 января: первый платёж уходит на февраль
        m = assign_membership(member=self.member, activity=self.activity, start_date=date(2025, 1, 20), cost=Decimal("10000"))
        first = MonthlyPayment.objects.get(membership=m)
        self.assertEqual((first.billing_year, first.billing_month), (2025, 2))

        result = process_all_auto_renewals(self.gym, date(2025, 2, 20))

        self.assertEqual(result["renewed_count"], 1)
        self.assertIsNotNone(result["details"][0]["payment_id"])
        renewal = MonthlyPayment.objects.get(membership=m, renewal_payment=True)
        self.assertEqual(renewal.pk, result["details"][0]["payment_id"])
        self.assertEqual((renewal.billing_year, renewal.billing_month), (2025, 3))
        self.assertEqual(renewal.due_date, date(2025, 2, 20))
        self.assertEqual(renewal.amount, Decimal("12000.00"))
        self.assertTrue(renewal.price_updated)
        self.assertEqual(renewal.previous_price, Decimal("10000.00"))
        self.assertEqual(MonthlyPayment.objects.filter(membership=m).count(), 2)

        # генерация после продления не дублирует период
        self.assertEqual(payment_services.generate_monthly_payments(self.gym)["generated_count"], 0)

    def test_renewal_after_cutoff_bills_following_month(self):
        m = self._membership(start_date=date(2025, 1, 18), end_date=date(2025, 2, 18))

        detail = renew_membership_with_updated_price(self.gym, m, today=date(2025, 2, 18))

        payment = MonthlyPayment.objects.get(pk=detail["payment_id"])
        self.assertEqual((payment.billing_year, payment.billing_month), (2025, 3))
        self.assertEqual(payment.due_date, date(2025, 2, 18))

    def test_paused_membership_and_foreign_gym_are_rejected(self):
        paused = self._membership(status=Membership.Status.PAUSED)
        other_gym = Gym.objects.create(name="Norte")

        self.assertEqual(
            renew_membership_with_updated_price(self.gym, paused, today=TODAY)["error"],
            "Абонемент не активен",
        )
        active = self._membership(self._member("Leo", "Ruiz"))
        detail = renew_membership_with_updated_price(other_gym, active, today=TODAY)
        self.assertFalse(detail["renewed"])
        self.assertEqual(detail["error"], "Абонемент принадлежит другому залу")


class BatchRenewalTests(RenewalTestBase):
    def test_empty_batch_is_success(self):
        result = process_all_auto_renewals(self.gym, TODAY)

        self.assertTrue(result["success"])
        self.assertEqual(result["renewed_count"], 0)
        self.assertEqual(result["total_amount"], Decimal("0.00"))
        self.assertEqual(result["price_update_count"], 0)
        self.assertEqual(result["errors"], [])
        self.assertEqual(result["details"], [])

    def test_batch_is_idempotent_within_a_day(self):
        self._membership()

        first = process_all_auto_renewals(self.gym, TODAY)
        second = process_all_auto_renewals(self.gym, TODAY)

        self.assertEqual(first["renewed_count"], 1)
        self.assertEqual(first["total_amount"], Decimal("12000.00"))
        self.assertEqual(first["price_update_count"], 1)
        self.assertTrue(second["success"])
        self.assertEqual(second["renewed_count"], 0)
        self.assertEqual(MonthlyPayment.objects.count(), 1)
        self.assertEqual(RenewalHistory.objects.count(), 1)

    def test_one_failure_does_not_stop_the_batch(self):
        m1 = self._membership(self._member("Uno", "A"))
        m2 = self._membership(self._member("Dos", "B"))
        m3 = self._membership(self._member("Tres", "C"))
        real_create = payment_services.create_renewal_payment

        def flaky(membership, **kwargs):
            if membership.pk == m2.pk:
                raise DatabaseError("write conflict")
            return real_create(membership, **kwargs)

        with mock.patch("renewals.services.create_renewal_payment", side_effect=flaky):
            result = process_all_auto_renewals(self.gym, TODAY)

        self.assertFalse(result["success"])
        self.assertEqual(result["renewed_count"], 2)
        self.assertEqual(result["total_amount"], Decimal("24000.00"))
        self.assertEqual(result["errors"], ["Dos B - Funcional: write conflict"])
        self.assertEqual(
            [(d["membership_id"], d["renewed"]) for d in result["details"]],
            [(m1.pk, True), (m2.pk, False), (m3.pk, True)],
        )
        m2.refresh_from_db()
        self.assertEqual(m2.end_date, date(2025, 1, 31))

        history = RenewalHistory.objects.get()
        self.assertEqual(history.execution_type, RenewalHistory.ExecutionType.AUTOMATIC)
        self.assertEqual(history.processed_memberships, 3)
        self.assertEqual(history.successful_renewals, 2)
        self.assertEqual(history.failed_renewals, 1)
        self.assertEqual(history.price_updates, 2)
        self.assertEqual(history.total_amount, Decimal("24000.00"))
        self.assertEqual(history.errors, ["Dos B - Funcional: write conflict"])
        self.assertEqual(history.details[0]["new_price"], "12000.00")
        self.assertEqual(history.details[0]["new_end_date"], "2025-03-03")

    def test_rerun_after_partial_failure_renews_only_the_failed_one(self):
        self._membership(self._member("Uno", "A"))
        failed = self._membership(self._member("Dos", "B"))
        real_create = payment_services.create_renewal_payment

        def flaky(membership, **kwargs):
            if membership.pk == failed.pk:
                raise DatabaseError("timeout")
            return real_create(membership, **kwargs)

        with mock.patch("renewals.services.create_renewal_payment", side_effect=flaky):
            process_all_auto_renewals(self.gym, TODAY)
        retry = process_all_auto_renewals(self.gym, TODAY)

        self.assertTrue(retry["success"])
        self.assertEqual([d["membership_id"] for d in retry["details"]], [failed.pk])
        self.assertEqual(MonthlyPayment.objects.count(), 2)

    def test_history_failure_is_swallowed(self):
        self._membership()

        with mock.patch("renewals.services.RenewalHistory") as history_model:
            history_model.objects.create.side_effect = DatabaseError("history down")
            result = process_all_auto_renewals(self.gym, TODAY)

        self.assertTrue(result["success"])
        self.assertEqual(result["renewed_count"], 1)
        self.assertEqual(RenewalHistory.objects.count(), 0)

    def test_candidate_query_failure_fails_the_whole_batch(self):
        with mock.patch(
            "renewals.services.get_expired_auto_renewal_memberships",
            side_effect=DatabaseError("db gone"),
        ):
            result = process_all_auto_renewals(self.gym, TODAY)

        self.assertFalse(result["success"])
        self.assertEqual(result["errors"], ["db gone"])
        self.assertEqual(result["renewed_count"], 0)
        self.assertEqual(result["details"], [])

    def test_cancel_is_checked_between_memberships(self):
        first = self._membership(self._member("Uno", "A"))
        second = self._membership(self._member("Dos", "B"))
        cancel = mock.Mock()
        cancel.is_set.side_effect = [False, True]

        result = process_all_auto_renewals(self.gym, TODAY, cancel=cancel)

        self.assertTrue(result["cancelled"])
        self.assertEqual(result["renewed_count"], 1)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.end_date, date(2025, 3, 3))
        self.assertEqual(second.end_date, date(2025, 1, 31))

    @override_settings(RENEWAL_THROTTLE_SECONDS=0.1)
    def test_throttle_sleeps_between_memberships(self):
        for name in ("Uno", "Dos", "Tres"):
            self._membership(self._member(name, "X"))

        with mock.patch("renewals.services.time.sleep") as sleep:
            process_all_auto_renewals(self.gym, TODAY)

        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(0.1)

    def test_summary_is_sent_to_telegram_when_something_happened(self):
        self._membership()

        with mock.patch("renewals.services.tg_send") as send:
            process_all_auto_renewals(self.gym, TODAY)
            process_all_auto_renewals(self.gym, TODAY)

        send.assert_called_once()
        self.assertIn("Продлено: <b>1</b>", send.call_args.args[0])


class ReportTests(RenewalTestBase):
    def test_history_is_most_recent_first_and_limited(self):
        for n in range(3):
            RenewalHistory.objects.create(gym=self.gym, processed_memberships=n)
        RenewalHistory.objects.create(gym=Gym.objects.create(name="Norte"))

        rows = get_renewal_history(self.gym, limit=2)

        self.assertEqual([r.processed_memberships for r in rows], [2, 1])

    def test_expiration_stats(self):
        self._membership()
        self._membership(self._member("B", "Week"), start_date=date(2025, 1, 6), end_date=date(2025, 2, 6))
        self._membership(self._member("C", "Month"), start_date=date(2025, 1, 20), end_date=date(2025, 2, 20), auto_renewal=False)
        self._membership(self._member("D", "Paused"), status=Membership.Status.PAUSED)

        stats = get_membership_expiration_stats(self.gym, TODAY)

        self.assertEqual(stats["total_count"], 4)
        self.assertEqual(stats["active_count"], 3)
        self.assertEqual(stats["auto_renewal_count"], 2)
        self.assertEqual(stats["expired_count"], 1)
        self.assertEqual(stats["expiring_this_week"], 1)
        self.assertEqual(stats["expiring_this_month"], 1)

    def test_renewal_status(self):
        self.assertEqual(get_renewal_status(date(2025, 2, 1), TODAY), {"status": "expired", "days": -2})
        self.assertEqual(get_renewal_status(TODAY, TODAY)["status"], "today")
        self.assertEqual(get_renewal_status(date(2025, 2, 10), TODAY)["status"], "soon")
        self.assertEqual(get_renewal_status(date(2025, 2, 11), TODAY)["status"], "scheduled")


class ProcessRenewalsCommandTests(RenewalTestBase):
    def test_dry_run_lists_without_writing(self):
        self._membership()
        out = StringIO()

        call_command("process_renewals", "--gym", str(self.gym.pk), "--date", "2025-02-03", "--dry-run", stdout=out)

        self.assertIn("1 to renew", out.getvalue())
        self.assertEqual(Membership.objects.get().end_date, date(2025, 1, 31))

    def test_command_renews_and_records_manual_run(self):
        self._membership()
        out = StringIO()

        call_command("process_renewals", "--gym", str(self.gym.pk), "--date", "2025-02-03", stdout=out)

        self.assertIn("renewed 1", out.getvalue())
        self.assertEqual(RenewalHistory.objects.get().execution_type, RenewalHistory.ExecutionType.MANUAL)
