from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from activities.models import Activity
from core.money import add_months
from gyms.models import Gym
from members.models import Member
from memberships.models import Membership
from payments.models import MonthlyPayment
from payments.services import billing_period_for
from renewals.models import RenewalHistory


@override_settings(RENEWALS_ON_LOGIN=True, RENEWAL_THROTTLE_SECONDS=0, TELEGRAM_NOTIFICATIONS=False)
class LoginBillingTriggerTests(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro", timezone="America/Argentina/Buenos_Aires")
        activity = Activity.objects.create(gym=self.gym, name="Funcional", price=Decimal("12000"))
        member = Member.objects.create(gym=self.gym, first_name="Ana", last_name="Lopez")

        self.today = self.gym.localdate()
        end = self.today - timedelta(days=1)
        self.membership = Membership.objects.create(
            member=member,
            activity=activity,
            activity_name=activity.name,
            cost=Decimal("10000"),
            start_date=add_months(end, -1),
            end_date=end,
        )
        self.admin = get_user_model().objects.create_user(
            username="recepcion",
            password="pass12345",
            is_staff=True,
            gym=self.gym,
        )

    def test_gym_admin_login_renews_expired_memberships(self):
        self.client.force_login(self.admin)

        self.membership.refresh_from_db()
        self.assertEqual(self.membership.start_date, self.today)
        self.assertEqual(self.membership.end_date, add_months(self.today, 1))
        self.assertEqual(self.membership.cost, Decimal("12000.00"))
        year, month = billing_period_for(self.today)
        renewal = MonthlyPayment.objects.get(membership=self.membership, renewal_payment=True)
        self.assertEqual((renewal.billing_year, renewal.billing_month), (year, month))
        self.assertEqual(renewal.due_date, self.today)
        self.assertEqual(RenewalHistory.objects.filter(gym=self.gym).count(), 1)

    def test_second_login_does_not_renew_again(self):
        self.client.force_login(self.admin)
        self.client.logout()
        self.client.force_login(self.admin)

        self.membership.refresh_from_db()
        self.assertEqual(self.membership.version, 1)
        self.assertEqual(RenewalHistory.objects.count(), 1)

    def test_superuser_without_gym_triggers_nothing(self):
        root = get_user_model().objects.create_superuser(username="root", password="pass12345")

        self.client.force_login(root)

        self.membership.refresh_from_db()
        self.assertEqual(self.membership.version, 0)
        self.assertFalse(MonthlyPayment.objects.exists())

    @override_settings(RENEWALS_ON_LOGIN=False)
    def test_trigger_can_be_switched_off(self):
        self.client.force_login(self.admin)

        self.membership.refresh_from_db()
        self.assertEqual(self.membership.version, 0)

    def test_inactive_gym_is_skipped(self):
        self.gym.is_active = False
        self.gym.save()

        self.client.force_login(self.admin)

        self.membership.refresh_from_db()
        self.assertEqual(self.membership.version, 0)
