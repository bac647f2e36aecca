from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse

from activities.models import Activity
from members.models import Member
from memberships.models import Membership
from renewals.models import RenewalHistory

from .models import Gym


class GymLocalDateTests(TestCase):
    # 02:00 UTC 1 марта = ещё 28 февраля в Буэнос-Айресе
    NOW = datetime(2025, 3, 1, 2, 0, tzinfo=dt_timezone.utc)

    def test_localdate_uses_gym_timezone(self):
        gym = Gym.objects.create(name="Centro", timezone="America/Argentina/Buenos_Aires")
        utc_gym = Gym.objects.create(name="Londres", timezone="UTC")

        with mock.patch("django.utils.timezone.now", return_value=self.NOW):
            self.assertEqual(gym.localdate(), date(2025, 2, 28))
            self.assertEqual(utc_gym.localdate(), date(2025, 3, 1))

    @override_settings(TIME_ZONE="UTC")
    def test_blank_timezone_falls_back_to_settings(self):
        gym = Gym.objects.create(name="Centro")

        with mock.patch("django.utils.timezone.now", return_value=self.NOW):
            self.assertEqual(gym.localdate(), date(2025, 3, 1))


class GymTimezoneValidationTests(TestCase):
    def test_unknown_timezone_is_rejected(self):
        for name in ("Mars/Olympus_Mons", "../etc/passwd"):
            with self.assertRaises(ValidationError) as ctx:
                Gym(name="Centro", timezone=name).full_clean()
            self.assertIn("timezone", ctx.exception.message_dict)

    def test_known_or_blank_timezone_is_accepted(self):
        Gym(name="Centro", timezone="America/Argentina/Buenos_Aires").full_clean()
        Gym(name="Centro", timezone="").full_clean()


@override_settings(RENEWAL_THROTTLE_SECONDS=0, TELEGRAM_NOTIFICATIONS=False)
class GymAdminActionTests(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro")
        activity = Activity.objects.create(gym=self.gym, name="Yoga", price=Decimal("8000"))
        member = Member.objects.create(gym=self.gym, first_name="Ana", last_name="Lopez")
        self.membership = Membership.objects.create(
            member=member,
            activity=activity,
            activity_name=activity.name,
            cost=Decimal("8000"),
            start_date=date(2020, 1, 1),
            end_date=date(2020, 2, 1),
        )
        root = get_user_model().objects.create_superuser(username="root", password="pass12345")
        self.client.force_login(root)

    def test_manual_renewal_action(self):
        response = self.client.post(
            reverse("admin:gyms_gym_changelist"),
            {"action": "run_auto_renewals", "_selected_action": [self.gym.pk]},
        )

        self.assertEqual(response.status_code, 302)
        self.membership.refresh_from_db()
        self.assertEqual(self.membership.version, 1)
        history = RenewalHistory.objects.get(gym=self.gym)
        self.assertEqual(history.execution_type, RenewalHistory.ExecutionType.MANUAL)
