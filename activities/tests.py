from decimal import Decimal

from django.test import TestCase

from gyms.models import Gym

from .models import Activity, MembershipPlan
from .services import get_active_plan, get_current_activity_price


class ActivityPriceTests(TestCase):
    def setUp(self):
        self.gym = Gym.objects.create(name="Centro")

    def test_empty_activity_id_returns_none_without_queries(self):
        with self.assertNumQueries(0):
            self.assertIsNone(get_current_activity_price(self.gym, ""))
            self.assertIsNone(get_current_activity_price(self.gym, None))

    def test_price_fields_are_checked_in_priority_order(self):
        a = Activity.objects.create(
            gym=self.gym,
            name="Crossfit",
            price=Decimal("15000"),
            cost=Decimal("14000"),
            monthly_price=Decimal("13000"),
        )
        self.assertEqual(get_current_activity_price(self.gym, a.pk), Decimal("15000.00"))

        a.price = Decimal("0")
        a.save()
        self.assertEqual(get_current_activity_price(self.gym, a.pk), Decimal("14000.00"))

        a.cost = Decimal("-1")
        a.save()
        self.assertEqual(get_current_activity_price(self.gym, a.pk), Decimal("13000.00"))

    def test_falls_back_to_active_plan(self):
        a = Activity.objects.create(gym=self.gym, name="Yoga")
        MembershipPlan.objects.create(gym=self.gym, activity=a, name="Vieja", cost=Decimal("7000"), is_active=False)
        MembershipPlan.objects.create(gym=self.gym, activity=a, name="Mensual", cost=Decimal("8000"))

        self.assertEqual(get_current_activity_price(self.gym, a.pk), Decimal("8000.00"))
        self.assertEqual(get_active_plan(self.gym, a.pk).name, "Mensual")

    def test_zero_plan_cost_is_not_a_price(self):
        a = Activity.objects.create(gym=self.gym, name="Libre")
        MembershipPlan.objects.create(gym=self.gym, activity=a, name="Gratis", cost=Decimal("0"))

        self.assertIsNone(get_current_activity_price(self.gym, a.pk))

    def test_activity_of_another_gym_is_ignored(self):
        other = Gym.objects.create(name="Norte")
        a = Activity.objects.create(gym=other, name="Box", price=Decimal("9000"))

        self.assertIsNone(get_current_activity_price(self.gym, a.pk))
        self.assertEqual(get_current_activity_price(other, a.pk), Decimal("9000.00"))

    def test_unknown_activity_returns_none(self):
        self.assertIsNone(get_current_activity_price(self.gym, 987654))
