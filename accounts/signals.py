import logging

from django.conf import settings
from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from payments.services import generate_monthly_payments
from renewals.services import process_all_auto_renewals


logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def run_billing_on_admin_login(sender, request, user, **kwargs):
    """Вход администратора зала запускает продления и генерацию платежей.

    Сначала продления (они выставляют платёж за новый период),
    затем генерация закрывает то, что ещё не выставлено.
    """
    if not getattr(settings, "RENEWALS_ON_LOGIN", False):
        return

    gym = getattr(user, "gym", None)
    if gym is None or not gym.is_active:
        return

    renewals = process_all_auto_renewals(gym)
    generation = generate_monthly_payments(gym)
    logger.info(
        "Login billing pass for gym %s by %s: renewed=%s generated=%s",
        gym.pk,
        user.pk,
        renewals["renewed_count"],
        generation["generated_count"],
    )
