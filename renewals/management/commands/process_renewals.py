from datetime import date

from django.core.management.base import BaseCommand, CommandError

from gyms.models import Gym
from renewals.models import RenewalHistory
from renewals.services import get_expired_auto_renewal_memberships, process_all_auto_renewals


class Command(BaseCommand):
    help = "Renew expired auto-renewal memberships (safe to re-run the same day)"

    def add_arguments(self, parser):
        parser.add_argument("--gym", type=int, action="append", help="Gym id (repeatable). Default: all active gyms")
        parser.add_argument("--date", help="Treat this date (YYYY-MM-DD) as today")
        parser.add_argument("--dry-run", action="store_true", help="Only list memberships that would be renewed")

    def handle(self, *args, **options):
        today = None
        if options.get("date"):
            try:
                today = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError("--date must be YYYY-MM-DD")

        gyms = Gym.objects.filter(is_active=True)
        if options.get("gym"):
            gyms = Gym.objects.filter(pk__in=options["gym"])
        if not gyms.exists():
            raise CommandError("No gyms to process")

        failed = False
        for gym in gyms:
            if options["dry_run"]:
                candidates = get_expired_auto_renewal_memberships(gym, today)
                self.stdout.write(f"{gym}: {len(candidates)} to renew")
                for m in candidates:
                    self.stdout.write(f"  #{m.pk} {m.member.get_full_name()} - {m.activity_name} (until {m.end_date})")
                continue

            result = process_all_auto_renewals(
                gym,
                today,
                execution_type=RenewalHistory.ExecutionType.MANUAL,
            )
            line = (
                f"{gym}: renewed {result['renewed_count']}, total {result['total_amount']}, "
                f"price updates {result['price_update_count']}, errors {len(result['errors'])}"
            )
            if result["success"]:
                self.stdout.write(self.style.SUCCESS(line))
            else:
                failed = True
                self.stdout.write(self.style.WARNING(line))
                for error in result["errors"]:
                    self.stderr.write(f"  {error}")

        if failed:
            raise CommandError("Some renewals failed, see errors above")
