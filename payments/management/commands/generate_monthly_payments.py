from django.core.management.base import BaseCommand, CommandError

from gyms.models import Gym
from payments.services import generate_monthly_payments


class Command(BaseCommand):
    help = "Bill not yet billed periods of active auto-renewal memberships (safe to re-run)"

    def add_arguments(self, parser):
        parser.add_argument("--gym", type=int, action="append", help="Gym id (repeatable). Default: all active gyms")

    def handle(self, *args, **options):
        gyms = Gym.objects.filter(is_active=True)
        if options.get("gym"):
            gyms = Gym.objects.filter(pk__in=options["gym"])

        failed = False
        for gym in gyms:
            result = generate_monthly_payments(gym)
            line = f"{gym}: generated {result['generated_count']} for {result['total_amount']}"
            if result["success"]:
                self.stdout.write(self.style.SUCCESS(line))
            else:
                failed = True
                self.stdout.write(self.style.WARNING(f"{line}, errors {len(result['errors'])}"))
                for error in result["errors"]:
                    self.stderr.write(f"  {error}")

        if failed:
            raise CommandError("Monthly generation finished with errors")
