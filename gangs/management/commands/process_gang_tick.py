from django.core.management.base import BaseCommand
from django.utils import timezone
from time import sleep

from gangs.tasks import run_tick


class Command(BaseCommand):
    help = "Complete finished missions and pay territory income"

    def add_arguments(self, parser):
        parser.add_argument("--tick", action="store_true", help="Run a single tick")
        parser.add_argument("--loop", action="store_true", help="Run forever with interval seconds")
        parser.add_argument("--interval", type=int, default=60, help="Seconds between ticks in --loop")

    def handle(self, *args, **options):
        loop = options["loop"]
        interval = options["interval"]
        if loop:
            self.stdout.write(self.style.SUCCESS("Starting gang tick loop"))
            while True:
                completed, paid = run_tick(now=timezone.now())
                self.stdout.write(f"Completed {completed} missions, paid {paid} income")
                sleep(interval)
        else:
            completed, paid = run_tick(now=timezone.now())
            self.stdout.write(f"Completed {completed} missions, paid {paid} income")
            self.stdout.write(self.style.SUCCESS("Processed one tick"))
