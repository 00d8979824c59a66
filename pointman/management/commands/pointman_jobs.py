"""Management command to run scheduler jobs once (manual reconciliation)."""

from django.core.management.base import BaseCommand, CommandError

from pointman.scheduler import default_scheduler


class Command(BaseCommand):
    help = "Run Pointman scheduler jobs now (all jobs, or the ones named)"

    def add_arguments(self, parser):
        parser.add_argument(
            "jobs",
            nargs="*",
            help="Job names (default: all). See --list.",
        )
        parser.add_argument(
            "--list",
            action="store_true",
            help="List available jobs and exit",
        )

    def handle(self, *args, **options):
        scheduler = default_scheduler()

        if options["list"]:
            for job in scheduler.jobs.values():
                self.stdout.write(f"{job.name} ({job.cadence})")
            return

        names = options["jobs"] or list(scheduler.jobs)
        unknown = [name for name in names if name not in scheduler.jobs]
        if unknown:
            raise CommandError(f"Unknown job(s): {', '.join(unknown)}")

        failed = 0
        for name in names:
            result = scheduler.run_job(name)
            if result.ok:
                self.stdout.write(
                    self.style.SUCCESS(f"{name}: {result.affected} record(s) affected.")
                )
            else:
                failed += 1
                self.stderr.write(self.style.ERROR(f"{name}: failed ({result.error})"))

        if failed:
            raise CommandError(f"{failed} job(s) failed")
