from django.core.management.base import BaseCommand, CommandError

from crm_core.alerts.scheduler import run_alert_generator, run_security_monitor


class Command(BaseCommand):
    help = "Run one alert evaluation pass. Default: business rules. Use --security or --all."

    def add_arguments(self, parser):
        parser.add_argument("--security", action="store_true", help="Run the security monitor instead")
        parser.add_argument("--all", action="store_true", help="Run business rules and the security monitor")
        parser.add_argument("--no-email", action="store_true", help="Do not email newly created alerts")

    def handle(self, *args, **options):
        runners = []
        if options["all"]:
            runners = [run_alert_generator, run_security_monitor]
        elif options["security"]:
            runners = [run_security_monitor]
        else:
            runners = [run_alert_generator]

        notify = False if options["no_email"] else None

        for runner in runners:
            try:
                summary = runner(notify=notify)
            except Exception as exc:
                raise CommandError(f"{runner.__name__} failed: {exc}") from exc

            self.stdout.write(
                f"{summary.job}: rules={summary.rules_evaluated} "
                f"issues={summary.issues_found} created={summary.alerts_created} "
                f"emails={summary.emails_sent}"
            )
