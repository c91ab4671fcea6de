from django.core.management.base import BaseCommand

from crm_core.alerts.rules import DEFAULT_ALERT_RULES
from crm_core.models import AlertRule


class Command(BaseCommand):
    help = "Create the default alert rules. Existing rules are left untouched unless --reset."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Overwrite existing rules with the default definitions",
        )

    def handle(self, *args, **options):
        created = updated = 0

        for definition in DEFAULT_ALERT_RULES:
            fields = {k: v for k, v in definition.items() if k != "id"}
            fields.setdefault("enabled", True)

            if options["reset"]:
                _, was_created = AlertRule.objects.update_or_create(
                    id=definition["id"], defaults=fields
                )
            else:
                _, was_created = AlertRule.objects.get_or_create(
                    id=definition["id"], defaults=fields
                )

            if was_created:
                created += 1
            elif options["reset"]:
                updated += 1

        self.stdout.write(f"alert rules: created={created} updated={updated}")
