from django.core.management.base import BaseCommand

from ledger_core.services.reconciliation import reconcile_party_balances


class Command(BaseCommand):
    help = "Compare cached customer/vendor balances with the ledger."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",  # Define flag
            action="store_true",
            help="Rewrite drifted balances with the recomputed value",
        )

    def handle(self, *args, **options):
        fix = options["fix"]  # Read argument from add_arguments()
        self.stdout.write(self.style.NOTICE("Reconciling party balances..."))
        drifted = reconcile_party_balances(fix=fix)

        for row in drifted:
            self.stdout.write(self.style.WARNING(
                f"{row['party_type']} #{row['party_id']}: drift {row['drift']}"))
        if not drifted:
            self.stdout.write(self.style.SUCCESS("All balances match the ledger."))
        elif fix:
            self.stdout.write(self.style.SUCCESS(
                f"Corrected {len(drifted)} balance(s)."))
