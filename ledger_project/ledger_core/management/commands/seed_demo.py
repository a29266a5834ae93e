from django.core.management import call_command
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Seeds the database with a demo ledger (wraps create_demo_tenant)."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--company",  # Define flag
            type=str,
            default="Demo Ltd",
            help="Name of the demo company (default: Demo Ltd)",
        )
        parser.add_argument(
            "--username",
            type=str,
            default="demo",
            help="Owner of the demo company (default: demo)",
        )

    def handle(self, *args, **options):
        company_name = options["company"]  # Read argument from add_arguments()

        self.stdout.write(self.style.NOTICE(
            f"Seeding demo ledger for {company_name}..."))
        call_command(
            "create_demo_tenant",
            company_name=company_name,
            username=options["username"],
        )
        self.stdout.write(self.style.SUCCESS("Demo ledger seeded successfully!"))
