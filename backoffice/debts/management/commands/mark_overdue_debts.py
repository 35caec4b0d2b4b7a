from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from backoffice.debts.services import mark_overdue


class Command(BaseCommand):
    help = 'Marks unpaid supplier debts past their due date as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the debts without saving changes',
        )
        parser.add_argument(
            '--date',
            help='Reference date (YYYY-MM-DD), defaults to today',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        today = None
        if options.get('date'):
            try:
                today = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid --date value: {options['date']}")

        with transaction.atomic():
            debt_ids = mark_overdue(today=today, dry_run=dry_run)

        if not debt_ids:
            self.stdout.write("No overdue debts found.")
            return

        for debt_id in debt_ids:
            self.stdout.write(f"  - {debt_id}")
        if dry_run:
            self.stdout.write(self.style.WARNING(f"\n{len(debt_ids)} debts would be marked overdue."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\n{len(debt_ids)} debts marked overdue."))
