"""
Management command to audit stock and balance caches against their ledgers.

Usage:
    python manage.py reconcile_ledgers
    python manage.py reconcile_ledgers --dry-run
    python manage.py reconcile_ledgers --fix
"""

from django.core.management.base import BaseCommand

from ricemill.db import Store
from ricemill.models import Counterparty, Variety
from ricemill.service import Mill


class Command(BaseCommand):
    """Replay adjustments and invoices/payments, report (and optionally fix) drift."""

    help = 'Checks variety stock and counterparty balances against their ledgers'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Overwrite drifted caches with the recomputed values',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only report drift, never write (overrides --fix)',
        )
        parser.add_argument(
            '--database',
            default='default',
            help='Database alias to reconcile',
        )

    def handle(self, *args, **options):
        fix = options['fix'] and not options['dry_run']
        mill = Mill(Store(options['database']))
        drifted = 0

        for variety in mill.store.objects(Variety).order_by('pk'):
            replayed = mill.ledger.replay(variety.pk)
            if replayed == variety.current_stock:
                continue
            drifted += 1
            self.stdout.write(
                f'Variety {variety.pk} ({variety.name}): '
                f'cached {variety.current_stock} vs ledger {replayed}'
            )
            if fix:
                mill.recalculate_stock(variety.pk)

        for counterparty in mill.store.objects(Counterparty).order_by('pk'):
            report = mill.balances.report(counterparty.pk)
            if report.is_consistent:
                continue
            drifted += 1
            self.stdout.write(
                f'Counterparty {counterparty.pk} ({counterparty.name}): '
                f'value {report.total_value} vs {report.invoiced_value}, '
                f'paid {report.total_paid} vs {report.paid_value}, '
                f'pending {report.total_pending} vs {report.expected_pending}'
            )
            if fix:
                mill.recompute_balance(counterparty.pk, fix=True)

        if not drifted:
            self.stdout.write(self.style.SUCCESS('All ledgers consistent'))
        elif fix:
            self.stdout.write(self.style.SUCCESS(f'{drifted} record(s) fixed'))
        else:
            self.stdout.write(self.style.WARNING(f'{drifted} record(s) drifted'))
