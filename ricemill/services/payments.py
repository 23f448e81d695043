"""
Payments — per-invoice payments and FIFO allocation over open invoices.

Lock order (shared with the rest of the package):
    counterparty → its invoices (oldest first)
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured

from ricemill.conf import OVERPAYMENT_POLICIES, ricemill_settings
from ricemill.db import Store
from ricemill.exceptions import NotFound, ValidationError
from ricemill.models.enums import PaymentMethod
from ricemill.models.invoice import Invoice, Payment
from ricemill.quantities import ZERO, as_money
from ricemill.services.balances import BalanceBook

logger = logging.getLogger('ricemill')


@dataclass(frozen=True)
class PaymentMeta:
    """How the money moved. Empty method falls back to DEFAULT_PAYMENT_METHOD."""

    method: str = ''
    reference: str = ''
    notes: str = ''

    def resolved_method(self) -> str:
        method = self.method or ricemill_settings.DEFAULT_PAYMENT_METHOD
        if method not in PaymentMethod.values:
            raise ValidationError('INVALID_METHOD', method=method)
        return method


@dataclass(frozen=True)
class AppliedPayment:
    invoice_id: int
    amount: Decimal


@dataclass
class AllocationResult:
    """Outcome of PaymentAllocator.allocate()."""

    counterparty_id: int
    amount: Decimal
    applied: list[AppliedPayment] = field(default_factory=list)
    remaining_unapplied: Decimal = ZERO
    credited: Decimal = ZERO
    payments: list[Payment] = field(default_factory=list)

    @property
    def applied_total(self) -> Decimal:
        return sum((a.amount for a in self.applied), ZERO)


def write_payment(store: Store, counterparty, amount: Decimal, meta: PaymentMeta,
                  invoice=None, user=None, notes: str | None = None) -> Payment:
    """Persist one Payment row. Balances are the caller's business."""
    return store.objects(Payment).create(
        counterparty=counterparty,
        invoice=invoice,
        amount=amount,
        method=meta.resolved_method(),
        reference=meta.reference,
        notes=meta.notes if notes is None else notes,
        user=user,
    )


def _overpayment_policy() -> str:
    policy = ricemill_settings.OVERPAYMENT_POLICY
    if policy not in OVERPAYMENT_POLICIES:
        raise ImproperlyConfigured(
            f"RICEMILL['OVERPAYMENT_POLICY'] must be one of {OVERPAYMENT_POLICIES}, got {policy!r}"
        )
    return policy


class PaymentAllocator:
    """Record money against invoices and keep balances in step."""

    def __init__(self, store: Store | None = None, balances: BalanceBook | None = None):
        self.store = store or Store()
        self.balances = balances or BalanceBook(self.store)

    def record_invoice_payment(self, invoice_id, amount, meta: PaymentMeta | None = None,
                               user=None) -> Payment:
        """
        Pay part or all of one invoice.

        Raises:
            ValidationError('INVALID_AMOUNT'): amount <= 0
            NotFound('INVOICE_NOT_FOUND'): no such invoice
            ValidationError('AMOUNT_EXCEEDS_PENDING'): amount > invoice.pending
        """
        amount = as_money(amount, 'amount')
        if amount <= 0:
            raise ValidationError('INVALID_AMOUNT', amount=amount)
        meta = meta or PaymentMeta()
        meta.resolved_method()

        with self.store.atomic():
            try:
                counterparty_id = self.store.objects(Invoice).values_list(
                    'counterparty_id', flat=True
                ).get(pk=invoice_id)
            except Invoice.DoesNotExist:
                raise NotFound('INVOICE_NOT_FOUND', invoice_id=invoice_id) from None

            counterparty = self.balances.lock(counterparty_id)
            invoice = self.store.locked(Invoice).get(pk=invoice_id)

            if amount > invoice.pending:
                raise ValidationError(
                    'AMOUNT_EXCEEDS_PENDING',
                    invoice_id=invoice.pk,
                    pending=invoice.pending,
                    requested=amount,
                )

            invoice.paid += amount
            invoice.pending -= amount
            invoice.save(using=self.store.alias, update_fields=['paid', 'pending'])

            payment = write_payment(self.store, counterparty, amount, meta, invoice=invoice, user=user)
            self.balances.apply(counterparty, paid=amount, pending=-amount)

            logger.info(
                "payment.recorded",
                extra={
                    "invoice_id": invoice.pk,
                    "counterparty_id": counterparty.pk,
                    "amount": str(amount),
                    "pending": str(invoice.pending),
                },
            )
            return payment

    def allocate(self, counterparty_id, amount, meta: PaymentMeta | None = None,
                 user=None, itemize: bool | None = None) -> AllocationResult:
        """
        Spread a lump-sum payment over a counterparty's open invoices, oldest first.

        Each invoice gets min(remaining, invoice.pending). What is left after
        the last open invoice is handled by OVERPAYMENT_POLICY:

        - credit: recorded as an unallocated payment, the whole amount moves
          the aggregate, the excess shows up as Counterparty.credit_balance
          and in both remaining_unapplied and credited
        - reject: ValidationError('OVERPAYMENT'), nothing persisted
        - cap:    only the allocated part is recorded, the rest is returned
                  in remaining_unapplied

        Args:
            itemize: One Payment row per touched invoice (True) or one
                counterparty-level row for the allocated part (False).
                None = ITEMIZE_ALLOCATIONS

        Raises:
            ValidationError('INVALID_AMOUNT'): amount <= 0
            NotFound('COUNTERPARTY_NOT_FOUND')
            ValidationError('NO_PENDING_INVOICES')
            ValidationError('OVERPAYMENT'): policy is reject and amount > total pending
        """
        amount = as_money(amount, 'amount')
        if amount <= 0:
            raise ValidationError('INVALID_AMOUNT', amount=amount)
        meta = meta or PaymentMeta()
        meta.resolved_method()
        if itemize is None:
            itemize = ricemill_settings.ITEMIZE_ALLOCATIONS
        policy = _overpayment_policy()

        with self.store.atomic():
            counterparty = self.balances.lock(counterparty_id)
            invoices = list(self.store.locked(Invoice).filter(counterparty=counterparty).open())

            if not invoices:
                raise ValidationError('NO_PENDING_INVOICES', counterparty_id=counterparty.pk)

            open_total = sum((i.pending for i in invoices), ZERO)
            if amount > open_total and policy == 'reject':
                raise ValidationError(
                    'OVERPAYMENT',
                    counterparty_id=counterparty.pk,
                    pending=open_total,
                    requested=amount,
                )

            result = AllocationResult(counterparty_id=counterparty.pk, amount=amount)
            remaining = amount
            touched = []
            for invoice in invoices:
                if remaining <= 0:
                    break
                portion = min(remaining, invoice.pending)
                invoice.paid += portion
                invoice.pending -= portion
                invoice.save(using=self.store.alias, update_fields=['paid', 'pending'])
                touched.append((invoice, portion))
                result.applied.append(AppliedPayment(invoice_id=invoice.pk, amount=portion))
                remaining -= portion

            if itemize:
                for invoice, portion in touched:
                    result.payments.append(
                        write_payment(self.store, counterparty, portion, meta, invoice=invoice, user=user)
                    )
            else:
                result.payments.append(
                    write_payment(self.store, counterparty, amount - remaining, meta, user=user)
                )

            accepted = amount - remaining
            if remaining > 0 and policy == 'credit':
                result.payments.append(
                    write_payment(
                        self.store, counterparty, remaining, meta, user=user,
                        notes=meta.notes or 'Unapplied overpayment (credit)',
                    )
                )
                accepted = amount
                result.credited = remaining

            self.balances.apply(counterparty, paid=accepted, pending=-accepted)
            result.remaining_unapplied = remaining

            logger.info(
                "payment.allocated",
                extra={
                    "counterparty_id": counterparty.pk,
                    "amount": str(amount),
                    "invoices": len(result.applied),
                    "unapplied": str(remaining),
                    "policy": policy,
                },
            )
            return result
