"""
Invoices — purchases and sales through one code path.

A purchase credits stock and binds a supplier; a sale debits stock
(checked) and binds a buyer. Everything else is shared.

Lock order: variety → counterparty.
"""

import logging
from dataclasses import dataclass

from ricemill.db import Store
from ricemill.exceptions import NotFound, ValidationError
from ricemill.models.counterparty import Counterparty
from ricemill.models.enums import CounterpartyRole, CustomerType
from ricemill.models.invoice import Invoice
from ricemill.quantities import ZERO, as_money, as_price, as_weight, line_total
from ricemill.rules import invoice_rules
from ricemill.services.balances import BalanceBook
from ricemill.services.ledger import StockLedger
from ricemill.services.payments import PaymentMeta, write_payment

logger = logging.getLogger('ricemill')


@dataclass(frozen=True)
class CounterpartyRef:
    """
    Who the invoice is with.

    Either an existing id, or a phone that is looked up within the role
    and, when unknown, registered with the given name and address.
    """

    id: int | None = None
    phone: str = ''
    name: str = ''
    address: str = ''


class InvoiceRecorder:
    """Create invoices and register counterparties."""

    def __init__(self, store: Store | None = None, ledger: StockLedger | None = None,
                 balances: BalanceBook | None = None):
        self.store = store or Store()
        self.ledger = ledger or StockLedger(self.store)
        self.balances = balances or BalanceBook(self.store)

    def create(self, kind, counterparty, variety_id, quantity, unit_price,
               paid_amount=ZERO, payment: PaymentMeta | None = None, user=None) -> Invoice:
        """
        Record a purchase or sale.

        In one transaction:
        1. Lock the variety; for a sale, check stock covers the quantity
        2. Resolve (or register) the counterparty
        3. Persist the invoice with total = quantity * unit_price,
           pending = total - paid_amount
        4. Post the stock adjustment referencing the invoice
        5. Move the counterparty aggregate by (total, paid_amount)
        6. Write a Payment for paid_amount when it is positive

        Args:
            kind: 'purchase' or 'sale'
            counterparty: CounterpartyRef or an existing counterparty id

        Raises:
            ValidationError: bad kind, quantity, price or paid amount;
                unresolvable counterparty
            NotFound('VARIETY_NOT_FOUND' | 'COUNTERPARTY_NOT_FOUND')
            InsufficientStock: sale larger than current stock
        """
        rules = invoice_rules(kind)
        quantity = as_weight(quantity, 'quantity')
        if quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', requested=quantity)
        unit_price = as_price(unit_price, 'unit_price')
        if unit_price <= 0:
            raise ValidationError('INVALID_PRICE', unit_price=unit_price)
        paid = as_money(paid_amount, 'paid_amount')
        if paid < 0:
            raise ValidationError('INVALID_AMOUNT', amount=paid)
        total = line_total(quantity, unit_price)
        if paid > total:
            raise ValidationError('PAID_EXCEEDS_TOTAL', paid=paid, total=total)
        payment = payment or PaymentMeta()
        payment.resolved_method()
        if not isinstance(counterparty, CounterpartyRef):
            counterparty = CounterpartyRef(id=counterparty)

        with self.store.atomic():
            variety = self.ledger.lock_variety(variety_id)
            party = self.resolve_counterparty(counterparty, rules.role)

            invoice = self.store.objects(Invoice).create(
                kind=rules.kind,
                counterparty=party,
                variety=variety,
                quantity=quantity,
                unit_price=unit_price,
                total=total,
                paid=paid,
                pending=total - paid,
                user=user,
            )
            self.ledger.adjust(
                variety.pk,
                rules.stock_sign * quantity,
                rules.reason(quantity, party),
                user=user,
                reference=invoice,
                allow_negative=False if rules.requires_stock else None,
            )
            self.balances.apply(party, value=total, paid=paid, pending=total - paid)
            if paid > 0:
                write_payment(self.store, party, paid, payment, invoice=invoice, user=user)

            logger.info(
                "invoice.created",
                extra={
                    "invoice_id": invoice.pk,
                    "kind": rules.kind,
                    "variety_id": variety.pk,
                    "counterparty_id": party.pk,
                    "qty": str(quantity),
                    "total": str(total),
                    "paid": str(paid),
                },
            )
            return invoice

    def resolve_counterparty(self, ref: CounterpartyRef, role: str) -> Counterparty:
        """Locked counterparty for ``ref``, registering it by phone when new."""
        if ref.id is not None:
            try:
                party = self.store.locked(Counterparty).get(pk=ref.id)
            except Counterparty.DoesNotExist:
                raise NotFound('COUNTERPARTY_NOT_FOUND', counterparty_id=ref.id) from None
            if party.role != role:
                raise ValidationError(
                    'COUNTERPARTY_ROLE_MISMATCH',
                    counterparty_id=party.pk,
                    current=party.role,
                    expected=role,
                )
            return party

        phone = (ref.phone or '').strip()
        if not phone:
            raise ValidationError('COUNTERPARTY_REQUIRED')

        party = self.store.locked(Counterparty).filter(role=role, phone=phone).first()
        if party is not None:
            return party

        name = (ref.name or '').strip()
        if not name:
            raise ValidationError('COUNTERPARTY_NAME_REQUIRED', phone=phone)

        party = self.store.objects(Counterparty).create(
            role=role,
            name=name,
            phone=phone,
            address=(ref.address or '').strip(),
        )
        logger.info(
            "counterparty.registered",
            extra={"counterparty_id": party.pk, "role": role, "phone": phone},
        )
        return party

    def register_counterparty(self, role, name, phone, address='',
                              customer_type=CustomerType.RETAIL) -> Counterparty:
        """
        Register a counterparty ahead of any invoice.

        Raises:
            ValidationError('INVALID_KIND'): unknown role
            ValidationError('NAME_REQUIRED' | 'COUNTERPARTY_REQUIRED')
            ValidationError('DUPLICATE_PHONE'): phone already used for the role
        """
        if role not in CounterpartyRole.values:
            raise ValidationError('INVALID_KIND', kind=role)
        if customer_type not in CustomerType.values:
            raise ValidationError('INVALID_KIND', kind=customer_type)
        name = (name or '').strip()
        phone = (phone or '').strip()
        if not name:
            raise ValidationError('NAME_REQUIRED')
        if not phone:
            raise ValidationError('COUNTERPARTY_REQUIRED')

        with self.store.atomic():
            if self.store.objects(Counterparty).filter(role=role, phone=phone).exists():
                raise ValidationError('DUPLICATE_PHONE', role=role, phone=phone)
            party = self.store.objects(Counterparty).create(
                role=role,
                name=name,
                phone=phone,
                address=(address or '').strip(),
                customer_type=customer_type,
            )
            logger.info(
                "counterparty.registered",
                extra={"counterparty_id": party.pk, "role": role, "phone": phone},
            )
            return party

