"""
Enums for Ricemill models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class VarietyCategory(models.TextChoices):
    """
    What a variety is used for.

    PADDY:   Input stock, bought from growers and sent for boiling/milling.
    SELLING: Finished rice sold to buyers.
    """
    PADDY = 'paddy', _('Paddy')
    SELLING = 'selling', _('Selling')


class InvoiceKind(models.TextChoices):
    """Purchase brings stock in, sale takes it out."""
    PURCHASE = 'purchase', _('Purchase')
    SALE = 'sale', _('Sale')


class CounterpartyRole(models.TextChoices):
    """Which side of the trade the counterparty is on."""
    SUPPLIER = 'supplier', _('Supplier')   # We buy from them
    BUYER = 'buyer', _('Buyer')            # We sell to them


class CustomerType(models.TextChoices):
    RETAIL = 'retail', _('Retail')
    WHOLESALE = 'wholesale', _('Wholesale')


class PaymentMethod(models.TextChoices):
    CASH = 'cash', _('Cash')
    BANK = 'bank', _('Bank transfer')
    MOBILE = 'mobile', _('Mobile money')


class ProcessKind(models.TextChoices):
    """Conversion process type."""
    BOILING = 'boiling', _('Boiling')
    MILLING = 'milling', _('Milling')


class ProcessStatus(models.TextChoices):
    """Conversion process lifecycle status. COMPLETED and CANCELLED are terminal."""
    PENDING = 'pending', _('Pending')          # Input debited, awaiting return
    COMPLETED = 'completed', _('Completed')    # Output credited
    CANCELLED = 'cancelled', _('Cancelled')    # Input re-credited


class MissingReason(models.TextChoices):
    """Why boiled rice came back lighter than it was sent."""
    EVAPORATION = 'evaporation', _('Evaporation')
    SPILLAGE = 'spillage', _('Spillage')
    QUALITY_REJECTION = 'quality_rejection', _('Quality rejection')
    OTHER = 'other', _('Other')
