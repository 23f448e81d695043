"""Django app configuration for Ricemill."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class RicemillConfig(AppConfig):
    """Configuration for Ricemill app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "ricemill"
    verbose_name = _("Rice Mill Stock & Ledger")
