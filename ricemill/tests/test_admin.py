"""
Tests for the Ricemill admin.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse

from ricemill.models import ConversionProcess, ProcessStatus


pytestmark = pytest.mark.django_db


@pytest.fixture
def staff_client(client):
    admin_user = get_user_model().objects.create_superuser(
        username='admin', email='admin@example.com', password='adminpass123',
    )
    client.force_login(admin_user)
    return client


class TestAdminViews:

    @pytest.mark.parametrize('model', [
        'variety', 'stockadjustment', 'counterparty', 'invoice', 'payment',
        'conversionprocess', 'conversioncompletion',
    ])
    def test_changelist_renders(self, staff_client, paddy, model):
        response = staff_client.get(reverse(f'admin:ricemill_{model}_changelist'))

        assert response.status_code == 200

    def test_adjustments_are_read_only(self, staff_client, paddy):
        adjustment = paddy.adjustments.get()

        response = staff_client.post(
            reverse('admin:ricemill_stockadjustment_delete', args=[adjustment.pk]),
            {'post': 'yes'},
        )

        assert response.status_code == 403
        assert paddy.adjustments.count() == 1


class TestAdminActions:

    def test_cancel_processes(self, staff_client, mill, paddy):
        pending = mill.create_process('milling', paddy.pk, Decimal('40'))
        done = mill.create_process('boiling', paddy.pk, Decimal('10'))
        mill.complete_process(done.pk, Decimal('9'))

        staff_client.post(reverse('admin:ricemill_conversionprocess_changelist'), {
            'action': 'cancel_processes',
            '_selected_action': [pending.pk, done.pk],
        })

        assert ConversionProcess.objects.get(pk=pending.pk).status == ProcessStatus.CANCELLED
        assert ConversionProcess.objects.get(pk=done.pk).status == ProcessStatus.COMPLETED
        paddy.refresh_from_db()
        assert paddy.current_stock == Decimal('999')

    def test_recalculate_stock(self, staff_client, paddy):
        type(paddy).objects.filter(pk=paddy.pk).update(current_stock=Decimal('3'))

        staff_client.post(reverse('admin:ricemill_variety_changelist'), {
            'action': 'recalculate_stock',
            '_selected_action': [paddy.pk],
        })

        paddy.refresh_from_db()
        assert paddy.current_stock == Decimal('1000')
