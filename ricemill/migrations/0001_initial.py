"""
Initial migration for Ricemill models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Ricemill models: varieties, ledger, counterparties, invoices, processes."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Variety',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True, verbose_name='Name')),
                ('category', models.CharField(choices=[('paddy', 'Paddy'), ('selling', 'Selling')], db_index=True, default='paddy', max_length=20, verbose_name='Category')),
                ('current_stock', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Ledger cache. May be negative when stock is sent before weigh-in.', max_digits=14, verbose_name='Current stock (kg)')),
                ('min_stock_level', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Minimum stock level (kg)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Created by')),
            ],
            options={
                'verbose_name': 'Variety',
                'verbose_name_plural': 'Varieties',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Counterparty',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=[('supplier', 'Supplier'), ('buyer', 'Buyer')], db_index=True, max_length=20, verbose_name='Role')),
                ('name', models.CharField(max_length=150, verbose_name='Name')),
                ('phone', models.CharField(max_length=30, verbose_name='Phone')),
                ('address', models.CharField(blank=True, default='', max_length=255, verbose_name='Address')),
                ('customer_type', models.CharField(choices=[('retail', 'Retail'), ('wholesale', 'Wholesale')], default='retail', max_length=20, verbose_name='Customer type')),
                ('total_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total invoiced')),
                ('total_paid', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total paid')),
                ('total_pending', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total pending')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Counterparty',
                'verbose_name_plural': 'Counterparties',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='StockAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=3, help_text='Positive = in, Negative = out', max_digits=14, verbose_name='Delta (kg)')),
                ('previous_stock', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Previous stock (kg)')),
                ('new_stock', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='New stock (kg)')),
                ('reference_id', models.PositiveIntegerField(blank=True, null=True, verbose_name='Reference ID')),
                ('reason', models.CharField(help_text='Required. E.g. "Sent 100kg for boiling"', max_length=255, verbose_name='Reason')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('reference_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='contenttypes.contenttype', verbose_name='Reference type')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
                ('variety', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='adjustments', to='ricemill.variety', verbose_name='Variety')),
            ],
            options={
                'verbose_name': 'Stock adjustment',
                'verbose_name_plural': 'Stock adjustments',
                'ordering': ['timestamp', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('purchase', 'Purchase'), ('sale', 'Sale')], db_index=True, max_length=20, verbose_name='Kind')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Quantity (kg)')),
                ('unit_price', models.DecimalField(decimal_places=4, max_digits=14, verbose_name='Unit price')),
                ('total', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Total')),
                ('paid', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Paid')),
                ('pending', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Pending')),
                ('invoiced_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Invoice date')),
                ('counterparty', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='ricemill.counterparty', verbose_name='Counterparty')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
                ('variety', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='invoices', to='ricemill.variety', verbose_name='Variety')),
            ],
            options={
                'verbose_name': 'Invoice',
                'verbose_name_plural': 'Invoices',
                'ordering': ['-invoiced_at', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Amount')),
                ('method', models.CharField(choices=[('cash', 'Cash'), ('bank', 'Bank transfer'), ('mobile', 'Mobile money')], default='cash', max_length=20, verbose_name='Method')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Reference number')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('paid_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Payment date')),
                ('counterparty', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='ricemill.counterparty', verbose_name='Counterparty')),
                ('invoice', models.ForeignKey(blank=True, help_text='Empty = counterparty-level payment', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='ricemill.invoice', verbose_name='Invoice')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Payment',
                'verbose_name_plural': 'Payments',
                'ordering': ['-paid_at', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='ConversionProcess',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('boiling', 'Boiling'), ('milling', 'Milling')], db_index=True, max_length=20, verbose_name='Kind')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Sent quantity (kg)')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled at')),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Cancelled by')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Created by')),
                ('variety', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='processes', to='ricemill.variety', verbose_name='Input variety')),
            ],
            options={
                'verbose_name': 'Conversion process',
                'verbose_name_plural': 'Conversion processes',
                'ordering': ['-created_at', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='ConversionCompletion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('returned_quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Returned quantity (kg)')),
                ('missing_quantity', models.DecimalField(blank=True, decimal_places=3, help_text='Boiling only: sent minus returned', max_digits=14, null=True, verbose_name='Missing quantity (kg)')),
                ('cost', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Cost')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('completed_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Completed at')),
                ('output_variety', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='ricemill.variety', verbose_name='Output variety')),
                ('process', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='completion', to='ricemill.conversionprocess', verbose_name='Process')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Completed by')),
            ],
            options={
                'verbose_name': 'Conversion completion',
                'verbose_name_plural': 'Conversion completions',
                'ordering': ['-completed_at'],
            },
        ),
        migrations.CreateModel(
            name='MissingQuantityDetail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Quantity (kg)')),
                ('reason', models.CharField(choices=[('evaporation', 'Evaporation'), ('spillage', 'Spillage'), ('quality_rejection', 'Quality rejection'), ('other', 'Other')], max_length=30, verbose_name='Reason')),
                ('description', models.TextField(blank=True, default='', verbose_name='Description')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completion', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='missing_details', to='ricemill.conversioncompletion', verbose_name='Completion')),
            ],
            options={
                'verbose_name': 'Missing quantity detail',
                'verbose_name_plural': 'Missing quantity details',
                'ordering': ['pk'],
            },
        ),
        # Indexes
        migrations.AddIndex(
            model_name='stockadjustment',
            index=models.Index(fields=['variety', 'timestamp'], name='ricemill_adj_variety_ts_idx'),
        ),
        migrations.AddIndex(
            model_name='invoice',
            index=models.Index(fields=['counterparty', 'invoiced_at'], name='ricemill_inv_party_date_idx'),
        ),
        migrations.AddIndex(
            model_name='conversionprocess',
            index=models.Index(fields=['kind', 'status'], name='ricemill_proc_kind_status_idx'),
        ),
        migrations.AddConstraint(
            model_name='counterparty',
            constraint=models.UniqueConstraint(fields=('role', 'phone'), name='unique_counterparty_phone_per_role'),
        ),
    ]
