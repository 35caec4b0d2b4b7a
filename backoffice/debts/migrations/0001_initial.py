# Generated manually
import backoffice.debts.models
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('arrivals', '0001_initial'),
        ('parties', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Debt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('debt_id', models.CharField(default=backoffice.debts.models.generate_debt_id, max_length=64, unique=True)),
                ('supplier_name', models.CharField(max_length=200)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('remaining_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('date', models.DateField(default=django.utils.timezone.localdate)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('partially_paid', 'Partially Paid'), ('paid', 'Paid'), ('overdue', 'Overdue')], default='active', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('arrival', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='debt', to='arrivals.arrival')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='debts', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='debts', to='parties.supplier')),
            ],
            options={
                'db_table': 'debts',
                'ordering': ['-date', '-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_debt_status'),
                    models.Index(fields=['supplier', 'status'], name='idx_debt_supplier_status'),
                    models.Index(fields=['-date', '-created_at'], name='idx_debt_date_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DebtItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(blank=True, max_length=100)),
                ('product_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('is_accessory', models.BooleanField(default=False)),
                ('is_service', models.BooleanField(default=False)),
                ('serial_numbers', models.JSONField(blank=True, default=list)),
                ('barcode', models.CharField(blank=True, max_length=100)),
                ('debt', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='debts.debt')),
            ],
            options={
                'db_table': 'debt_items',
                'ordering': ['id'],
            },
        ),
    ]
