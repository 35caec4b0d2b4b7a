# Generated manually
import backoffice.payments.models
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('arrivals', '0001_initial'),
        ('debts', '0001_initial'),
        ('parties', '0001_initial'),
        ('receipts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('payment_id', models.CharField(default=backoffice.payments.models.generate_payment_id, max_length=64, unique=True)),
                ('type', models.CharField(choices=[('receipt', 'Receipt'), ('debt', 'Debt'), ('arrival', 'Arrival'), ('client_record', 'Client record'), ('cash', 'Cash'), ('transfer', 'Transfer'), ('keb', 'KEB'), ('manual_client_debt', 'Manual client debt')], max_length=30)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('description', models.CharField(max_length=1000)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('supplier', models.CharField(blank=True, max_length=200)),
                ('order_id', models.CharField(blank=True, max_length=100)),
                ('in_cash_register', models.CharField(choices=[('yes', 'In register'), ('no', 'Not in register'), ('debt', 'Debt')], default='no', max_length=10)),
                ('cash_register_date', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('api_type', models.CharField(blank=True, choices=[('income', 'Income'), ('expense', 'Expense')], max_length=10)),
                ('status', models.CharField(choices=[('active', 'Active'), ('incassated', 'Incassated'), ('debt', 'Debt')], default='active', max_length=20)),
                ('incassation_date', models.DateTimeField(blank=True, null=True)),
                ('admin_name', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('arrival', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='arrivals.arrival')),
                ('client_debt', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='parties.clientdebt')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to=settings.AUTH_USER_MODEL)),
                ('debt', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='debts.debt')),
                ('receipt', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='ledger_payments', to='receipts.receipt')),
                ('supplier_ref', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='parties.supplier')),
            ],
            options={
                'db_table': 'payments',
                'ordering': ['-date', '-id'],
                'indexes': [
                    models.Index(fields=['-date', '-id'], name='idx_payment_date'),
                    models.Index(fields=['in_cash_register'], name='idx_payment_cash_register'),
                    models.Index(fields=['api_type', 'date'], name='idx_payment_apitype_date'),
                    models.Index(fields=['category'], name='idx_payment_category'),
                ],
            },
        ),
    ]
