import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('bookings', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_code', models.CharField(max_length=16)),
                ('gateway_payment_id', models.CharField(max_length=64)),
                ('gateway_order_id', models.CharField(blank=True, max_length=64)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('method', models.CharField(blank=True, max_length=32)),
                ('source', models.CharField(
                    choices=[('verify', 'Client verification'), ('webhook', 'Gateway webhook')],
                    max_length=16,
                )),
                ('outcome', models.CharField(
                    choices=[('applied', 'Applied to booking'), ('ignored', 'Booking no longer payable')],
                    max_length=16,
                )),
                ('status_before', models.CharField(max_length=32)),
                ('status_after', models.CharField(max_length=32)),
                ('refunded_amount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='payment_events',
                    to='bookings.booking',
                )),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('booking_code', 'gateway_payment_id'),
                        name='uniq_payment_event_per_booking',
                    ),
                ],
            },
        ),
    ]
