from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import apps.bookings.models


PAYMENT_MODE_CHOICES = [('full', 'Full payment'), ('partial', 'Partial payment')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('treks', '0001_initial'),
        ('promotions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_code', models.CharField(
                    default=apps.bookings.models.generate_booking_code,
                    editable=False,
                    max_length=16,
                    unique=True,
                )),
                ('number_of_participants', models.PositiveSmallIntegerField(default=1)),
                ('status', models.CharField(
                    choices=[
                        ('pending_payment', 'Pending payment'),
                        ('payment_confirmed_partial', 'Partially paid'),
                        ('payment_completed', 'Payment completed'),
                        ('confirmed', 'Confirmed'),
                        ('trek_completed', 'Trek completed'),
                        ('cancelled', 'Cancelled'),
                    ],
                    default='pending_payment',
                    max_length=32,
                )),
                ('payment_mode', models.CharField(choices=PAYMENT_MODE_CHOICES, default='full', max_length=16)),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('amount_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('initial_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('remaining_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('final_payment_due_date', models.DateTimeField(blank=True, null=True)),
                ('final_payment_date', models.DateTimeField(blank=True, null=True)),
                ('auto_cancel_on_due_date', models.BooleanField(default=False)),
                ('reminder_sent_at', models.DateTimeField(blank=True, null=True)),
                ('session_expires_at', models.DateTimeField(
                    blank=True,
                    help_text='Seats are held until this moment unless payment arrives.',
                    null=True,
                )),
                ('promo_code_value', models.CharField(blank=True, max_length=32)),
                ('cancellation_reason', models.CharField(blank=True, max_length=255)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_by', models.CharField(
                    blank=True,
                    choices=[('user', 'User'), ('admin', 'Admin'), ('system', 'System')],
                    max_length=16,
                )),
                ('refund_status', models.CharField(
                    blank=True,
                    choices=[('processing', 'Processing'), ('success', 'Success'), ('failed', 'Failed')],
                    max_length=16,
                )),
                ('refund_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('refund_credit_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('batch', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='bookings',
                    to='treks.batch',
                )),
                ('promo_code', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='bookings',
                    to='promotions.promocode',
                )),
                ('trek', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='bookings',
                    to='treks.trek',
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='trek_bookings',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'session_expires_at'], name='booking_status_expiry_idx'),
                    models.Index(fields=['batch', 'status'], name='booking_batch_status_idx'),
                    models.Index(fields=['status', 'final_payment_due_date'], name='booking_status_due_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('number_of_participants__gte', 1)),
                        name='booking_has_participants',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('remaining_amount__isnull', True), ('remaining_amount__gte', 0), _connector='OR'),
                        name='booking_remaining_not_negative',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Participant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=120)),
                ('age', models.PositiveSmallIntegerField()),
                ('gender', models.CharField(
                    choices=[('male', 'Male'), ('female', 'Female'), ('other', 'Other')],
                    max_length=8,
                )),
                ('contact_number', models.CharField(blank=True, max_length=20)),
                ('medical_conditions', models.TextField(blank=True)),
                ('booking', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='participants',
                    to='bookings.booking',
                )),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='FailedBooking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_booking_id', models.PositiveBigIntegerField()),
                ('booking_code', models.CharField(max_length=16)),
                ('number_of_participants', models.PositiveSmallIntegerField()),
                ('payment_mode', models.CharField(choices=PAYMENT_MODE_CHOICES, max_length=16)),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('amount_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('promo_code_value', models.CharField(blank=True, max_length=32)),
                ('failure_reason', models.CharField(
                    choices=[('session_expired', 'Session expired')],
                    max_length=32,
                )),
                ('failure_details', models.TextField(blank=True)),
                ('original_created_at', models.DateTimeField()),
                ('original_expires_at', models.DateTimeField()),
                ('archived_at', models.DateTimeField(auto_now_add=True)),
                ('archived_by', models.CharField(
                    choices=[('system', 'System')],
                    default='system',
                    max_length=16,
                )),
                ('batch', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='failed_bookings',
                    to='treks.batch',
                )),
                ('trek', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='failed_bookings',
                    to='treks.trek',
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='failed_trek_bookings',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'ordering': ['-archived_at'],
                'indexes': [models.Index(fields=['booking_code'], name='failedbooking_code_idx')],
            },
        ),
    ]
