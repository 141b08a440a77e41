from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Trek',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(max_length=200, unique=True)),
                ('is_enabled', models.BooleanField(default=True)),
                ('partial_payment_enabled', models.BooleanField(
                    default=False,
                    help_text='Allow customers to pay an initial tranche and the balance later.',
                )),
                ('initial_payment_percent', models.PositiveSmallIntegerField(
                    default=20,
                    validators=[
                        django.core.validators.MinValueValidator(1),
                        django.core.validators.MaxValueValidator(100),
                    ],
                )),
                ('final_payment_days_before', models.PositiveSmallIntegerField(
                    default=7,
                    help_text='Days before departure when the remaining balance falls due.',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('max_participants', models.PositiveIntegerField(
                    validators=[django.core.validators.MinValueValidator(1)],
                )),
                ('current_participants', models.PositiveIntegerField(default=0, editable=False)),
                ('status', models.CharField(
                    choices=[
                        ('upcoming', 'Upcoming'),
                        ('ongoing', 'Ongoing'),
                        ('completed', 'Completed'),
                        ('cancelled', 'Cancelled'),
                    ],
                    default='upcoming',
                    max_length=16,
                )),
                ('auto_cancel_on_due_date', models.BooleanField(
                    default=False,
                    help_text='Cancel partially paid bookings whose balance is overdue.',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('trek', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='batches',
                    to='treks.trek',
                )),
            ],
            options={
                'verbose_name_plural': 'batches',
                'ordering': ['start_date'],
                'indexes': [
                    models.Index(fields=['trek', 'start_date'], name='batch_trek_start_idx'),
                    models.Index(fields=['status'], name='batch_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('max_participants__gte', 1)),
                        name='batch_has_capacity',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('end_date__gte', models.F('start_date'))),
                        name='batch_valid_dates',
                    ),
                ],
            },
        ),
    ]
