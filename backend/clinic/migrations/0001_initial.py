import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Patient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(help_text="Full name", max_length=255)),
                ("date_of_birth", models.DateField()),
                ("gender", models.CharField(choices=[("male", "Laki-laki"), ("female", "Perempuan")], max_length=10)),
                ("phone", models.CharField(blank=True, max_length=50, null=True)),
                ("address", models.TextField(blank=True, null=True)),
                ("emergency_contact", models.CharField(blank=True, help_text="Name and phone of an emergency contact", max_length=255, null=True)),
                ("medical_notes", models.TextField(blank=True, help_text="Allergies, chronic conditions, etc.", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["name"], name="patient_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Medicine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("unit", models.CharField(help_text="Dispensing unit (tablet, botol, strip, ...)", max_length=50)),
                ("price_per_unit", models.DecimalField(decimal_places=2, help_text="Current selling price per unit", max_digits=10)),
                ("stock_quantity", models.IntegerField(default=0, help_text="Current stock level (never negative)")),
                ("minimum_stock", models.IntegerField(default=0, help_text="Stock level at or below which the medicine is flagged as low")),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("supplier", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="medicine_name_idx"),
                    models.Index(fields=["expiry_date"], name="medicine_expiry_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(stock_quantity__gte=0),
                        name="medicine_stock_quantity_non_negative",
                        violation_error_message="Stock quantity cannot be negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(minimum_stock__gte=0),
                        name="medicine_minimum_stock_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, null=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("is_active", models.BooleanField(default=True, help_text="Inactive services cannot be sold")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Setting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.TextField(blank=True)),
                ("description", models.TextField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("total_amount", models.DecimalField(decimal_places=2, help_text="Sum of all line item totals at creation time", max_digits=10)),
                ("payment_method", models.CharField(choices=[("cash", "Tunai"), ("transfer", "Transfer"), ("card", "Kartu")], max_length=20)),
                ("payment_status", models.CharField(choices=[("pending", "Pending"), ("paid", "Paid"), ("cancelled", "Cancelled")], db_index=True, default="pending", max_length=20)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="clinic.patient")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["-created_at"], name="transaction_created_idx"),
                    models.Index(fields=["patient", "-created_at"], name="transaction_patient_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_amount__gte=0),
                        name="transaction_total_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TransactionService",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.IntegerField()),
                ("price_per_unit", models.DecimalField(decimal_places=2, help_text="Service price at sale time", max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, help_text="quantity × price_per_unit", max_digits=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("service", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transaction_items", to="clinic.service")),
                ("transaction", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="service_items", to="clinic.transaction")),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="transaction_service_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TransactionMedicine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.IntegerField()),
                ("price_per_unit", models.DecimalField(decimal_places=2, help_text="Medicine price at sale time", max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, help_text="quantity × price_per_unit", max_digits=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("medicine", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transaction_items", to="clinic.medicine")),
                ("transaction", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="medicine_items", to="clinic.transaction")),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="transaction_medicine_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("movement_type", models.CharField(choices=[("in", "Masuk"), ("out", "Keluar")], max_length=3)),
                ("quantity", models.IntegerField(help_text="Always positive; direction comes from movement_type")),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("medicine", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="movements", to="clinic.medicine")),
                ("reference", models.ForeignKey(blank=True, help_text="Transaction that caused this movement (empty for manual adjustments)", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="stock_movements", to="clinic.transaction")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["medicine", "-created_at"], name="movement_medicine_idx"),
                    models.Index(fields=["reference", "movement_type"], name="movement_reference_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="stock_movement_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PatientVisit",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("visit_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("diagnosis", models.TextField(blank=True, null=True)),
                ("treatment", models.TextField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("patient", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="visits", to="clinic.patient")),
                ("transaction", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="visits", to="clinic.transaction")),
            ],
            options={
                "ordering": ["-visit_date", "-id"],
                "indexes": [
                    models.Index(fields=["patient", "-visit_date"], name="visit_patient_idx"),
                ],
            },
        ),
    ]
