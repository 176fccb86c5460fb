from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.models import Inventory

# drug name, generic name, category, quantity, unit, reorder level, shelf life (years), batch, supplier, unit cost, alternatives
STOCK = [
    ("Amoxicillin", "Amoxicillin", "Antibiotic", 200, "capsules", 50, 2, "AMX-2025-01", "Acme Pharmaceuticals",
     "0.12", [{"drugName": "Augmentin", "genericName": "Amoxicillin/Clavulanate"}]),
    ("Lisinopril", "Lisinopril", "Antihypertensive", 120, "tablets", 30, 3, "LSP-2024-07", "HealthSource Ltd",
     "0.18", []),
    ("Metformin", "Metformin HCl", "Antidiabetic", 300, "tablets", 60, 2, "MTF-2024-11", "Global Meds",
     "0.08", []),
    ("Ibuprofen", "Ibuprofen", "Analgesic", 500, "tablets", 100, 4, "IBU-2025-02", "PainAway Inc",
     "0.05", [{"drugName": "Naproxen", "genericName": "Naproxen"}]),
    ("Atorvastatin", "Atorvastatin", "Lipid-lowering agent", 90, "tablets", 20, 2, "ATV-2023-09", "CardioPharm",
     "0.45", []),
]


class Command(BaseCommand):
    help = "Create or top up the development pharmacy stock (idempotent)."

    @transaction.atomic
    def handle(self, *args, **opts):
        today = timezone.localdate()
        created = updated = 0
        for name, generic, category, quantity, unit, reorder, years, batch, supplier, cost, alternatives in STOCK:
            defaults = {
                "generic_name": generic,
                "category": category,
                "unit": unit,
                "reorder_level": reorder,
                "expiry_date": today + timedelta(days=365 * years),
                "batch_number": batch,
                "supplier": supplier,
                "cost_per_unit": Decimal(cost),
                "alternatives": alternatives,
                "last_restocked": timezone.now(),
            }
            item = Inventory.objects.filter(drug_name__iexact=name).first()
            if item is None:
                Inventory.objects.create(drug_name=name, quantity=quantity, **defaults)
                created += 1
                self.stdout.write(self.style.SUCCESS(f"created: {name}"))
                continue
            # never lowers stock already on hand
            item.quantity = max(item.quantity, quantity)
            for field, value in defaults.items():
                setattr(item, field, value)
            item.save()
            updated += 1
            self.stdout.write(self.style.SUCCESS(f"updated: {name} ({item.quantity} {unit})"))
        self.stdout.write(self.style.SUCCESS(f"Inventory seeded: {created} created, {updated} updated."))
