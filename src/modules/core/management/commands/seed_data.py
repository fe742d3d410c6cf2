from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.florists.constants import DistanceType, StoreStatus
from modules.florists.dtos import DeliverySlot as SlotValue
from modules.florists.models import DeliverySlot, Florist
from modules.orders.constants import DeliveryType, OrderStatus
from modules.orders.models import Order, OrderStatusHistory

WEEKDAY_HOURS = {"open": "09:00", "close": "18:00"}
SATURDAY_HOURS = {"open": "10:00", "close": "16:00"}

SLOTS = [
    SlotValue(name="Morning", start="09:00", end="12:00", max_orders=5),
    SlotValue(name="Afternoon", start="12:00", end="15:00", max_orders=5),
    SlotValue(name="Evening", start="15:00", end="18:00", max_orders=3),
]

# Happy-path status sequences per fulfillment type.
PROGRESSIONS = {
    DeliveryType.DELIVERY: [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    ],
    DeliveryType.PICKUP: [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY_FOR_PICKUP,
        OrderStatus.PICKED_UP,
    ],
}


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        florists = self._seed_florists()
        orders_created = self._seed_orders(florists)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"florists={len(florists)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="florist").exists():
            User.objects.create_user("florist", password="florist123")
            created += 1
        if not User.objects.filter(username="customer").exists():
            User.objects.create_user("customer", password="customer123")
            created += 1
        return created

    def _seed_florists(self) -> list[Florist]:
        self.stdout.write("Creating florists...")
        catalog = [
            # name, lat, lng, delivery, cutoff, distance type
            ("Bloom & Stem", 51.5072, -0.1276, True, "14:00", DistanceType.RADIUS),
            ("Petal Street", 51.5155, -0.0922, True, "12:00", DistanceType.DRIVING),
            ("The Wild Bunch", 51.4975, -0.1357, False, None, DistanceType.RADIUS),
            ("Rose Corner", 51.5226, -0.1571, True, None, DistanceType.RADIUS),
        ]
        hours = {day: WEEKDAY_HOURS for day in ("tuesday", "wednesday", "thursday", "friday")}
        hours["saturday"] = SATURDAY_HOURS
        hours["monday"] = {"closed": True}

        florists: list[Florist] = []
        for name, lat, lng, delivery, cutoff, distance_type in catalog:
            florist, created = Florist.objects.get_or_create(
                store_name=name,
                defaults={
                    "store_status": StoreStatus.ACTIVE,
                    "contact_email": f"{name.lower().replace(' ', '').replace('&', '')}@example.com",
                    "latitude": lat,
                    "longitude": lng,
                    "timezone": "Europe/London",
                    "business_hours": hours,
                    "is_delivery_enabled": delivery,
                    "delivery_radius_km": Decimal("8.00"),
                    "delivery_fee": Decimal("5.99"),
                    "minimum_order": Decimal("25.00"),
                    "same_day_cutoff": cutoff or "",
                    "distance_type": distance_type,
                },
            )
            if created and delivery:
                DeliverySlot.objects.bulk_create(
                    [DeliverySlot.from_value(florist.id, slot) for slot in SLOTS]
                )
            florists.append(florist)
        self.stdout.write(self.style.SUCCESS("Creating florists... Done!"))
        return florists

    def _seed_orders(self, florists: list[Florist]) -> int:
        self.stdout.write("Creating orders...")
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        today = timezone.localdate()
        created = 0
        for i in range(40):
            florist = random.choice(florists)
            delivery_type = (
                DeliveryType.DELIVERY
                if florist.is_delivery_enabled and random.random() < 0.7
                else DeliveryType.PICKUP
            )
            steps = PROGRESSIONS[delivery_type]
            reached = steps[: random.randint(1, len(steps))]
            cancelled = random.random() < 0.15 and len(reached) < len(steps)
            subtotal = Decimal(random.randint(2500, 12000)) / 100
            fee = florist.delivery_fee if delivery_type == DeliveryType.DELIVERY else Decimal("0.00")

            order = Order.objects.create(
                florist=florist,
                delivery_type=delivery_type,
                status=OrderStatus.CANCELLED if cancelled else reached[-1],
                delivery_date=today + timedelta(days=random.randint(-10, 10)),
                delivery_address="1 Example Road, London" if fee else "",
                contact_email=f"customer{i + 1}@example.com",
                subtotal=subtotal,
                delivery_fee=fee,
                total_amount=subtotal + fee,
                notes=f"Seed order {i + 1}",
            )

            previous = None
            for status in reached:
                OrderStatusHistory.objects.create(
                    order=order,
                    old_status=previous,
                    new_status=status,
                    notes="Order placed" if previous is None else "",
                )
                previous = status
            if cancelled:
                OrderStatusHistory.objects.create(
                    order=order,
                    old_status=previous,
                    new_status=OrderStatus.CANCELLED,
                    notes="Cancelled by customer",
                )
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
