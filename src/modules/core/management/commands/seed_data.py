from __future__ import annotations

import random

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.couriers.constants import VehicleType
from modules.couriers.models import Courier
from modules.deliveries.services import build_delivery_service
from modules.orders.constants import DeliveryMethod, PurchaseOrderStatus
from modules.orders.models import PurchaseOrder, PurchaseOrderItem

# (building, address, lat, lng)
CAMPUS_BUILDINGS = [
    ("Hale Library", "1117 Mid-Campus Dr", 39.1905, -96.5815),
    ("Student Union", "918 N 17th St", 39.1868, -96.5843),
    ("Engineering Hall", "1701B Platt St", 39.1908, -96.5856),
    ("Ford Hall", "1800 Claflin Rd", 39.1942, -96.5800),
    ("Jardine Apartments", "2000 Jardine Dr", 39.2010, -96.5885),
    ("West Hall", "1600 Denison Ave", 39.1930, -96.5930),
]

LISTINGS = [
    ("Desk lamp", 1500),
    ("Calculus textbook", 4500),
    ("Mini fridge", 6000),
    ("Bike helmet", 2000),
    ("Monitor 24\"", 8000),
    ("Coffee maker", 2500),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        couriers = self._seed_couriers(users["couriers"])
        orders_created = self._seed_orders(users["buyers"], users["sellers"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={sum(len(v) for v in users.values())}, "
                f"couriers={len(couriers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict[str, list]:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")

        def _user(name: str):
            user, created = User.objects.get_or_create(username=name)
            if created:
                user.set_password(f"{name}123")
                user.save(update_fields=["password"])
            return user

        return {
            "buyers": [_user(f"buyer{i}") for i in range(1, 4)],
            "sellers": [_user(f"seller{i}") for i in range(1, 4)],
            "couriers": [_user(f"courier{i}") for i in range(1, 3)],
        }

    def _seed_couriers(self, users: list) -> list[Courier]:
        self.stdout.write("Creating couriers...")
        couriers = [
            Courier.objects.get_or_create(
                user=user,
                defaults={"vehicle_type": random.choice(VehicleType.values)},
            )[0]
            for user in users
        ]
        self.stdout.write(self.style.SUCCESS("Creating couriers... Done!"))
        return couriers

    def _seed_orders(self, buyers: list, sellers: list) -> int:
        """Paid delivery orders, each split into dispatchable deliveries."""
        self.stdout.write("Creating orders...")
        deliveries = build_delivery_service()
        orders_created = 0

        for buyer in buyers:
            if PurchaseOrder.objects.filter(buyer=buyer).exists():
                continue
            for _ in range(3):
                _, dropoff, lat, lng = random.choice(CAMPUS_BUILDINGS)
                order = PurchaseOrder.objects.create(
                    buyer=buyer,
                    status=PurchaseOrderStatus.PAID,
                    delivery_method=DeliveryMethod.DELIVERY,
                    delivery_address=dropoff,
                    delivery_lat=lat,
                    delivery_lng=lng,
                    tax_cents=random.randint(50, 400),
                    delivery_fee_cents=random.choice([299, 399, 499]),
                )
                subtotal = 0
                for seller in random.sample(sellers, k=random.randint(1, 2)):
                    building, address, s_lat, s_lng = random.choice(CAMPUS_BUILDINGS)
                    title, price = random.choice(LISTINGS)
                    PurchaseOrderItem.objects.create(
                        order=order,
                        seller=seller,
                        title=title,
                        unit_price_cents=price,
                        quantity=1,
                        pickup_address=address,
                        pickup_building_name=building,
                        pickup_lat=s_lat,
                        pickup_lng=s_lng,
                    )
                    subtotal += price
                order.subtotal_cents = subtotal
                order.total_cents = (
                    subtotal + order.tax_cents + order.delivery_fee_cents
                )
                order.save(update_fields=["subtotal_cents", "total_cents"])
                deliveries.create_for_order(order)
                orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
