# Overview: Demo catalog used by `flask seed demo` and local development.

from __future__ import annotations

from ..extensions import db
from ..models import Product, Service
from .. import cache

# (name, description, sku, category, price_cents, cost_price_cents, stock, threshold)
DEMO_PRODUCTS = [
    ("Cat6 Ethernet Cable 10m", "High-quality Cat6 ethernet cable for reliable network connections",
     "NET-CAT6-10M", "networking", 1599, 850, 150, 20),
    ("TP-Link 8-Port Gigabit Switch", "Desktop network switch with 8 gigabit ports",
     "NET-SW-8P", "networking", 4599, 2800, 35, 10),
    ("Ubiquiti UniFi AP AC Pro", "Enterprise-grade indoor access point",
     "NET-AP-PRO", "networking", 18999, 12000, 15, 5),
    ("RJ45 Connectors Pack (100pcs)", "Gold-plated RJ45 connectors for Cat5e/Cat6",
     "NET-RJ45-100", "networking", 2499, 1200, 8, 15),
    ("Network Crimping Tool Kit", "Professional crimping tool with cable tester",
     "NET-TOOL-KIT", "networking", 6599, 3500, 25, 8),
    ("Hikvision 4MP IP Dome Camera", "Indoor/outdoor dome camera with night vision",
     "CCTV-DOM-4MP", "cctv", 12999, 7500, 40, 10),
    ("8-Channel NVR Recorder", "Network video recorder with 2TB storage",
     "CCTV-NVR-8CH", "cctv", 34999, 22000, 12, 5),
    ("Bullet Camera 2MP Outdoor", "Weatherproof bullet camera with IR night vision",
     "CCTV-BUL-2MP", "cctv", 8999, 4800, 55, 15),
    ("POE Switch 4-Port", "Power over Ethernet switch for IP cameras",
     "CCTV-POE-4P", "cctv", 7599, 4200, 3, 8),
    ("Video Door Phone Kit", "2-wire video intercom system with 7-inch monitor",
     "INT-VDP-7", "intercom", 19999, 11000, 18, 5),
    ("Audio Intercom Indoor Unit", "Wall-mounted audio intercom station",
     "INT-AUD-IN", "intercom", 5999, 3200, 28, 8),
    ("IP Video Intercom Panel", "Smart video intercom with mobile app support",
     "INT-IP-PAN", "intercom", 27999, 16500, 10, 3),
]

# (name, description, price_cents, duration)
DEMO_SERVICES = [
    ("Network Installation - Basic",
     "Installation of up to 8 network points including cable routing and termination", 29999, "4-6 hours"),
    ("Network Installation - Premium",
     "Full network setup with router configuration, up to 16 points, and testing", 59999, "1-2 days"),
    ("CCTV Installation - 4 Cameras",
     "Installation of 4 cameras with NVR setup and mobile app configuration", 44999, "6-8 hours"),
    ("CCTV Installation - 8 Cameras",
     "Complete 8-camera surveillance system installation with remote viewing", 79999, "1-2 days"),
    ("Intercom System Installation",
     "Video door phone installation including wiring and configuration", 19999, "3-4 hours"),
    ("Network Maintenance - Monthly",
     "Monthly network health check, updates, and troubleshooting support", 14999, "Monthly"),
    ("IT Training - Basic Networking",
     "2-hour training session on network fundamentals and troubleshooting", 19999, "2 hours"),
    ("IT Training - CCTV Operation",
     "Training on CCTV system operation, playback, and basic maintenance", 14999, "2 hours"),
]


def seed_demo_catalog() -> tuple[int, int]:
    """
    Insert the demo products and services that are not already present
    (matched by SKU and by name). Returns (products_added, services_added).
    """
    existing_skus = {sku for (sku,) in db.session.query(Product.sku).filter(Product.sku.isnot(None))}
    existing_services = {name for (name,) in db.session.query(Service.name)}

    products_added = 0
    for name, description, sku, category, price, cost, stock, threshold in DEMO_PRODUCTS:
        if sku in existing_skus:
            continue
        db.session.add(Product(
            name=name,
            description=description,
            sku=sku,
            category=category,
            price_cents=price,
            cost_price_cents=cost,
            stock_quantity=stock,
            low_stock_threshold=threshold,
            is_active=True,
        ))
        products_added += 1

    services_added = 0
    for name, description, price, duration in DEMO_SERVICES:
        if name in existing_services:
            continue
        db.session.add(Service(
            name=name,
            description=description,
            price_cents=price,
            duration=duration,
            is_active=True,
        ))
        services_added += 1

    db.session.commit()
    cache.get_cache().invalidate_for_write(cache.PRODUCTS)
    cache.get_cache().invalidate_for_write(cache.SERVICES)
    return products_added, services_added
