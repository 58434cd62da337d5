import logging

from warehouse.config import settings
from warehouse.models.base import utcnow
from warehouse.models.catalog import ProjectStatus
from warehouse.services.record_store import Stores
from warehouse.services.user_service import ensure_default_admin

logger = logging.getLogger(__name__)

INITIALIZED_KEY = "initialized"


def is_initialized(stores: Stores) -> bool:
    return stores.storage.get_json(INITIALIZED_KEY, default=False) is True


def initialize_data(stores: Stores, seed_demo_data: bool | None = None) -> bool:
    """One-time bootstrap. Returns False when the storage was already initialized."""
    ensure_default_admin(stores)
    if is_initialized(stores):
        return False
    if seed_demo_data is None:
        seed_demo_data = settings.SEED_DEMO_DATA

    with stores.transaction():
        if seed_demo_data:
            _seed_demo_data(stores)
        stores.storage.set_json(INITIALIZED_KEY, True)
    logger.info("Initialized storage (demo data: %s)", seed_demo_data)
    return True


def _seed_demo_data(stores: Stores) -> None:
    plumbing = stores.categories.create(
        {"name": "Plumbing & Electrical", "description": "Materials for plumbing and electrical work"}
    )
    carpentry = stores.categories.create({"name": "Carpentry", "description": "Materials for woodwork"})
    paint = stores.categories.create({"name": "Paints & Coatings", "description": "Paints and coatings"})

    building = stores.suppliers.create(
        {
            "name": "Chengxin Building Supplies",
            "contact_person": "Zhang San",
            "phone": "13800138000",
            "address": "Building materials market, Zone A No. 12",
        }
    )
    hardware = stores.suppliers.create(
        {
            "name": "Yuanda Hardware Co.",
            "contact_person": "Li Si",
            "phone": "13900139000",
            "address": "Hardware city, Block B No. 5",
        }
    )

    materials = [
        ("Electrical wire", "BV-2.5mm²", plumbing.id, "roll", building.id, 180, "Copper core wire, national standard"),
        ("Water pipe", "PPR-20mm", plumbing.id, "m", building.id, 15, "PPR pipe for hot and cold water"),
        ("Plywood board", "18mm multilayer", carpentry.id, "sheet", hardware.id, 120, "E0 grade multilayer board"),
        ("Latex paint", "5L/bucket", paint.id, "bucket", hardware.id, 450, "Low-VOC latex paint"),
    ]
    for name, specification, category_id, unit, supplier_id, price, description in materials:
        stores.materials.create(
            {
                "name": name,
                "specification": specification,
                "category_id": category_id,
                "unit": unit,
                "supplier_id": supplier_id,
                "reference_price": price,
                "description": description,
            }
        )

    stores.projects.create(
        {
            "name": "Happy Home Building 1, Unit 302",
            "address": "Happy Home Estate, Building 1, Unit 302, New District",
            "manager": "Wang Wu",
            "manager_contact": "13700137000",
            "start_date": utcnow(),
            "status": ProjectStatus.IN_PROGRESS,
            "description": "Full renovation of a three-bedroom apartment",
        }
    )
