from datetime import datetime
from enum import Enum as PyEnum

from warehouse.models.base import Record


class Category(Record):
    name: str
    parent_id: str | None = None
    description: str = ""


class Material(Record):
    name: str
    specification: str = ""
    category_id: str
    unit: str
    supplier_id: str | None = None
    reference_price: float = 0.0
    description: str = ""


class Supplier(Record):
    name: str
    contact_person: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    description: str = ""


class ProjectStatus(str, PyEnum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Project(Record):
    name: str
    address: str = ""
    manager: str = ""
    manager_contact: str = ""
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    description: str = ""
