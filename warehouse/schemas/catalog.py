from datetime import datetime

from pydantic import BaseModel

from warehouse.models.catalog import Category, ProjectStatus


class CategoryCreate(BaseModel):
    name: str
    parent_id: str | None = None
    description: str = ""


class CategoryUpdate(BaseModel):
    name: str | None = None
    parent_id: str | None = None
    description: str | None = None


class CategoryNode(Category):
    children: list["CategoryNode"] = []


class MaterialCreate(BaseModel):
    name: str
    specification: str
    category_id: str
    unit: str
    supplier_id: str | None = None
    reference_price: float
    description: str = ""


class MaterialUpdate(BaseModel):
    name: str | None = None
    specification: str | None = None
    category_id: str | None = None
    unit: str | None = None
    supplier_id: str | None = None
    reference_price: float | None = None
    description: str | None = None


class SupplierCreate(BaseModel):
    name: str
    contact_person: str
    phone: str
    email: str = ""
    address: str = ""
    description: str = ""


class SupplierUpdate(BaseModel):
    name: str | None = None
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    description: str | None = None


class ProjectCreate(BaseModel):
    name: str
    address: str
    manager: str
    manager_contact: str
    start_date: datetime
    end_date: datetime | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    description: str = ""


class ProjectUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    manager: str | None = None
    manager_contact: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ProjectStatus | None = None
    description: str | None = None
