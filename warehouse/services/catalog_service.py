from warehouse.errors import NotFoundError, ValidationError
from warehouse.models.base import as_utc
from warehouse.models.catalog import Category, Material, Project, Supplier
from warehouse.schemas.catalog import (
    CategoryCreate,
    CategoryNode,
    CategoryUpdate,
    MaterialCreate,
    MaterialUpdate,
    ProjectCreate,
    ProjectUpdate,
    SupplierCreate,
    SupplierUpdate,
)
from warehouse.services.record_store import Stores
from warehouse.services.validation import FieldErrors


def _get_or_404(store, kind: str, record_id: str):
    record = store.get_by_id(record_id)
    if record is None:
        raise NotFoundError(kind, record_id)
    return record


# --- Categories ---

def _creates_cycle(categories: list[Category], category_id: str, parent_id: str | None) -> bool:
    parents = {c.id: c.parent_id for c in categories}
    seen = set()
    current = parent_id
    while current:
        if current == category_id:
            return True
        if current in seen:
            # existing loop above the new parent
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def _check_category(stores: Stores, data: dict, category_id: str | None = None) -> None:
    errors = FieldErrors()
    errors.required(data, "name")
    parent_id = data.get("parent_id")
    if parent_id:
        categories = stores.categories.get_all()
        if not any(c.id == parent_id for c in categories):
            errors.add("parent_id", "parent category not found")
        elif category_id and _creates_cycle(categories, category_id, parent_id):
            errors.add("parent_id", "category cannot be its own ancestor")
    errors.raise_if_any("Invalid category")


def create_category(stores: Stores, data: CategoryCreate) -> Category:
    fields = data.model_dump()
    _check_category(stores, fields)
    return stores.categories.create(fields)


def update_category(stores: Stores, category_id: str, data: CategoryUpdate) -> Category:
    current = _get_or_404(stores.categories, "Category", category_id)
    changes = data.model_dump(exclude_unset=True)
    _check_category(stores, {**current.model_dump(), **changes}, category_id)
    return stores.categories.update(category_id, changes)


def delete_category(stores: Stores, category_id: str) -> bool:
    if any(c.parent_id == category_id for c in stores.categories.get_all()):
        raise ValidationError("Category still has child categories")
    if any(m.category_id == category_id for m in stores.materials.get_all()):
        raise ValidationError("Category still has materials")
    return stores.categories.delete(category_id)


def build_category_tree(categories: list[Category]) -> list[CategoryNode]:
    """Nest categories under their parents.

    A category whose parent is missing, or whose ancestry loops, is a root.
    """
    nodes = {c.id: CategoryNode(**c.model_dump()) for c in categories}
    parents = {c.id: c.parent_id for c in categories}

    def reaches_root(category_id: str) -> bool:
        seen = {category_id}
        current = parents.get(category_id)
        while current and current in nodes:
            if current in seen:
                return False
            seen.add(current)
            current = parents.get(current)
        return True

    roots = []
    for c in categories:
        node = nodes[c.id]
        if c.parent_id and c.parent_id in nodes and reaches_root(c.id):
            nodes[c.parent_id].children.append(node)
        else:
            roots.append(node)
    return roots


def category_tree(stores: Stores) -> list[CategoryNode]:
    return build_category_tree(stores.categories.get_all())


def material_counts_by_category(stores: Stores) -> dict[str, int]:
    counts: dict[str, int] = {}
    for m in stores.materials.get_all():
        counts[m.category_id] = counts.get(m.category_id, 0) + 1
    return counts


# --- Materials ---

def _check_material(stores: Stores, data: dict) -> None:
    errors = FieldErrors()
    errors.required(data, "name", "specification", "category_id", "unit")
    errors.positive("reference_price", data.get("reference_price"))
    if data.get("category_id") and stores.categories.get_by_id(data["category_id"]) is None:
        errors.add("category_id", "category not found")
    if data.get("supplier_id") and stores.suppliers.get_by_id(data["supplier_id"]) is None:
        errors.add("supplier_id", "supplier not found")
    errors.raise_if_any("Invalid material")


def create_material(stores: Stores, data: MaterialCreate) -> Material:
    fields = data.model_dump()
    _check_material(stores, fields)
    return stores.materials.create(fields)


def update_material(stores: Stores, material_id: str, data: MaterialUpdate) -> Material:
    current = _get_or_404(stores.materials, "Material", material_id)
    changes = data.model_dump(exclude_unset=True)
    _check_material(stores, {**current.model_dump(), **changes})
    return stores.materials.update(material_id, changes)


def delete_material(stores: Stores, material_id: str) -> bool:
    """Delete a material with no stock on hand and no order lines.

    Its zero-quantity inventory item goes with it; transactions stay.
    """
    items = stores.inventory.find(lambda i: i.material_id == material_id)
    if any(i.quantity != 0 for i in items):
        raise ValidationError("Material still has stock on hand")
    in_orders = stores.stock_in_items.find(lambda i: i.material_id == material_id) or stores.stock_out_items.find(
        lambda i: i.material_id == material_id
    )
    if in_orders:
        raise ValidationError("Material is referenced by stock orders")
    with stores.transaction():
        stores.inventory.delete_many(i.id for i in items)
        return stores.materials.delete(material_id)


# --- Suppliers ---

def _check_supplier(data: dict) -> None:
    errors = FieldErrors()
    errors.required(data, "name", "contact_person", "phone")
    errors.email("email", data.get("email"))
    errors.raise_if_any("Invalid supplier")


def create_supplier(stores: Stores, data: SupplierCreate) -> Supplier:
    fields = data.model_dump()
    _check_supplier(fields)
    return stores.suppliers.create(fields)


def update_supplier(stores: Stores, supplier_id: str, data: SupplierUpdate) -> Supplier:
    current = _get_or_404(stores.suppliers, "Supplier", supplier_id)
    changes = data.model_dump(exclude_unset=True)
    _check_supplier({**current.model_dump(), **changes})
    return stores.suppliers.update(supplier_id, changes)


def delete_supplier(stores: Stores, supplier_id: str) -> bool:
    if stores.stock_in_orders.find(lambda o: o.supplier_id == supplier_id):
        raise ValidationError("Supplier is referenced by stock-in orders")
    return stores.suppliers.delete(supplier_id)


# --- Projects ---

def _check_project(data: dict) -> None:
    errors = FieldErrors()
    errors.required(data, "name", "address", "manager", "manager_contact", "start_date")
    start, end = data.get("start_date"), data.get("end_date")
    if start and end and as_utc(end) < as_utc(start):
        errors.add("end_date", "cannot be before the start date")
    errors.raise_if_any("Invalid project")


def create_project(stores: Stores, data: ProjectCreate) -> Project:
    fields = data.model_dump()
    _check_project(fields)
    return stores.projects.create(fields)


def update_project(stores: Stores, project_id: str, data: ProjectUpdate) -> Project:
    current = _get_or_404(stores.projects, "Project", project_id)
    changes = data.model_dump(exclude_unset=True)
    _check_project({**current.model_dump(), **changes})
    return stores.projects.update(project_id, changes)


def delete_project(stores: Stores, project_id: str) -> bool:
    referenced = stores.stock_out_orders.find(lambda o: o.project_id == project_id) or stores.stock_in_orders.find(
        lambda o: o.project_id == project_id
    )
    if referenced:
        raise ValidationError("Project is referenced by stock orders")
    return stores.projects.delete(project_id)
