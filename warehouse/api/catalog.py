from fastapi import APIRouter, Depends, HTTPException

from warehouse.api.deps import get_current_user, get_stores
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
from warehouse.services import catalog_service
from warehouse.services.record_store import Stores

router = APIRouter(tags=["Basic data"], dependencies=[Depends(get_current_user)])


# --- Categories ---

@router.get("/categories", response_model=list[Category])
def list_categories(stores: Stores = Depends(get_stores)):
    return stores.categories.get_all()


@router.get("/categories/tree", response_model=list[CategoryNode])
def category_tree(stores: Stores = Depends(get_stores)):
    return catalog_service.category_tree(stores)


@router.get("/categories/material-counts")
def material_counts(stores: Stores = Depends(get_stores)):
    return catalog_service.material_counts_by_category(stores)


@router.post("/categories", response_model=Category, status_code=201)
def create_category(data: CategoryCreate, stores: Stores = Depends(get_stores)):
    return catalog_service.create_category(stores, data)


@router.patch("/categories/{category_id}", response_model=Category)
def update_category(category_id: str, data: CategoryUpdate, stores: Stores = Depends(get_stores)):
    return catalog_service.update_category(stores, category_id, data)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str, stores: Stores = Depends(get_stores)):
    if not catalog_service.delete_category(stores, category_id):
        raise HTTPException(404, "Category not found")


# --- Materials ---

@router.get("/materials", response_model=list[Material])
def list_materials(category_id: str | None = None, stores: Stores = Depends(get_stores)):
    if category_id:
        return stores.materials.find(lambda m: m.category_id == category_id)
    return stores.materials.get_all()


@router.get("/materials/{material_id}", response_model=Material)
def get_material(material_id: str, stores: Stores = Depends(get_stores)):
    material = stores.materials.get_by_id(material_id)
    if not material:
        raise HTTPException(404, "Material not found")
    return material


@router.post("/materials", response_model=Material, status_code=201)
def create_material(data: MaterialCreate, stores: Stores = Depends(get_stores)):
    return catalog_service.create_material(stores, data)


@router.patch("/materials/{material_id}", response_model=Material)
def update_material(material_id: str, data: MaterialUpdate, stores: Stores = Depends(get_stores)):
    return catalog_service.update_material(stores, material_id, data)


@router.delete("/materials/{material_id}", status_code=204)
def delete_material(material_id: str, stores: Stores = Depends(get_stores)):
    if not catalog_service.delete_material(stores, material_id):
        raise HTTPException(404, "Material not found")


# --- Suppliers ---

@router.get("/suppliers", response_model=list[Supplier])
def list_suppliers(stores: Stores = Depends(get_stores)):
    return stores.suppliers.get_all()


@router.post("/suppliers", response_model=Supplier, status_code=201)
def create_supplier(data: SupplierCreate, stores: Stores = Depends(get_stores)):
    return catalog_service.create_supplier(stores, data)


@router.patch("/suppliers/{supplier_id}", response_model=Supplier)
def update_supplier(supplier_id: str, data: SupplierUpdate, stores: Stores = Depends(get_stores)):
    return catalog_service.update_supplier(stores, supplier_id, data)


@router.delete("/suppliers/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: str, stores: Stores = Depends(get_stores)):
    if not catalog_service.delete_supplier(stores, supplier_id):
        raise HTTPException(404, "Supplier not found")


# --- Projects ---

@router.get("/projects", response_model=list[Project])
def list_projects(stores: Stores = Depends(get_stores)):
    return stores.projects.get_all()


@router.post("/projects", response_model=Project, status_code=201)
def create_project(data: ProjectCreate, stores: Stores = Depends(get_stores)):
    return catalog_service.create_project(stores, data)


@router.patch("/projects/{project_id}", response_model=Project)
def update_project(project_id: str, data: ProjectUpdate, stores: Stores = Depends(get_stores)):
    return catalog_service.update_project(stores, project_id, data)


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: str, stores: Stores = Depends(get_stores)):
    if not catalog_service.delete_project(stores, project_id):
        raise HTTPException(404, "Project not found")
