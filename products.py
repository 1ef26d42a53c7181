import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from auth import AdminPrincipal, require_admin
from config import Settings, get_settings
from database import PRODUCTS, create_document, find_by_id, get_db, object_id, to_dict
from errors import error_response
from helpers import generate_sku, isoformat, log_activity, utcnow
from queries import PRODUCT_QUERY, QueryOptionError, list_documents, resolve_options
from schemas import Product, ProductIn
from validation import validate_product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(category: Optional[str] = None, search: Optional[str] = None,
                  sortBy: Optional[str] = None, order: Optional[str] = None,
                  page: Optional[str] = None, pageSize: Optional[str] = None,
                  cursor: Optional[str] = None,
                  db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        options = resolve_options(
            PRODUCT_QUERY, sort_by=sortBy, order=order, page=page, page_size=pageSize,
            filter_value=category if category and category != "all" else None,
            cursor=cursor, search=search, strict=settings.strict_query_options,
        )
    except QueryOptionError as e:
        return error_response(400, str(e))
    result = list_documents(db, PRODUCT_QUERY, options)
    return {"success": True, "data": result["items"], "pagination": result["pagination"]}


@router.get("/categories/list")
def list_categories(db: Database = Depends(get_db)):
    categories = {c for c in db[PRODUCTS].distinct("category") if c}
    return {"success": True, "data": sorted(categories)}


@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    doc = find_by_id(db, PRODUCTS, product_id)
    if not doc:
        return error_response(404, "Product not found")
    return {"success": True, "data": to_dict(doc)}


@router.post("", status_code=201)
def create_product(payload: ProductIn, db: Database = Depends(get_db),
                   admin: AdminPrincipal = Depends(require_admin)):
    data = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    if not data.get("image") and data.get("images"):
        data["image"] = data["images"][0]

    validation = validate_product(data)
    if not validation.is_valid:
        return error_response(400, "Validation failed", errors=validation.errors)

    now = isoformat(utcnow())
    sku = data.pop("sku", None) or generate_sku(data["category"], data["name"])
    product = Product(
        **data,
        sku=sku,
        created_at=now,
        updated_at=now,
        created_by=admin.username,
    )
    doc = product.model_dump(by_alias=True, exclude_none=True)
    product_id = create_document(db, PRODUCTS, doc)

    log_activity("product", "created", {"id": product_id, "name": product.name}, admin.username)
    return {"success": True, "message": "Product created successfully", "data": {**doc, "id": product_id}}


@router.put("/{product_id}")
def update_product(product_id: str, payload: ProductIn, db: Database = Depends(get_db),
                   admin: AdminPrincipal = Depends(require_admin)):
    updates = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    validation = validate_product(updates, partial=True)
    if not validation.is_valid:
        return error_response(400, "Validation failed", errors=validation.errors)

    current = find_by_id(db, PRODUCTS, product_id)
    if not current:
        return error_response(404, "Product not found")

    updates["updatedAt"] = isoformat(utcnow())
    updates["updatedBy"] = admin.username
    db[PRODUCTS].update_one({"_id": current["_id"]}, {"$set": updates})

    log_activity("product", "updated", {"id": product_id, "fields": sorted(updates)}, admin.username)
    return {"success": True, "message": "Product updated successfully", "data": {**to_dict(current), **updates}}


@router.delete("/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db),
                   admin: AdminPrincipal = Depends(require_admin)):
    if not find_by_id(db, PRODUCTS, product_id):
        return error_response(404, "Product not found")
    db[PRODUCTS].delete_one({"_id": object_id(product_id)})
    log_activity("product", "deleted", {"id": product_id}, admin.username)
    return {"success": True, "message": "Product deleted successfully"}
