import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pymongo.database import Database

from auth import AdminPrincipal, UserPrincipal, optional_user, require_admin
from config import Settings, get_settings
from database import ORDERS, find_by_id, get_db, to_dict
from errors import error_response
from helpers import log_activity
from offline import OfflineQueue, get_offline_queue
from pipeline import create_order, order_stats, update_order_status
from queries import ORDER_QUERY, QueryOptionError, list_documents, resolve_options
from schemas import CreateOrderRequest, StatusUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
def place_order(payload: CreateOrderRequest, db: Database = Depends(get_db),
                settings: Settings = Depends(get_settings),
                user: Optional[UserPrincipal] = Depends(optional_user)):
    outcome = create_order(db, payload.model_dump(by_alias=True, exclude_none=True), settings, principal=user)
    if not outcome.ok:
        return error_response(outcome.status_code, outcome.message, errors=outcome.errors)
    return {"success": True, "message": outcome.message, "data": outcome.order}


@router.get("")
def list_orders(status: Optional[str] = None, sortBy: Optional[str] = None, order: Optional[str] = None,
                page: Optional[str] = None, pageSize: Optional[str] = None, cursor: Optional[str] = None,
                db: Database = Depends(get_db), settings: Settings = Depends(get_settings),
                admin: AdminPrincipal = Depends(require_admin)):
    try:
        options = resolve_options(
            ORDER_QUERY, sort_by=sortBy, order=order, page=page, page_size=pageSize,
            filter_value=status if status and status != "all" else None,
            cursor=cursor, strict=settings.strict_query_options,
        )
    except QueryOptionError as e:
        return error_response(400, str(e))
    result = list_documents(db, ORDER_QUERY, options)
    return {"success": True, "data": result["items"], "pagination": result["pagination"]}


@router.get("/stats/overview")
def stats_overview(db: Database = Depends(get_db), admin: AdminPrincipal = Depends(require_admin)):
    return {"success": True, "data": order_stats(db)}


@router.get("/lookup/{order_id}")
def lookup_order(order_id: str, db: Database = Depends(get_db)):
    doc = db[ORDERS].find_one({"orderId": order_id})
    if not doc:
        return error_response(404, "Order not found")
    return {"success": True, "data": to_dict(doc)}


@router.get("/{id}")
def get_order(id: str, db: Database = Depends(get_db)):
    doc = find_by_id(db, ORDERS, id)
    if not doc:
        return error_response(404, "Order not found")
    return {"success": True, "data": to_dict(doc)}


@router.patch("/{id}/status")
def set_order_status(id: str, payload: StatusUpdateRequest, db: Database = Depends(get_db),
                     queue: OfflineQueue = Depends(get_offline_queue),
                     admin: AdminPrincipal = Depends(require_admin)):
    outcome = update_order_status(db, id, payload.status, payload.notes, admin.username, queue=queue)
    if not outcome.ok:
        return error_response(outcome.status_code, outcome.message)

    log_activity("order", "status_updated", {"id": id, "status": payload.status,
                                               "degraded": outcome.degraded}, admin.username)
    body = {"success": True, "message": outcome.message, "data": outcome.order}
    if outcome.degraded:
        body["degraded"] = True
        return JSONResponse(status_code=outcome.status_code, content=body)
    return body
