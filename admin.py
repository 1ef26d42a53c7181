import hmac
import logging
import time
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import AdminPrincipal, require_admin
from config import Settings, get_settings
from database import ORDERS, PRODUCTS, USERS, find_by_id, get_db, get_documents
from errors import error_response
from helpers import isoformat, log_activity, utcnow
from offline import OfflineQueue, get_offline_queue
from queries import USER_QUERY, QueryOptionError, parse_int, list_documents, resolve_options
from schemas import AdminLoginRequest, UserStatusUpdate
from security import create_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

EXPORT_TYPES = (PRODUCTS, ORDERS, USERS)
STARTED_AT = time.monotonic()


@router.post("/login")
def admin_login(req: AdminLoginRequest, settings: Settings = Depends(get_settings)):
    if not req.username or not req.password:
        return error_response(400, "Username and password are required")

    username_ok = hmac.compare_digest(req.username.encode(), settings.admin_username.encode())
    password_ok = hmac.compare_digest(req.password.encode(), settings.admin_password.encode())
    if not (username_ok and password_ok):
        logger.warning("Failed admin login for %r", req.username)
        return error_response(401, "Invalid admin credentials")

    return {
        "success": True,
        "message": "Admin login successful",
        "data": {
            "username": req.username,
            "role": "admin",
            "token": create_admin_token(settings.token_secret, req.username),
            "loginTime": isoformat(utcnow()),
        },
    }


@router.get("/dashboard/stats")
def dashboard_stats(db: Database = Depends(get_db), admin: AdminPrincipal = Depends(require_admin)):
    stats = {
        "products": {"total": 0, "active": 0, "categories": 0},
        "orders": {"total": 0, "pending": 0, "completed": 0, "revenue": 0},
        "users": {"total": 0, "active": 0, "newThisMonth": 0},
        "performance": {"averageOrderValue": 0, "conversionRate": 0},
    }

    categories = set()
    for product in db[PRODUCTS].find({}, {"isActive": 1, "category": 1}):
        stats["products"]["total"] += 1
        if product.get("isActive") is not False:
            stats["products"]["active"] += 1
        if product.get("category"):
            categories.add(product["category"])
    stats["products"]["categories"] = len(categories)

    revenue = 0.0
    for order in db[ORDERS].find({}, {"status": 1, "pricing.total": 1}):
        stats["orders"]["total"] += 1
        if order.get("status") == "pending":
            stats["orders"]["pending"] += 1
        elif order.get("status") == "delivered":
            stats["orders"]["completed"] += 1
            revenue += (order.get("pricing") or {}).get("total", 0)
    stats["orders"]["revenue"] = round(revenue, 2)
    if stats["orders"]["completed"]:
        stats["performance"]["averageOrderValue"] = round(revenue / stats["orders"]["completed"], 2)

    month_ago = isoformat(utcnow() - timedelta(days=30))
    for user in db[USERS].find({}, {"isActive": 1, "createdAt": 1}):
        stats["users"]["total"] += 1
        if user.get("isActive") is not False:
            stats["users"]["active"] += 1
        if (user.get("createdAt") or "") > month_ago:
            stats["users"]["newThisMonth"] += 1

    if stats["users"]["total"]:
        stats["performance"]["conversionRate"] = round(
            stats["orders"]["total"] / stats["users"]["total"] * 100, 2)

    return {"success": True, "data": stats}


@router.get("/users")
def list_users(status: str = "all", sortBy: Optional[str] = None, order: Optional[str] = None,
               page: Optional[str] = None, pageSize: Optional[str] = None, cursor: Optional[str] = None,
               db: Database = Depends(get_db), settings: Settings = Depends(get_settings),
               admin: AdminPrincipal = Depends(require_admin)):
    if status not in ("all", "active", "inactive"):
        if settings.strict_query_options:
            return error_response(400, "Invalid status. Valid values: all, active, inactive")
        status = "all"
    try:
        options = resolve_options(
            USER_QUERY, sort_by=sortBy, order=order, page=page, page_size=pageSize,
            filter_value=None if status == "all" else status == "active",
            cursor=cursor, strict=settings.strict_query_options,
        )
    except QueryOptionError as e:
        return error_response(400, str(e))
    result = list_documents(db, USER_QUERY, options)
    return {"success": True, "data": result["items"], "pagination": result["pagination"]}


@router.patch("/users/{user_id}/status")
def set_user_status(user_id: str, payload: UserStatusUpdate, db: Database = Depends(get_db),
                    admin: AdminPrincipal = Depends(require_admin)):
    if not isinstance(payload.is_active, bool):
        return error_response(400, "isActive must be a boolean value")
    user = find_by_id(db, USERS, user_id)
    if not user:
        return error_response(404, "User not found")

    db[USERS].update_one({"_id": user["_id"]}, {"$set": {
        "isActive": payload.is_active,
        "updatedAt": isoformat(utcnow()),
        "updatedBy": admin.username,
    }})
    log_activity("user", "status_updated", {"id": user_id, "isActive": payload.is_active}, admin.username)
    return {"success": True, "message": f"User {'activated' if payload.is_active else 'deactivated'} successfully"}


@router.get("/activities")
def recent_activities(limit: Optional[str] = None, db: Database = Depends(get_db),
                      admin: AdminPrincipal = Depends(require_admin)):
    limit_num = min(100, max(1, parse_int(limit, 50)))
    per_source = max(1, limit_num // 2)
    activities = []

    for order in db[ORDERS].find().sort("createdAt", DESCENDING).limit(per_source):
        customer = order.get("customerInfo") or {}
        activities.append({
            "id": str(order["_id"]),
            "type": "order",
            "action": "created",
            "description": f"New order #{order.get('orderId')} from {customer.get('name')}",
            "amount": (order.get("pricing") or {}).get("total"),
            "timestamp": order.get("createdAt"),
            "status": order.get("status"),
        })

    for user in db[USERS].find().sort("createdAt", DESCENDING).limit(per_source):
        activities.append({
            "id": str(user["_id"]),
            "type": "user",
            "action": "registered",
            "description": f"New user registration: {user.get('name')}",
            "email": user.get("email"),
            "timestamp": user.get("createdAt"),
            "status": "active" if user.get("isActive") else "inactive",
        })

    activities.sort(key=lambda a: a["timestamp"] or "", reverse=True)
    return {"success": True, "data": activities[:limit_num]}


@router.get("/export/{export_type}")
def export_collection(export_type: str, db: Database = Depends(get_db),
                      admin: AdminPrincipal = Depends(require_admin)):
    if export_type not in EXPORT_TYPES:
        return error_response(400, "Invalid export type. Valid types: " + ", ".join(EXPORT_TYPES))

    data = get_documents(db, export_type)
    for item in data:
        item.pop("hashedPassword", None)

    now = utcnow()
    log_activity("export", "downloaded", {"type": export_type, "records": len(data)}, admin.username)
    return JSONResponse(
        content={
            "success": True,
            "exportType": export_type,
            "exportDate": isoformat(now),
            "totalRecords": len(data),
            "data": data,
        },
        headers={"Content-Disposition": f'attachment; filename="{export_type}_export_{now.date().isoformat()}.json"'},
    )


@router.get("/system/health")
def system_health(db: Database = Depends(get_db), queue: OfflineQueue = Depends(get_offline_queue),
                  admin: AdminPrincipal = Depends(require_admin)):
    health = {
        "status": "healthy",
        "timestamp": isoformat(utcnow()),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "services": {"database": "unknown", "offlineQueue": len(queue)},
    }
    try:
        db[PRODUCTS].find_one({}, {"_id": 1})
        health["services"]["database"] = "healthy"
    except PyMongoError as e:
        logger.error("Health probe failed: %s", e)
        health["services"]["database"] = "error"
        health["status"] = "degraded"
    return {"success": True, "data": health}


@router.post("/offline/replay")
def replay_offline_writes(db: Database = Depends(get_db), queue: OfflineQueue = Depends(get_offline_queue),
                          admin: AdminPrincipal = Depends(require_admin)):
    result = queue.replay(db)
    log_activity("offline", "replayed", result, admin.username)
    return {"success": True, "message": "Offline writes replayed", "data": result}
