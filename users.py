import logging

from fastapi import APIRouter, Depends
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from auth import UserPrincipal, require_user
from config import Settings, get_settings
from database import ORDERS, USERS, find_by_id, get_db, to_dict
from errors import error_response
from helpers import isoformat, utcnow
from identity import IdentityProvider, IdentityProviderError, get_identity_provider
from schemas import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest, User
from security import create_user_token, hash_password, verify_password
from validation import sanitize_fields, validate_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _public(user: dict) -> dict:
    data = to_dict(user)
    data.pop("hashedPassword", None)
    return data


@router.post("/register", status_code=201)
def register(req: RegisterRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings),
             provider: IdentityProvider = Depends(get_identity_provider)):
    validation = validate_user(req.model_dump())
    if not validation.is_valid:
        return error_response(400, "Validation failed", errors=validation.errors)

    email = req.email.strip().lower()
    if db[USERS].find_one({"email": email}):
        return error_response(409, "User with this email already exists")

    provider_uid = None
    try:
        provider_uid = provider.create_user(email, req.password, req.name.strip())
    except IdentityProviderError as e:
        logger.warning("Identity provider registration failed (%s), keeping local account only", e.code)

    now = isoformat(utcnow())
    user = User(
        name=req.name.strip(),
        email=email,
        hashed_password=hash_password(req.password, settings.bcrypt_rounds),
        provider_uid=provider_uid,
        created_at=now,
        updated_at=now,
    )
    doc = user.model_dump(by_alias=True)
    try:
        result = db[USERS].insert_one(doc)
    except DuplicateKeyError:
        # lost a race with a concurrent registration for the same email
        return error_response(409, "User with this email already exists")
    doc["_id"] = result.inserted_id
    logger.info("Registered user %s", result.inserted_id)
    return {"success": True, "message": "User registered successfully", "data": _public(doc)}


@router.post("/login")
def login(req: LoginRequest, db: Database = Depends(get_db), settings: Settings = Depends(get_settings),
          provider: IdentityProvider = Depends(get_identity_provider)):
    if not req.email or not req.password:
        return error_response(400, "Email and password are required")

    user = db[USERS].find_one({"email": req.email.strip().lower()})
    if not user:
        return error_response(401, "Invalid email or password")
    if not user.get("isActive"):
        return error_response(403, "Account is deactivated. Please contact support.")

    authenticated = False
    try:
        provider.sign_in(user["email"], req.password)
        authenticated = True
    except IdentityProviderError as e:
        logger.info("Identity provider sign-in failed (%s), trying local password", e.code)
        authenticated = verify_password(req.password, user.get("hashedPassword"))
    if not authenticated:
        return error_response(401, "Invalid email or password")

    now = isoformat(utcnow())
    db[USERS].update_one({"_id": user["_id"]}, {"$set": {"lastLogin": now, "updatedAt": now}})
    user.update(lastLogin=now, updatedAt=now)

    data = _public(user)
    data["token"] = create_user_token(settings.token_secret, data["id"], user["email"])
    return {"success": True, "message": "Login successful", "data": data}


@router.post("/logout")
def logout(provider: IdentityProvider = Depends(get_identity_provider)):
    try:
        provider.sign_out()
    except IdentityProviderError as e:
        logger.info("Identity provider sign-out failed (non-critical): %s", e.code)
    return {"success": True, "message": "Logout successful"}


@router.get("/profile")
def get_profile(db: Database = Depends(get_db), user: UserPrincipal = Depends(require_user)):
    doc = find_by_id(db, USERS, user.id)
    if not doc:
        return error_response(404, "User not found")
    return {"success": True, "data": _public(doc)}


@router.put("/profile")
def update_profile(payload: ProfileUpdate, db: Database = Depends(get_db),
                   user: UserPrincipal = Depends(require_user)):
    fields = payload.model_dump(exclude_none=True)
    validation = validate_user(fields, partial=True)
    if not validation.is_valid:
        return error_response(400, "Validation failed", errors=validation.errors)

    clean = sanitize_fields(fields, ("name", "phone", "address", "city"))
    updates = {}
    if clean.get("name"):
        updates["name"] = clean["name"]
    for key in ("phone", "address", "city"):
        if clean.get(key):
            updates[f"profile.{key}"] = clean[key]
    if payload.preferences is not None:
        updates["profile.preferences"] = payload.preferences
    updates["updatedAt"] = isoformat(utcnow())

    current = find_by_id(db, USERS, user.id)
    if not current:
        return error_response(404, "User not found")
    db[USERS].update_one({"_id": current["_id"]}, {"$set": updates})

    refreshed = db[USERS].find_one({"_id": current["_id"]})
    return {"success": True, "message": "Profile updated successfully", "data": _public(refreshed)}


@router.get("/orders")
def my_orders(db: Database = Depends(get_db), user: UserPrincipal = Depends(require_user)):
    found = db[ORDERS].find({"customerInfo.email": user.email}).sort("createdAt", DESCENDING)
    return {"success": True, "data": [to_dict(o) for o in found]}


@router.post("/change-password")
def change_password(req: ChangePasswordRequest, db: Database = Depends(get_db),
                    settings: Settings = Depends(get_settings), user: UserPrincipal = Depends(require_user)):
    if not req.current_password or not req.new_password:
        return error_response(400, "Current password and new password are required")
    if len(req.new_password) < 6:
        return error_response(400, "New password must be at least 6 characters long")

    doc = find_by_id(db, USERS, user.id)
    if not doc:
        return error_response(404, "User not found")
    if not verify_password(req.current_password, doc.get("hashedPassword")):
        return error_response(401, "Current password is incorrect")

    db[USERS].update_one({"_id": doc["_id"]}, {"$set": {
        "hashedPassword": hash_password(req.new_password, settings.bcrypt_rounds),
        "updatedAt": isoformat(utcnow()),
    }})
    logger.info("Password changed for user %s", user.id)
    return {"success": True, "message": "Password changed successfully"}
