import os
import logging
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, HttpUrl
from pymongo.errors import PyMongoError
from typing import List, Optional

import auth
import database
from auth import require_admin
from database import (
    COLL_ADMINS,
    COLL_ARTISANS,
    COLL_BANNERS,
    COLL_CATEGORIES,
    COLL_DELIVERY,
    COLL_GENRES,
    COLL_ORDERS,
    COLL_PRODUCTS,
    COLL_SALES,
    count_documents,
    create_document,
    db_ready,
    delete_document,
    get_document,
    get_documents,
    now,
    to_public,
    update_document,
    upsert_document,
)
from pagination import MAX_PAGE_SIZE, PAGE_SIZE, fetch_page, slice_page, total_pages
from product_form import ProductWizard, validate_details
from schemas import Admin, Artisan, Banner, Category, DeliveryCost, Genre, Product, Sale
from validation import (
    MAX_BANNERS,
    ConflictError,
    FormError,
    dedupe,
    ensure_banner_capacity,
    filter_existing_ids,
    is_blank,
    is_valid_phone,
    name_taken,
    rich_text_is_blank,
)

app = FastAPI(title="Catalog Admin API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------------- Helpers -------------------------------
SALE_DOC_ID = "current_sale"
DELIVERY_DOC_ID = "current_delivery"

BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
BOOTSTRAP_ADMIN_NAME = os.getenv("BOOTSTRAP_ADMIN_NAME", "Admin")

logger = logging.getLogger("uvicorn.error")


@app.exception_handler(FormError)
async def form_error_handler(request: Request, exc: FormError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Store error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred. Please try again."})


def require_db():
    if not db_ready():
        raise HTTPException(status_code=503, detail="Database unavailable")


def require_confirmation(confirm: bool):
    if not confirm:
        raise FormError("Please confirm the deletion.")


def load_or_404(collection_name: str, doc_id: str, label: str) -> dict:
    doc = get_document(collection_name, doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def save_new(collection_name: str, data: dict, label: str, stamp: bool = True) -> str:
    try:
        _id = create_document(collection_name, data, stamp=stamp)
    except Exception as e:
        logger.error(f"Error adding {label}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to add {label}. Please try again.")
    logger.info(f"Added {label} {_id}")
    return _id


def save_changes(collection_name: str, doc_id: str, updates: dict, label: str):
    try:
        found = update_document(collection_name, doc_id, updates)
    except Exception as e:
        logger.error(f"Error updating {label} {doc_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update {label}. Please try again.")
    if not found:
        raise HTTPException(status_code=404, detail=f"{label.capitalize()} not found")
    logger.info(f"Updated {label} {doc_id}")


def delete_and_recount(collection_name: str, doc_id: str, label: str) -> dict:
    try:
        deleted = delete_document(collection_name, doc_id)
    except Exception as e:
        logger.error(f"Error deleting {label} {doc_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Error deleting {label}.")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"{label.capitalize()} not found")
    logger.info(f"Deleted {label} {doc_id}")
    return {"deleted": True, "total_pages": total_pages(count_documents(collection_name), PAGE_SIZE)}


def ensure_bootstrap_admin():
    """Create the first admin from the environment when there is none.
    Never crashes the app if the DB is unavailable.
    """
    if not BOOTSTRAP_ADMIN_EMAIL:
        return
    if not db_ready():
        logger.warning("Database not configured; skipping bootstrap admin")
        return
    try:
        if count_documents(COLL_ADMINS) == 0:
            create_document(COLL_ADMINS, Admin(name=BOOTSTRAP_ADMIN_NAME, email=BOOTSTRAP_ADMIN_EMAIL))
            logger.info(f"Bootstrap admin created: {BOOTSTRAP_ADMIN_EMAIL}")
    except Exception as e:
        logger.error(f"Failed to ensure bootstrap admin: {e}")


# ------------------------------- Public -------------------------------
@app.on_event("startup")
async def startup_event():
    ensure_bootstrap_admin()


@app.get("/")
def read_root():
    return {"message": "Catalog admin backend running"}


@app.get("/test")
def test_database():
    response = {"backend": "running", "db": "not-set"}
    try:
        if db_ready():
            response["db"] = "connected"
            response["collections"] = database.db.list_collection_names()
        else:
            response["db"] = "not-configured"
    except Exception as e:
        response["error"] = str(e)
    return response


# ------------------------------- Auth -------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    email: str


@app.post("/api/admin/login", response_model=LoginResponse)
def admin_login(payload: LoginRequest):
    require_db()
    token = auth.sign_in(payload.email)
    if not token:
        raise HTTPException(status_code=403, detail="You are not authorized to access this admin panel.")
    return {"token": token, "email": payload.email}


@app.post("/api/admin/logout")
def admin_logout(token: Optional[str] = None, authorization: Optional[str] = Header(default=None)):
    auth.sign_out(auth.read_token(token, authorization))
    return {"signed_out": True}


@app.get("/api/admin/me")
def admin_me(email: str = Depends(require_admin)):
    return to_public(auth.find_admin(email))


@app.get("/api/admin/overview", dependencies=[Depends(require_admin)])
def overview():
    return {
        "admins": count_documents(COLL_ADMINS),
        "artisans": count_documents(COLL_ARTISANS),
        "products": count_documents(COLL_PRODUCTS),
        "orders": count_documents(COLL_ORDERS),
    }


# ------------------------------- Admins -------------------------------
@app.get("/api/admin/admins", dependencies=[Depends(require_admin)])
def list_admins(
    q: Optional[str] = None,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    page_size: int = Query(PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return fetch_page(COLL_ADMINS, "created_at", page_size, start_after, end_before, q, search_field="email")


@app.post("/api/admin/admins", dependencies=[Depends(require_admin)])
def add_admin(payload: Admin):
    if auth.find_admin(payload.email):
        raise ConflictError("Admin with this email already exists")
    data = {"name": payload.name.strip(), "email": payload.email.strip()}
    _id = save_new(COLL_ADMINS, data, "admin")
    return {"id": _id}


@app.delete("/api/admin/admins/{admin_id}", dependencies=[Depends(require_admin)])
def delete_admin(admin_id: str, confirm: bool = False):
    require_confirmation(confirm)
    admin = load_or_404(COLL_ADMINS, admin_id, "Admin")
    if count_documents(COLL_ADMINS) <= 1:
        raise FormError("Cannot delete admin! At least one admin must remain in the system.")
    result = delete_and_recount(COLL_ADMINS, admin_id, "admin")
    result["message"] = f"Admin with email {admin.get('email')} deleted successfully."
    return result


# ------------------------------- Artisans -------------------------------
def validate_artisan(payload: Artisan):
    if is_blank(payload.name):
        raise FormError("Name is required.")
    if not is_valid_phone(payload.phone):
        raise FormError("Phone number must be a valid 10-digit number.")
    if rich_text_is_blank(payload.story):
        raise FormError("Story is required.")


@app.get("/api/admin/artisans", dependencies=[Depends(require_admin)])
def list_artisans(
    q: Optional[str] = None,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    page_size: int = Query(PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return fetch_page(COLL_ARTISANS, "created_at", page_size, start_after, end_before, q)


@app.get("/api/admin/artisans/options", dependencies=[Depends(require_admin)])
def artisan_options():
    docs = get_documents(COLL_ARTISANS, sort=[("name", 1)])
    return [{"id": str(d["_id"]), "name": d.get("name", "")} for d in docs]


@app.get("/api/admin/artisans/{artisan_id}", dependencies=[Depends(require_admin)])
def get_artisan(artisan_id: str):
    return to_public(load_or_404(COLL_ARTISANS, artisan_id, "Artisan"))


@app.post("/api/admin/artisans", dependencies=[Depends(require_admin)])
def create_artisan(payload: Artisan):
    validate_artisan(payload)
    _id = save_new(COLL_ARTISANS, payload.model_dump(), "artisan")
    return {"id": _id, "message": "Artisan added successfully."}


@app.put("/api/admin/artisans/{artisan_id}", dependencies=[Depends(require_admin)])
def update_artisan(artisan_id: str, payload: Artisan):
    validate_artisan(payload)
    save_changes(COLL_ARTISANS, artisan_id, {**payload.model_dump(), "updated_at": now()}, "artisan")
    return {"updated": True, "message": "Artisan updated successfully."}


@app.delete("/api/admin/artisans/{artisan_id}", dependencies=[Depends(require_admin)])
def delete_artisan(artisan_id: str, confirm: bool = False):
    require_confirmation(confirm)
    return delete_and_recount(COLL_ARTISANS, artisan_id, "artisan")


# ------------------------------- Categories -------------------------------
def validate_category(payload: Category, exclude_id: Optional[str] = None):
    if is_blank(payload.category_name):
        raise FormError("Category name is required.")
    existing = get_documents(COLL_CATEGORIES)
    if name_taken(payload.category_name, existing, "category_name", exclude_id=exclude_id):
        raise ConflictError("Category already exists")


@app.get("/api/admin/categories", dependencies=[Depends(require_admin)])
def list_categories(
    q: Optional[str] = None,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    page_size: int = Query(PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return fetch_page(COLL_CATEGORIES, "created_at", page_size, start_after, end_before, q,
                      search_field="category_name")


@app.get("/api/admin/categories/options", dependencies=[Depends(require_admin)])
def category_options():
    docs = get_documents(COLL_CATEGORIES, sort=[("category_name", 1)])
    return [{"id": str(d["_id"]), "name": d.get("category_name", "")} for d in docs]


@app.get("/api/admin/categories/{category_id}", dependencies=[Depends(require_admin)])
def get_category(category_id: str):
    return to_public(load_or_404(COLL_CATEGORIES, category_id, "Category"))


@app.post("/api/admin/categories", dependencies=[Depends(require_admin)])
def create_category(payload: Category):
    validate_category(payload)
    data = {"category_name": payload.category_name.strip(), "category_image": payload.category_image}
    _id = save_new(COLL_CATEGORIES, data, "category")
    return {"id": _id, "message": f'The category "{data["category_name"]}" has been added.'}


@app.put("/api/admin/categories/{category_id}", dependencies=[Depends(require_admin)])
def update_category(category_id: str, payload: Category):
    load_or_404(COLL_CATEGORIES, category_id, "Category")
    validate_category(payload, exclude_id=category_id)
    updates = {
        "category_name": payload.category_name.strip(),
        "category_image": payload.category_image,
        "updated_at": now(),
    }
    save_changes(COLL_CATEGORIES, category_id, updates, "category")
    return {"updated": True}


@app.delete("/api/admin/categories/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: str, confirm: bool = False):
    require_confirmation(confirm)
    return delete_and_recount(COLL_CATEGORIES, category_id, "category")


# ------------------------------- Products -------------------------------
class EnabledUpdate(BaseModel):
    enabled: bool


def build_product(payload: Product) -> dict:
    wizard = ProductWizard(payload)
    wizard.next()
    data = wizard.submit()
    artisan = load_or_404(COLL_ARTISANS, data["artisan_id"], "Artisan")
    category = load_or_404(COLL_CATEGORIES, data["category_id"], "Category")
    data["artisan_name"] = artisan.get("name", "")
    data["category_name"] = category.get("category_name", "")
    return data


@app.get("/api/admin/products", dependencies=[Depends(require_admin)])
def list_products(
    q: Optional[str] = None,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    page_size: int = Query(PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return fetch_page(COLL_PRODUCTS, "created_at", page_size, start_after, end_before, q)


@app.post("/api/admin/products/validate-details", dependencies=[Depends(require_admin)])
def validate_product_details(payload: Product):
    validate_details(payload)
    return {"valid": True}


@app.get("/api/admin/products/{product_id}", dependencies=[Depends(require_admin)])
def get_product(product_id: str):
    return to_public(load_or_404(COLL_PRODUCTS, product_id, "Product"))


@app.post("/api/admin/products", dependencies=[Depends(require_admin)])
def create_product(payload: Product):
    data = build_product(payload)
    _id = save_new(COLL_PRODUCTS, data, "product")
    return {"id": _id, "message": "Product added successfully."}


@app.put("/api/admin/products/{product_id}", dependencies=[Depends(require_admin)])
def update_product(product_id: str, payload: Product):
    stored = load_or_404(COLL_PRODUCTS, product_id, "Product")
    data = build_product(payload)
    # the enabled flag is owned by the toggle route unless the edit sends it
    if "enabled" not in payload.model_fields_set:
        data["enabled"] = stored.get("enabled", True)
    save_changes(COLL_PRODUCTS, product_id, {**data, "updated_at": now()}, "product")
    return {"updated": True, "message": "Product updated successfully."}


@app.patch("/api/admin/products/{product_id}/enabled", dependencies=[Depends(require_admin)])
def set_product_enabled(product_id: str, payload: EnabledUpdate):
    save_changes(COLL_PRODUCTS, product_id, {"enabled": payload.enabled, "updated_at": now()}, "product")
    return {"updated": True, "enabled": payload.enabled}


@app.delete("/api/admin/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str, confirm: bool = False):
    require_confirmation(confirm)
    return delete_and_recount(COLL_PRODUCTS, product_id, "product")


# ------------------------------- Genres -------------------------------
class GenreProductsUpdate(BaseModel):
    product_ids: List[str]
    thumbnail_image: Optional[HttpUrl] = None


def product_rows() -> List[dict]:
    docs = get_documents(COLL_PRODUCTS, sort=[("name", 1)])
    return [
        {"id": str(d["_id"]), "name": d.get("name", ""), "thumbnail_image": d.get("thumbnail_image", "")}
        for d in docs
    ]


@app.get("/api/admin/genres", dependencies=[Depends(require_admin)])
def list_genres(
    q: Optional[str] = None,
    start_after: Optional[str] = None,
    end_before: Optional[str] = None,
    page_size: int = Query(PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    return fetch_page(COLL_GENRES, "created_at", page_size, start_after, end_before, q)


@app.get("/api/admin/genres/{genre_id}", dependencies=[Depends(require_admin)])
def get_genre(genre_id: str):
    return to_public(load_or_404(COLL_GENRES, genre_id, "Genre"))


@app.post("/api/admin/genres", dependencies=[Depends(require_admin)])
def create_genre(payload: Genre):
    if is_blank(payload.name):
        raise FormError("Genre name is required.")
    data = {
        "name": payload.name.strip(),
        "thumbnail_image": str(payload.thumbnail_image) if payload.thumbnail_image else "",
        "product_ids": dedupe(payload.product_ids),
    }
    _id = save_new(COLL_GENRES, data, "genre")
    return {"id": _id}


@app.delete("/api/admin/genres/{genre_id}", dependencies=[Depends(require_admin)])
def delete_genre(genre_id: str, confirm: bool = False):
    require_confirmation(confirm)
    return delete_and_recount(COLL_GENRES, genre_id, "genre")


@app.get("/api/admin/genres/{genre_id}/products", dependencies=[Depends(require_admin)])
def genre_products(genre_id: str, q: Optional[str] = None, page: int = 1):
    genre = load_or_404(COLL_GENRES, genre_id, "Genre")
    rows = product_rows()
    selected = filter_existing_ids(genre.get("product_ids") or [], (r["id"] for r in rows))
    return {"genre": to_public(genre), "selected_ids": selected, **slice_page(rows, page, q)}


@app.put("/api/admin/genres/{genre_id}/products", dependencies=[Depends(require_admin)])
def save_genre_products(genre_id: str, payload: GenreProductsUpdate):
    load_or_404(COLL_GENRES, genre_id, "Genre")
    existing = [str(d["_id"]) for d in get_documents(COLL_PRODUCTS)]
    updates = {"product_ids": filter_existing_ids(payload.product_ids, existing), "updated_at": now()}
    if payload.thumbnail_image:
        updates["thumbnail_image"] = str(payload.thumbnail_image)
    save_changes(COLL_GENRES, genre_id, updates, "genre")
    return {"updated": True, "product_ids": updates["product_ids"]}


# ------------------------------- Banners -------------------------------
def clean_banner(payload: Banner) -> str:
    if is_blank(payload.imageUrl):
        raise FormError("Image URL cannot be empty.")
    return payload.imageUrl.strip()


@app.get("/api/admin/banners", dependencies=[Depends(require_admin)])
def list_banners():
    docs = get_documents(COLL_BANNERS, sort=[("createdAt", -1)])
    return {"items": [to_public(d) for d in docs], "count": len(docs), "max": MAX_BANNERS}


@app.post("/api/admin/banners", dependencies=[Depends(require_admin)])
def create_banner(payload: Banner):
    image_url = clean_banner(payload)
    ensure_banner_capacity(count_documents(COLL_BANNERS))
    _id = save_new(COLL_BANNERS, {"imageUrl": image_url, "createdAt": now()}, "banner", stamp=False)
    return {"id": _id, "message": "Banner added successfully."}


@app.put("/api/admin/banners/{banner_id}", dependencies=[Depends(require_admin)])
def update_banner(banner_id: str, payload: Banner):
    image_url = clean_banner(payload)
    save_changes(COLL_BANNERS, banner_id, {"imageUrl": image_url, "updatedAt": now()}, "banner")
    return {"updated": True, "message": "Banner updated successfully."}


@app.delete("/api/admin/banners/{banner_id}", dependencies=[Depends(require_admin)])
def delete_banner(banner_id: str, confirm: bool = False):
    require_confirmation(confirm)
    result = delete_and_recount(COLL_BANNERS, banner_id, "banner")
    result["message"] = "Banner deleted successfully."
    return result


# ------------------------------- Sale -------------------------------
@app.get("/api/admin/sales", dependencies=[Depends(require_admin)])
def get_sale():
    doc = get_document(COLL_SALES, SALE_DOC_ID)
    if not doc:
        return {**Sale().model_dump(), "id": SALE_DOC_ID, "exists": False}
    return {**to_public(doc), "exists": True}


@app.get("/api/admin/sales/products", dependencies=[Depends(require_admin)])
def sale_products(q: Optional[str] = None, page: int = 1):
    return slice_page(product_rows(), page, q)


@app.put("/api/admin/sales", dependencies=[Depends(require_admin)])
def save_sale(payload: Sale):
    if is_blank(payload.title):
        raise FormError("Title is required")
    if is_blank(payload.thumbnail_image):
        raise FormError("Thumbnail image is required")
    data = {**payload.model_dump(), "product_ids": dedupe(payload.product_ids)}
    try:
        existed = upsert_document(COLL_SALES, SALE_DOC_ID, data)
    except Exception as e:
        logger.error(f"Error submitting sale: {e}")
        raise HTTPException(status_code=500, detail="Error saving sale data")
    return {"saved": True, "message": "Sale updated successfully." if existed else "Sale created successfully."}


# ------------------------------- Delivery -------------------------------
@app.get("/api/admin/delivery", dependencies=[Depends(require_admin)])
def get_delivery():
    doc = get_document(COLL_DELIVERY, DELIVERY_DOC_ID)
    if not doc:
        return {**DeliveryCost().model_dump(), "id": DELIVERY_DOC_ID, "exists": False}
    return {**to_public(doc), "exists": True}


@app.put("/api/admin/delivery", dependencies=[Depends(require_admin)])
def save_delivery(payload: DeliveryCost):
    data = {
        "indian_delivery_cost": payload.indian_delivery_cost or 0,
        "international_delivery_cost": payload.international_delivery_cost or 0,
    }
    try:
        existed = upsert_document(COLL_DELIVERY, DELIVERY_DOC_ID, data)
    except Exception as e:
        logger.error(f"Error submitting delivery costs: {e}")
        raise HTTPException(status_code=500, detail="Error saving delivery costs")
    return {
        "saved": True,
        "message": "Delivery costs updated successfully." if existed else "Delivery costs saved successfully.",
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
