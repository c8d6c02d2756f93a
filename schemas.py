"""
Database Schemas for the catalog admin console

Each Pydantic model describes the documents of one collection (see the
COLL_* names in database.py). Timestamps are stamped by the write helpers and
are not part of these models.
"""
from pydantic import BaseModel, Field, EmailStr, HttpUrl, field_validator
from typing import List, Literal, Optional

# Admin (collection: "admins")
class Admin(BaseModel):
    name: str = Field("", description="Display name from the sign-in provider")
    email: EmailStr = Field(..., description="Sign-in email, unique")

# Artisan (collection: "artisans")
class Artisan(BaseModel):
    name: str
    image: str = Field(..., description="Thumbnail image URL")
    address: str
    phone: str = Field(..., description="10 digit phone number")
    story: str = Field(..., description="Rich text (HTML) story")

# Category (collection: "categories")
class Category(BaseModel):
    category_name: str
    category_image: str = ""

# Combination of a product variant
class Combination(BaseModel):
    color: str = ""
    size: str = ""
    price: str = ""
    quantity: str = ""

# Product (collection: "products")
class Product(BaseModel):
    name: str = ""
    thumbnail_image: str = ""
    images: List[str] = Field(default_factory=lambda: ["", ""])
    artisan_id: str = ""
    artisan_name: str = ""
    category_id: str = ""
    category_name: str = ""
    colors: List[str] = Field(default_factory=lambda: [""])
    sizes: List[str] = Field(default_factory=lambda: [""])
    combinations: List[Combination] = Field(default_factory=list)
    description: str = Field("", description="Rich text (HTML) description")
    returnPolicy: str = ""
    enabled: bool = True

# Genre (collection: "genres")
class Genre(BaseModel):
    name: str
    thumbnail_image: Optional[HttpUrl] = None
    product_ids: List[str] = Field(default_factory=list)

# Banner (collection: "banners"), camelCase fields as stored by the storefront
class Banner(BaseModel):
    imageUrl: str

# Sale singleton (collection: "sales", id "current_sale")
class Sale(BaseModel):
    title: str = ""
    thumbnail_image: str = ""
    product_ids: List[str] = Field(default_factory=list)
    status: Literal["live", "closed"] = "live"

# Delivery cost singleton (collection: "delivery", id "current_delivery")
class DeliveryCost(BaseModel):
    indian_delivery_cost: Optional[int] = Field(0, ge=0, description="Domestic cost in INR")
    international_delivery_cost: Optional[int] = Field(0, ge=0, description="International cost in USD")

    @field_validator("indian_delivery_cost", "international_delivery_cost", mode="before")
    @classmethod
    def empty_as_zero(cls, v):
        # a cleared number input arrives as ""
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v
