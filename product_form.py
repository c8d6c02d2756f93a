"""
Two-step product form.

Step 1 collects the product details, step 2 the color x size combinations.
The wizard only moves forward when the current step validates, and moving back
keeps everything entered so far.
"""
import math
from typing import List, Optional

from schemas import Combination, Product
from validation import (
    WHOLE_NUMBER_RE,
    FormError,
    find_duplicate_combination,
    find_duplicate_label,
    is_blank,
    non_blank,
    rich_text_is_blank,
)

DETAILS = 1
COMBINATIONS = 2


def validate_details(product: Product):
    if is_blank(product.name):
        raise FormError("Product name is required.")
    if len(non_blank(product.images)) < 2:
        raise FormError("Please add at least two valid image links.")
    if is_blank(product.artisan_id):
        raise FormError("Please select an artisan.")
    if is_blank(product.category_id):
        raise FormError("Please select a category.")
    if rich_text_is_blank(product.description):
        raise FormError("Product description is required.")
    if is_blank(product.returnPolicy):
        raise FormError("Please select a return policy.")
    if len(non_blank(product.colors)) < 1:
        raise FormError("Please add at least one valid color.")
    if len(non_blank(product.sizes)) < 1:
        raise FormError("Please add at least one valid size.")
    duplicate = find_duplicate_label(product.colors)
    if duplicate:
        raise FormError(f'Color "{duplicate}" is listed more than once.')
    duplicate = find_duplicate_label(product.sizes)
    if duplicate:
        raise FormError(f'Size "{duplicate}" is listed more than once.')


def validate_combinations(product: Product):
    combinations = product.combinations
    if len(combinations) < 1:
        raise FormError("Please add at least one combination.")
    for combo in combinations:
        if any(is_blank(v) for v in (combo.color, combo.size, combo.price, combo.quantity)):
            raise FormError("Each combination must include valid color, size, price, and quantity.")

    colors = {c.lower() for c in non_blank(product.colors)}
    sizes = {s.lower() for s in non_blank(product.sizes)}
    for combo in combinations:
        if combo.color.strip().lower() not in colors:
            raise FormError(f'Color "{combo.color}" is not one of the product colors.')
        if combo.size.strip().lower() not in sizes:
            raise FormError(f'Size "{combo.size}" is not one of the product sizes.')
        try:
            price = float(combo.price)
        except ValueError:
            raise FormError(f'Price "{combo.price}" is not a number.')
        if not math.isfinite(price):
            raise FormError(f'Price "{combo.price}" is not a number.')
        if price < 0:
            raise FormError("Price cannot be negative.")
        if WHOLE_NUMBER_RE.fullmatch(combo.quantity.strip()) is None:
            raise FormError(f'Quantity "{combo.quantity}" must be a whole number.')

    duplicate = find_duplicate_combination(combinations)
    if duplicate:
        raise FormError(f"Duplicate combination for color {duplicate[0]} and size {duplicate[1]}.")


class ProductWizard:
    """Holds the form state between steps."""

    def __init__(self, product: Optional[Product] = None):
        self.product = product or Product()
        self.step = DETAILS

    def next(self):
        validate_details(self.product)
        self.step = COMBINATIONS

    def back(self):
        self.step = DETAILS

    def set_combinations(self, combinations: List[Combination]):
        self.product.combinations = list(combinations)

    def submit(self) -> dict:
        if self.step != COMBINATIONS:
            raise FormError("Complete the product details before adding combinations.")
        validate_combinations(self.product)
        return clean_product(self.product)


def clean_product(product: Product) -> dict:
    data = product.model_dump()
    data["name"] = product.name.strip()
    data["images"] = non_blank(product.images)
    data["colors"] = non_blank(product.colors)
    data["sizes"] = non_blank(product.sizes)
    data["combinations"] = [
        {
            "color": c.color.strip(),
            "size": c.size.strip(),
            "price": c.price.strip(),
            "quantity": c.quantity.strip(),
        }
        for c in product.combinations
    ]
    if is_blank(data["thumbnail_image"]) and data["images"]:
        data["thumbnail_image"] = data["images"][0]
    return data
