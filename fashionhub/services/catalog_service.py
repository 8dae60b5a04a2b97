"""Catalog service: product CRUD, bulk import and stock primitives."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fashionhub.decorators.permissions import (
    ensure_capability, EDIT_PRODUCTS, DELETE_PRODUCTS, IMPORT_PRODUCTS
)
from fashionhub.exceptions import (
    FashionHubError, ConflictError, InvalidArgumentError, NotFoundError
)
from fashionhub.models import Product, ProductStatus, ActivityModule
from fashionhub.services.audit_service import log_activity
from fashionhub.utils.money import parse_money, parse_quantity
from fashionhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

TEXT_FIELDS = ('name', 'color', 'size', 'category', 'description', 'image_url')
STOCK_LEVELS = ('low', 'out', 'in')


# =====================================================
# READS
# =====================================================

def get_product(product_id: int, session: Session, include_deleted: bool = False) -> Product:
    """Fetch a product by internal id. Deleted products count as missing unless asked for."""
    product = session.get(Product, product_id)
    if not product or (not include_deleted and not product.is_active):
        raise NotFoundError(f'Product {product_id} not found')
    return product


def get_product_by_code(product_code: str, session: Session) -> Optional[Product]:
    """Lookup by business key, including deleted products (keys are never reused)."""
    return session.query(Product).filter(Product.product_code == product_code).first()


def list_products(
    session: Session,
    limit: int = 20,
    offset: int = 0,
    search: str = None,
    category: str = None,
    size: str = None,
    stock_level: str = None,
    low_stock_threshold: int = 5
) -> Tuple[List[Product], int]:
    """
    List active products, newest first.

    stock_level: 'low' (<= threshold), 'out' (== 0) or 'in' (> threshold).
    """
    query = Product.active(session)

    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(
            (Product.name.ilike(pattern)) | (Product.product_code.ilike(pattern))
        )
    if category:
        query = query.filter(Product.category == category)
    if size:
        query = query.filter(Product.size == size)

    if stock_level:
        if stock_level not in STOCK_LEVELS:
            raise InvalidArgumentError(f'stock_level must be one of {", ".join(STOCK_LEVELS)}', field='stock_level')
        if stock_level == 'low':
            query = query.filter(Product.quantity <= low_stock_threshold)
        elif stock_level == 'out':
            query = query.filter(Product.quantity == 0)
        else:
            query = query.filter(Product.quantity > low_stock_threshold)

    total = query.count()
    products = (
        query.order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return products, total


def get_low_stock_products(session: Session, threshold: int = 5) -> List[Product]:
    """Active products at or below the threshold, lowest stock first."""
    return (
        Product.active(session)
        .filter(Product.quantity <= threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )


# =====================================================
# WRITES
# =====================================================

def _validate_product_payload(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Normalize a create/update payload. partial=True only validates keys present."""
    data = {}

    if not partial or 'product_code' in payload:
        code = (payload.get('product_code') or '').strip()
        if not code:
            raise InvalidArgumentError('product_code is required', field='product_code')
        data['product_code'] = code

    if not partial or 'name' in payload:
        name = (payload.get('name') or '').strip()
        if not name:
            raise InvalidArgumentError('name is required', field='name')
        data['name'] = name

    if not partial or 'price' in payload:
        data['price'] = parse_money(payload.get('price'), 'price')

    if not partial or 'quantity' in payload:
        data['quantity'] = parse_quantity(payload.get('quantity', 0), 'quantity', minimum=0)

    for field in TEXT_FIELDS:
        if field == 'name' or field not in payload:
            continue
        value = payload.get(field)
        data[field] = value.strip() if isinstance(value, str) and value.strip() else None

    return data


def create_product(payload: Dict[str, Any], session: Session, actor) -> Product:
    """
    Create a catalog product.

    Raises:
        ConflictError: business key already used (also by a deleted product)
    """
    ensure_capability(actor, EDIT_PRODUCTS)
    data = _validate_product_payload(payload)

    try:
        if get_product_by_code(data['product_code'], session):
            raise ConflictError(
                f"Product ID {data['product_code']} already exists",
                payload={'product_code': data['product_code']}
            )

        product = Product(created_by=actor.id, status=ProductStatus.ACTIVE, **data)
        session.add(product)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Product ID {data['product_code']} already exists")
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    log_activity(session, actor, f'Created product "{product.name}"', ActivityModule.PRODUCTS,
                 product.id, product.name)
    return product


def update_product(product_id: int, payload: Dict[str, Any], session: Session, actor) -> Product:
    """Partially update an active product (price, stock, descriptive fields)."""
    ensure_capability(actor, EDIT_PRODUCTS)
    data = _validate_product_payload(payload, partial=True)

    try:
        product = get_product(product_id, session)

        new_code = data.get('product_code')
        if new_code and new_code != product.product_code and get_product_by_code(new_code, session):
            raise ConflictError(f'Product ID {new_code} already exists', payload={'product_code': new_code})

        for field, value in data.items():
            setattr(product, field, value)
        product.updated_at = utcnow()
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError('Product ID already exists')
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    log_activity(session, actor, f'Updated product "{product.name}"', ActivityModule.PRODUCTS,
                 product.id, product.name, details={'fields': sorted(data.keys())})
    return product


def delete_product(product_id: int, session: Session, actor) -> Product:
    """Soft delete: the row stays so historical invoice items keep their reference."""
    ensure_capability(actor, DELETE_PRODUCTS)

    try:
        product = get_product(product_id, session)
        product.status = ProductStatus.DELETED
        product.updated_at = utcnow()
        session.commit()
    except (FashionHubError, SQLAlchemyError):
        session.rollback()
        raise

    logger.info(f"Product {product.product_code} soft-deleted by user {actor.id}")
    log_activity(session, actor, f'Deleted product "{product.name}"', ActivityModule.PRODUCTS,
                 product.id, product.name)
    return product


def bulk_create_products(rows: List[Dict[str, Any]], session: Session, actor) -> Dict[str, Any]:
    """
    Import catalog rows through the same validation as create_product.

    Rows whose business key already exists (in the catalog or earlier in the
    same batch) are skipped and reported; the rest are inserted in one
    transaction. Any invalid row aborts the whole import.

    Returns:
        {'imported': int, 'duplicates': [product_code, ...], 'products': [Product, ...]}
    """
    ensure_capability(actor, IMPORT_PRODUCTS)

    if not isinstance(rows, list) or not rows:
        raise InvalidArgumentError('products must be a non-empty list', field='products')

    validated = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise InvalidArgumentError(f'Row {index + 1} is not an object', field='products')
        try:
            validated.append(_validate_product_payload(row))
        except InvalidArgumentError as e:
            raise InvalidArgumentError(f'Row {index + 1}: {e.message}', field=e.field)

    codes = [data['product_code'] for data in validated]
    try:
        existing = {
            code for (code,) in session.query(Product.product_code)
            .filter(Product.product_code.in_(codes))
            .all()
        }

        duplicates = []
        created = []
        seen = set()
        for data in validated:
            code = data['product_code']
            if code in existing or code in seen:
                duplicates.append(code)
                continue
            seen.add(code)
            product = Product(created_by=actor.id, status=ProductStatus.ACTIVE, **data)
            session.add(product)
            created.append(product)

        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError('Import conflicted with a concurrent catalog change, please retry')
    except SQLAlchemyError:
        session.rollback()
        raise

    logger.info(f"Bulk import by user {actor.id}: {len(created)} created, {len(duplicates)} duplicates skipped")
    log_activity(session, actor, f'Bulk imported {len(created)} products', ActivityModule.PRODUCTS,
                 details={'imported': len(created), 'duplicates': len(duplicates)})

    return {'imported': len(created), 'duplicates': duplicates, 'products': created}


# =====================================================
# STOCK PRIMITIVES
# =====================================================

def decrement_stock(session: Session, product_id: int, quantity: int) -> int:
    """
    Atomically subtract `quantity` from a product's stock and return the new level.

    A single UPDATE ... SET quantity = quantity - :n, so concurrent callers
    serialize on the product row instead of overwriting each other. Does not
    commit; the caller owns the transaction.

    Raises:
        NotFoundError: the product row does not exist
    """
    result = session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f'Product {product_id} not found')

    return session.query(Product.quantity).filter(Product.id == product_id).scalar()
