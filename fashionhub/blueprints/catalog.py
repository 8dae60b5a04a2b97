"""Catalog blueprint - product JSON API."""
from flask import Blueprint, request, g, jsonify, current_app

from fashionhub.database import get_session
from fashionhub.decorators.permissions import require_permission, VIEW_CATALOG
from fashionhub.exceptions import InvalidArgumentError
from fashionhub.middleware import require_login
from fashionhub.services import catalog_service
from fashionhub.utils.pagination import page_args, page_meta

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api/products')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError('Request body must be a JSON object')
    return data


@catalog_bp.route('', methods=['GET'])
@require_login
@require_permission(VIEW_CATALOG)
def list_products():
    """List active products with search, filters and pagination."""
    page, limit, offset = page_args()

    products, total = catalog_service.list_products(
        get_session(),
        limit=limit,
        offset=offset,
        search=request.args.get('search', '').strip() or None,
        category=request.args.get('category', '').strip() or None,
        size=request.args.get('size', '').strip() or None,
        stock_level=request.args.get('stock_level', '').strip().lower() or None,
        low_stock_threshold=current_app.config.get('LOW_STOCK_THRESHOLD', 5)
    )

    return jsonify({
        'products': [p.to_dict() for p in products],
        'pagination': page_meta(page, limit, total),
    })


@catalog_bp.route('/low-stock', methods=['GET'])
@require_login
@require_permission(VIEW_CATALOG)
def low_stock():
    """Active products at or below the configured threshold."""
    threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 5)
    products = catalog_service.get_low_stock_products(get_session(), threshold)
    return jsonify({'threshold': threshold, 'products': [p.to_dict() for p in products]})


@catalog_bp.route('/<int:product_id>', methods=['GET'])
@require_login
@require_permission(VIEW_CATALOG)
def get_product(product_id):
    product = catalog_service.get_product(product_id, get_session())
    return jsonify({'product': product.to_dict()})


@catalog_bp.route('', methods=['POST'])
@require_login
def create_product():
    product = catalog_service.create_product(_json_body(), get_session(), g.user)
    current_app.logger.info(f"Product {product.product_code} created by {g.user.email}")
    return jsonify({'product': product.to_dict()}), 201


@catalog_bp.route('/<int:product_id>', methods=['PUT'])
@require_login
def update_product(product_id):
    product = catalog_service.update_product(product_id, _json_body(), get_session(), g.user)
    return jsonify({'product': product.to_dict()})


@catalog_bp.route('/<int:product_id>', methods=['DELETE'])
@require_login
def delete_product(product_id):
    """Soft delete."""
    product = catalog_service.delete_product(product_id, get_session(), g.user)
    return jsonify({'status': 'ok', 'product': product.to_dict()})


@catalog_bp.route('/bulk', methods=['POST'])
@require_login
def bulk_create():
    """Bulk import: {"products": [...]}. Duplicates are skipped and reported."""
    data = _json_body()
    result = catalog_service.bulk_create_products(data.get('products'), get_session(), g.user)
    return jsonify({
        'imported': result['imported'],
        'duplicates': result['duplicates'],
        'products': [p.to_dict() for p in result['products']],
    }), 201
