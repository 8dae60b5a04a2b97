"""
Integration tests for the catalog service.
"""

import pytest
from decimal import Decimal

from fashionhub.exceptions import ConflictError, InvalidArgumentError, NotFoundError, PermissionDeniedError
from fashionhub.models import Product, ProductStatus
from fashionhub.services import catalog_service


def _row(code, **extra):
    data = {'product_code': code, 'name': f'Item {code}', 'price': '19.90', 'quantity': 4}
    data.update(extra)
    return data


class TestProductCrud:

    def test_create_product(self, session, manager):
        product = catalog_service.create_product(
            _row('DR-100', color='Red', size='S', category='Dresses'), session, manager
        )
        assert product.id is not None
        assert product.price == Decimal('19.90')
        assert product.status == ProductStatus.ACTIVE
        assert product.created_by == manager.id

    def test_duplicate_code_conflicts(self, session, manager, product_x):
        with pytest.raises(ConflictError):
            catalog_service.create_product(_row('X-001'), session, manager)

    def test_code_of_deleted_product_not_reused(self, session, manager, product_x):
        catalog_service.delete_product(product_x.id, session, manager)
        with pytest.raises(ConflictError):
            catalog_service.create_product(_row('X-001'), session, manager)

    @pytest.mark.parametrize('field,value', [
        ('price', '-1'),
        ('quantity', -3),
        ('name', ''),
        ('product_code', '  '),
    ])
    def test_invalid_fields(self, session, manager, field, value):
        with pytest.raises(InvalidArgumentError):
            catalog_service.create_product(_row('BAD-1', **{field: value}), session, manager)

    def test_staff_cannot_edit_catalog(self, session, staff):
        with pytest.raises(PermissionDeniedError):
            catalog_service.create_product(_row('ST-1'), session, staff)

    def test_update_product(self, session, manager, product_x):
        product = catalog_service.update_product(product_x.id, {'price': '12.00', 'quantity': 3}, session, manager)
        assert product.price == Decimal('12.00')
        assert product.quantity == 3
        assert product.name == 'Linen Shirt'

    def test_update_rejects_negative_stock(self, session, manager, product_x):
        with pytest.raises(InvalidArgumentError):
            catalog_service.update_product(product_x.id, {'quantity': -1}, session, manager)

    def test_soft_delete(self, session, manager, product_x):
        catalog_service.delete_product(product_x.id, session, manager)

        assert session.get(Product, product_x.id).status == ProductStatus.DELETED
        with pytest.raises(NotFoundError):
            catalog_service.get_product(product_x.id, session)
        assert catalog_service.get_product(product_x.id, session, include_deleted=True).id == product_x.id

        with pytest.raises(NotFoundError):
            catalog_service.delete_product(product_x.id, session, manager)


class TestListing:

    def test_filters(self, session, make_product):
        make_product('A-1', quantity=0, category='Shoes', size='40')
        make_product('A-2', quantity=3, category='Shoes', size='41')
        make_product('A-3', quantity=20, category='Bags')

        _, total = catalog_service.list_products(session, stock_level='out')
        assert total == 1
        _, total = catalog_service.list_products(session, stock_level='low', low_stock_threshold=5)
        assert total == 2
        products, total = catalog_service.list_products(session, stock_level='in', low_stock_threshold=5)
        assert [p.product_code for p in products] == ['A-3']
        _, total = catalog_service.list_products(session, category='Shoes', size='41')
        assert total == 1

    def test_search_by_name_or_code(self, session, product_x, product_y):
        products, _ = catalog_service.list_products(session, search='linen')
        assert [p.product_code for p in products] == ['X-001']
        products, _ = catalog_service.list_products(session, search='y-0')
        assert [p.product_code for p in products] == ['Y-001']

    def test_invalid_stock_level(self, session):
        with pytest.raises(InvalidArgumentError):
            catalog_service.list_products(session, stock_level='some')

    def test_low_stock_ordering(self, session, make_product):
        make_product('L-1', quantity=4)
        make_product('L-2', quantity=1)
        make_product('L-3', quantity=50)
        products = catalog_service.get_low_stock_products(session, threshold=5)
        assert [p.product_code for p in products] == ['L-2', 'L-1']


class TestBulkImport:

    def test_duplicates_skipped_and_reported(self, session, manager, product_x):
        result = catalog_service.bulk_create_products(
            [_row('B-1'), _row('X-001'), _row('B-2'), _row('B-1')], session, manager
        )
        assert result['imported'] == 2
        assert result['duplicates'] == ['X-001', 'B-1']
        assert session.query(Product).count() == 3

    def test_invalid_row_aborts_import(self, session, manager):
        with pytest.raises(InvalidArgumentError) as exc:
            catalog_service.bulk_create_products([_row('B-1'), _row('B-2', price='-5')], session, manager)
        assert 'Row 2' in exc.value.message
        assert session.query(Product).count() == 0

    def test_staff_cannot_import(self, session, staff):
        with pytest.raises(PermissionDeniedError):
            catalog_service.bulk_create_products([_row('B-1')], session, staff)


class TestDecrementStock:

    def test_atomic_decrement(self, session, product_x):
        assert catalog_service.decrement_stock(session, product_x.id, 4) == 6
        session.commit()
        assert session.get(Product, product_x.id).quantity == 6

    def test_missing_product(self, session):
        with pytest.raises(NotFoundError):
            catalog_service.decrement_stock(session, 777, 1)
        session.rollback()
