"""
Unit tests for model helpers and serialization.
"""

import pytest
from decimal import Decimal

from fashionhub.exceptions import InvalidTransitionError, NotFoundError
from fashionhub.models import InvoiceStatus, UserRole, AppUser, ProductStatus
from fashionhub.utils.formatters import money_display, date_display


class TestEnums:

    @pytest.mark.parametrize('raw', ['Processed', 'PROCESSED', 'processed', ' processed '])
    def test_invoice_status_parse(self, raw):
        assert InvoiceStatus.parse(raw) is InvoiceStatus.PROCESSED

    def test_invoice_status_parse_unknown(self):
        with pytest.raises(ValueError):
            InvoiceStatus.parse('Archived')

    def test_user_role_parse(self):
        assert UserRole.parse('manager') is UserRole.MANAGER


class TestAppUserModel:

    def test_password_hashing(self):
        user = AppUser(email='a@b.com', role='Staff')
        user.set_password('securepassword')
        assert user.password_hash != 'securepassword'
        assert user.check_password('securepassword')
        assert not user.check_password('wrong')

    def test_no_password_never_matches(self):
        assert AppUser(email='a@b.com').check_password('') is False


class TestSerialization:

    def test_product_to_dict(self, product_x):
        data = product_x.to_dict()
        assert data['product_code'] == 'X-001'
        assert data['price'] == '10.00'
        assert data['quantity'] == 10
        assert data['is_active'] is True

    def test_soft_deleted_product_hidden_from_active(self, session, product_x, product_y):
        from fashionhub.models import Product
        product_y.status = ProductStatus.DELETED
        session.commit()
        codes = [p.product_code for p in Product.active(session).all()]
        assert codes == ['X-001']


class TestErrors:

    def test_error_to_dict(self):
        err = InvalidTransitionError('Processed', 'Pending')
        data = err.to_dict()
        assert err.status_code == 409
        assert data['error'] == 'invalid_transition'
        assert data['current_status'] == 'Processed'
        assert data['requested_status'] == 'Pending'

    def test_not_found_status(self):
        assert NotFoundError().status_code == 404


class TestFormatters:

    def test_money_display(self):
        assert money_display(Decimal('1500')) == '$1,500.00'
        assert money_display(Decimal('-5')) == '-$5.00'
        assert money_display(None) == '-'

    def test_date_display_none(self):
        assert date_display(None) == '-'
