"""
HTTP API tests (Flask test client, session-cookie auth).
"""

from fashionhub.models import Product

PASSWORD = 'password123'


def _create_invoice(client, *items, **customer):
    body = {
        'invoice': {'customer_name': 'Ada Buyer', 'customer_email': 'ada@example.com', **customer},
        'items': [{'product_id': pid, 'quantity': qty} for pid, qty in items],
    }
    response = client.post('/api/invoices', json=body)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['invoice']


class TestAuth:

    def test_login_and_me(self, client, manager):
        response = client.post('/auth/login', json={'email': manager.email, 'password': PASSWORD})
        assert response.status_code == 200
        assert response.get_json()['user']['role'] == 'Manager'

        me = client.get('/auth/me').get_json()['user']
        assert me['email'] == manager.email
        assert 'process_invoices' in me['capabilities']
        assert 'delete_invoices' not in me['capabilities']

    def test_bad_password(self, client, manager):
        response = client.post('/auth/login', json={'email': manager.email, 'password': 'nope'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'unauthorized'

    def test_inactive_user_cannot_login(self, client, make_user):
        user = make_user('Staff', email='gone@fashionhub.test', active=False)
        response = client.post('/auth/login', json={'email': user.email, 'password': PASSWORD})
        assert response.status_code == 401

    def test_anonymous_requests_rejected(self, client):
        assert client.get('/api/invoices').status_code == 401
        assert client.get('/api/products').status_code == 401

    def test_logout(self, client, login, staff):
        login(staff)
        assert client.post('/auth/logout').status_code == 200
        assert client.get('/auth/me').status_code == 401


class TestCatalogApi:

    def test_create_list_and_get(self, login, manager):
        client = login(manager)
        response = client.post('/api/products', json={
            'product_code': 'TS-01', 'name': 'Tee', 'price': '15.00', 'quantity': 2, 'size': 'M'
        })
        assert response.status_code == 201
        product_id = response.get_json()['product']['id']

        listing = client.get('/api/products?stock_level=low').get_json()
        assert listing['pagination']['total'] == 1
        assert listing['products'][0]['product_code'] == 'TS-01'

        detail = client.get(f'/api/products/{product_id}').get_json()['product']
        assert detail['price'] == '15.00'

    def test_duplicate_is_409(self, login, manager, product_x):
        response = login(manager).post('/api/products', json={
            'product_code': 'X-001', 'name': 'Dup', 'price': '1.00', 'quantity': 1
        })
        assert response.status_code == 409
        assert response.get_json()['error'] == 'conflict'

    def test_delete_is_soft(self, login, session, manager, product_x):
        product_id = product_x.id
        client = login(manager)
        assert client.delete(f'/api/products/{product_id}').status_code == 200
        assert client.get(f'/api/products/{product_id}').status_code == 404
        assert session.get(Product, product_id) is not None

    def test_bulk_import(self, login, manager, product_x):
        response = login(manager).post('/api/products/bulk', json={'products': [
            {'product_code': 'X-001', 'name': 'Dup', 'price': '1.00', 'quantity': 1},
            {'product_code': 'N-1', 'name': 'New', 'price': '2.00', 'quantity': 5},
        ]})
        assert response.status_code == 201
        data = response.get_json()
        assert data['imported'] == 1
        assert data['duplicates'] == ['X-001']

    def test_viewer_reads_but_cannot_write(self, login, viewer, product_x):
        client = login(viewer)
        assert client.get('/api/products').status_code == 200
        response = client.put(f'/api/products/{product_x.id}', json={'price': '1.00'})
        assert response.status_code == 403
        assert response.get_json()['capability'] == 'edit_products'

    def test_bad_pagination(self, login, viewer):
        assert login(viewer).get('/api/products?page=0').status_code == 400


class TestInvoiceApi:

    def test_full_flow(self, client, login, staff, manager, product_x, product_y):
        x_id, y_id = product_x.id, product_y.id
        login(staff)

        invoice = _create_invoice(client, (x_id, 2), (y_id, 1))
        assert invoice['invoice_number'] == 'INV-0001'
        assert invoice['subtotal'] == '25.00'
        assert invoice['total'] == '25.00'
        invoice_id = invoice['id']

        data = client.put(f'/api/invoices/{invoice_id}/discount', json={'discount_amount': '5.00'}).get_json()
        assert data['invoice']['total'] == '20.00'
        assert data['invoice']['discount_percentage'] == '0.2000'

        response = client.post(f'/api/invoices/{invoice_id}/items', json={'product_id': y_id, 'quantity': 2})
        assert response.status_code == 201
        item_id = response.get_json()['item']['id']
        assert response.get_json()['invoice']['subtotal'] == '35.00'

        data = client.put(f'/api/invoices/items/{item_id}', json={'quantity': 1}).get_json()
        assert data['invoice']['subtotal'] == '30.00'

        data = client.delete(f'/api/invoices/items/{item_id}').get_json()
        assert data['invoice']['subtotal'] == '25.00'
        assert data['invoice']['total'] == '20.00'

        # Staff may not process
        response = client.put(f'/api/invoices/{invoice_id}/status', json={'status': 'Processed'})
        assert response.status_code == 403

        login(manager)
        response = client.put(f'/api/invoices/{invoice_id}/status', json={'status': 'Processed'})
        assert response.status_code == 200
        assert response.get_json()['invoice']['status'] == 'Processed'

        products = {p['id']: p for p in client.get('/api/products').get_json()['products']}
        assert products[x_id]['quantity'] == 8
        assert products[y_id]['quantity'] == 9

        response = client.put(f'/api/invoices/{invoice_id}/status', json={'status': 'Processed'})
        assert response.status_code == 409
        assert response.get_json()['error'] == 'invalid_transition'

        response = client.put(f'/api/invoices/{invoice_id}/discount', json={'discount_amount': '1.00'})
        assert response.status_code == 409
        assert response.get_json()['error'] == 'invalid_state'

    def test_get_with_items(self, login, staff, product_x):
        client = login(staff)
        invoice = _create_invoice(client, (product_x.id, 1))

        data = client.get(f"/api/invoices/{invoice['id']}").get_json()['invoice']
        assert len(data['items']) == 1
        assert data['items'][0]['product']['product_code'] == 'X-001'
        assert data['items'][0]['unit_price'] == '10.00'

    def test_back_to_pending_and_unknown_status(self, login, admin, product_x):
        client = login(admin)
        invoice = _create_invoice(client, (product_x.id, 1))

        response = client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Pending'})
        assert response.status_code == 409
        response = client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Shipped'})
        assert response.status_code == 400

    def test_delete_and_listing(self, login, admin, product_x):
        client = login(admin)
        gone = _create_invoice(client, (product_x.id, 1))
        kept = _create_invoice(client, (product_x.id, 1), customer_name='Grace')

        assert client.put(f"/api/invoices/{gone['id']}/status", json={'status': 'Deleted'}).status_code == 200
        response = client.put(f"/api/invoices/{gone['id']}/status", json={'status': 'Deleted'})
        assert response.status_code == 409
        assert response.get_json()['error'] == 'conflict'

        listing = client.get('/api/invoices').get_json()
        assert [i['id'] for i in listing['invoices']] == [kept['id']]
        deleted = client.get('/api/invoices?status=Deleted').get_json()
        assert [i['id'] for i in deleted['invoices']] == [gone['id']]

    def test_negative_discount_is_400(self, login, staff, product_x):
        client = login(staff)
        invoice = _create_invoice(client, (product_x.id, 1))
        response = client.put(f"/api/invoices/{invoice['id']}/discount", json={'discount_amount': -3})
        assert response.status_code == 400
        assert response.get_json()['field'] == 'discount_amount'

    def test_missing_invoice_is_404(self, login, staff):
        assert login(staff).get('/api/invoices/999').status_code == 404

    def test_invalid_date_filter(self, login, staff):
        assert login(staff).get('/api/invoices?start_date=yesterday').status_code == 400


class TestDocuments:

    def test_pdf_requires_processed(self, login, manager, product_x):
        client = login(manager)
        invoice = _create_invoice(client, (product_x.id, 2))

        assert client.get(f"/api/invoices/{invoice['id']}/pdf").status_code == 409

        client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Processed'})
        response = client.get(f"/api/invoices/{invoice['id']}/pdf")
        assert response.status_code == 200
        assert response.headers['Content-Type'] == 'application/pdf'
        assert response.data.startswith(b'%PDF')

    def test_email_processed_invoice(self, login, manager, product_x):
        client = login(manager)
        invoice = _create_invoice(client, (product_x.id, 1))

        assert client.post(f"/api/invoices/{invoice['id']}/email").status_code == 409

        client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Processed'})
        response = client.post(f"/api/invoices/{invoice['id']}/email")
        assert response.status_code == 200
        assert response.get_json()['to'] == 'ada@example.com'


class TestBackOffice:

    def test_dashboard_metrics(self, login, manager, product_x, make_product):
        make_product('LOW-1', quantity=2)
        client = login(manager)
        invoice = _create_invoice(client, (product_x.id, 2))
        _create_invoice(client, (product_x.id, 1))
        client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Processed'})

        data = client.get('/api/dashboard/metrics').get_json()
        assert data['total_products'] == 2
        assert data['low_stock_count'] == 1
        assert data['pending_invoices'] == 1
        assert data['processed_this_month'] == 1
        assert data['revenue_this_month'] == '20.00'

    def test_activity_log(self, login, manager, staff, product_x):
        client = login(manager)
        invoice = _create_invoice(client, (product_x.id, 1))
        client.put(f"/api/invoices/{invoice['id']}/status", json={'status': 'Processed'})

        logs = client.get('/api/activity-logs?module=Invoices').get_json()['logs']
        assert [log['action'] for log in logs] == ['Processed invoice INV-0001', 'Created invoice INV-0001']

        assert login(staff).get('/api/activity-logs').status_code == 403

    def test_user_management_is_admin_only(self, login, admin, staff):
        staff_id = staff.id
        assert login(staff).get('/api/users').status_code == 403

        client = login(admin)
        assert len(client.get('/api/users').get_json()['users']) == 2

        data = client.put(f'/api/users/{staff_id}/role', json={'role': 'manager'}).get_json()
        assert data['user']['role'] == 'Manager'

        data = client.put(f'/api/users/{staff_id}/status', json={'active': False}).get_json()
        assert data['user']['active'] is False

        response = client.put(f'/api/users/{admin.id}/status', json={'active': False})
        assert response.status_code == 409

    def test_metrics_endpoint(self, client):
        response = client.get('/metrics')
        assert response.status_code == 200
        assert b'invoice_transitions_total' in response.data
