"""
Integration tests for the documents API.
"""

import pytest
from decimal import Decimal

from erp.database import get_session
from erp.models import SalesOrderItem


@pytest.fixture
def created_order(client, retail_customer, standard_line):
    """Create a sales order through the API and return its JSON."""
    response = client.post('/api/documents/sales-orders', json={
        'customerId': retail_customer.id,
        'items': [standard_line, dict(standard_line, description='Cable 4mm')],
    })
    assert response.status_code == 201
    return response.get_json()['document']


class TestCreateAndView:
    """Document creation and retrieval."""

    def test_create_sales_order(self, created_order):
        assert created_order['type'] == 'sales-orders'
        assert created_order['version'] == 1
        assert created_order['currency'] == 'AED'
        assert created_order['totals']['grandTotal'] == 209.0
        assert created_order['items'][0]['total_price'] == 104.5

    def test_create_quotation_with_markup(self, client, wholesale_customer):
        response = client.post('/api/documents/quotations', json={
            'customer_id': wholesale_customer.id,
            'items': [{'description': 'Breaker', 'quantity': 2, 'unit_cost': 100}],
        })

        assert response.status_code == 201
        document = response.get_json()['document']
        assert document['customerType'] == 'Wholesale'
        assert document['items'][0]['markup'] == 40.0
        assert document['totals']['grandTotal'] == 280.0

    def test_create_with_invalid_lines(self, client, standard_line):
        response = client.post('/api/documents/supplier-lpos', json={
            'items': [standard_line, dict(standard_line, quantity=-2)],
        })

        assert response.status_code == 400
        data = response.get_json()
        assert data['errors'][0]['line'] == 1
        assert data['errors'][0]['code'] == 'InvalidQuantity'

    def test_view(self, client, created_order):
        response = client.get(f"/api/documents/sales-orders/{created_order['id']}")

        assert response.status_code == 200
        assert response.get_json()['document']['number'] == created_order['number']

    def test_view_missing_document(self, client):
        response = client.get('/api/documents/sales-orders/9999')
        assert response.status_code == 404

    def test_unknown_document_type(self, client):
        response = client.get('/api/documents/receipts/1')
        assert response.status_code == 404


class TestItemEndpoints:
    """Adding, editing and removing lines."""

    def test_add_item(self, client, created_order, standard_line):
        response = client.post(
            f"/api/documents/sales-orders/{created_order['id']}/items",
            json=dict(standard_line, expected_version=1),
        )

        assert response.status_code == 201
        data = response.get_json()
        assert data['item']['total_price'] == 104.5
        assert data['document']['totals']['grandTotal'] == 313.5
        assert data['document']['version'] == 2

    def test_stale_version_from_header(self, client, created_order, standard_line):
        url = f"/api/documents/sales-orders/{created_order['id']}/items"
        client.post(url, json=standard_line)

        response = client.post(url, json=standard_line, headers={'If-Match': '1'})

        assert response.status_code == 409
        data = response.get_json()
        assert data['expected_version'] == 1
        assert data['current_version'] == 2

    def test_edit_item(self, client, created_order):
        item_id = created_order['items'][0]['id']

        response = client.patch(
            f"/api/documents/sales-orders/{created_order['id']}/items/{item_id}",
            json={'quantity': 4, 'expected_version': 1},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['item']['total_price'] == 209.0
        assert data['document']['totals']['grandTotal'] == 313.5

    def test_edit_item_null_price(self, client, created_order):
        item_id = created_order['items'][0]['id']

        response = client.patch(
            f"/api/documents/sales-orders/{created_order['id']}/items/{item_id}",
            json={'unitPrice': None},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data['item']['unit_price'] == 0.0
        assert data['document']['totals']['grandTotal'] == 104.5

    def test_create_with_oversized_quantity(self, client, standard_line):
        response = client.post('/api/documents/sales-orders', json={
            'items': [dict(standard_line, quantity=1e30)],
        })

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['code'] == 'InvalidQuantity'

    def test_create_with_object_number(self, client, standard_line):
        response = client.post('/api/documents/sales-orders', json={
            'number': {'x': 1}, 'items': [standard_line],
        })

        assert response.status_code == 400
        assert response.get_json()['status'] == 'error'

    def test_edit_item_invalid(self, client, created_order):
        item_id = created_order['items'][0]['id']

        response = client.patch(
            f"/api/documents/sales-orders/{created_order['id']}/items/{item_id}",
            json={'unit_price': 'free'},
        )

        assert response.status_code == 400
        assert response.get_json()['errors'][0]['field'] == 'unit_price'

    def test_delete_item(self, client, created_order):
        item_id = created_order['items'][1]['id']

        response = client.delete(f"/api/documents/sales-orders/{created_order['id']}/items/{item_id}")

        assert response.status_code == 200
        document = response.get_json()['document']
        assert len(document['items']) == 1
        assert document['totals']['grandTotal'] == 104.5


class TestDriftEndpoints:
    """Drift report, refresh and printable table."""

    def test_in_sync(self, client, created_order):
        response = client.get(f"/api/documents/sales-orders/{created_order['id']}/drift")

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'inSync': True, 'drift': []}

    def test_drift_then_refresh(self, client, created_order):
        item_id = created_order['items'][0]['id']
        session = get_session()
        item = session.query(SalesOrderItem).filter(SalesOrderItem.id == item_id).one()
        item.total_price = Decimal('99.99')
        session.commit()
        session.remove()

        drift = client.get(f"/api/documents/sales-orders/{created_order['id']}/drift").get_json()
        assert drift['inSync'] is False
        assert drift['drift'][0]['itemId'] == item_id
        assert drift['drift'][0]['stored'] == 99.99
        assert drift['drift'][0]['computed'] == 104.5

        response = client.post(
            f"/api/documents/sales-orders/{created_order['id']}/refresh",
            json={'expected_version': 1},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data['totals']['grandTotal'] == 209.0
        assert data['document']['items'][0]['total_price'] == 104.5
        assert data['document']['version'] == 2

        drift = client.get(f"/api/documents/sales-orders/{created_order['id']}/drift").get_json()
        assert drift['inSync'] is True

    def test_pdf_table(self, client, created_order):
        response = client.get(f"/api/documents/sales-orders/{created_order['id']}/pdf-table")

        assert response.status_code == 200
        data = response.get_json()
        assert data['number'] == created_order['number']
        assert data['columns'][-1] == 'Total Amount'
        assert data['rows'][0][-1] == '104.50'
        assert data['totals'][-1] == ['Total', 'AED 209.00']
