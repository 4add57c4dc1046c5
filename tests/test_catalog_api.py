from __future__ import annotations

import unittest
from decimal import Decimal

from api_support import API_HEADERS, TestingSessionLocal, make_client, reset_database, seed_menu

from pos_api.models import Order, OrderItem, OrderStatus


class ProductsApiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.products = seed_menu()
        self.client = make_client()

    def test_menu_lists_active_products_in_category_order(self) -> None:
        menu = self.client.get('/products', headers=API_HEADERS).json()
        self.assertEqual([entry['name'] for entry in menu], ['Pollos Asados', 'Guarniciones', 'Bebidas'])
        self.assertEqual([product['name'] for product in menu[0]['products']], ['Costillar Entero', 'Pollo Entero'])
        self.assertEqual(menu[2]['products'], [])

        admin_menu = self.client.get('/products/all', headers=API_HEADERS).json()
        self.assertEqual([product['name'] for product in admin_menu[2]['products']], ['Fanta Limón'])

    def test_inactive_names_are_public(self) -> None:
        response = self.client.get('/products/inactive-names')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), ['Fanta Limón'])

    def test_create_update_and_toggle_product(self) -> None:
        category_id = self.client.get('/categories', headers=API_HEADERS).json()[0]['id']
        created = self.client.post(
            '/products', json={'name': 'Medio Pollo', 'price': 4.4, 'categoryId': category_id}, headers=API_HEADERS
        )
        self.assertEqual(created.status_code, 201, created.text)
        product = created.json()
        self.assertEqual(product['price'], 4.4)
        self.assertTrue(product['active'])

        updated = self.client.patch(f"/products/{product['id']}", json={'price': 4.6}, headers=API_HEADERS).json()
        self.assertEqual(updated['price'], 4.6)
        self.assertEqual(updated['name'], 'Medio Pollo')

        toggled = self.client.patch(f"/products/{product['id']}/active", json={'active': False}, headers=API_HEADERS)
        self.assertFalse(toggled.json()['active'])
        self.assertIn('Medio Pollo', self.client.get('/products/inactive-names').json())

    def test_duplicate_name_is_a_conflict(self) -> None:
        category_id = self.client.get('/categories', headers=API_HEADERS).json()[0]['id']
        response = self.client.post(
            '/products', json={'name': 'Pollo Entero', 'price': 9, 'categoryId': category_id}, headers=API_HEADERS
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], 'Conflict')

    def test_non_positive_price_is_rejected(self) -> None:
        response = self.client.post('/products', json={'name': 'Gratis', 'price': 0, 'categoryId': 1}, headers=API_HEADERS)
        self.assertEqual(response.status_code, 400)

    def test_referenced_product_cannot_be_deleted(self) -> None:
        product_id = self.products['Pollo Entero']
        with TestingSessionLocal() as db:
            db.add(
                Order(
                    customer_name='Luis',
                    pickup_time='14:00',
                    status=OrderStatus.RECEIVED,
                    total=Decimal('8.60'),
                    items=[OrderItem(product_id=product_id, quantity=1, price=Decimal('8.50'))],
                )
            )
            db.commit()

        self.assertEqual(self.client.delete(f'/products/{product_id}', headers=API_HEADERS).status_code, 409)
        unused = self.products['Papas Fritas']
        self.assertEqual(self.client.delete(f'/products/{unused}', headers=API_HEADERS).status_code, 204)
        self.assertEqual(self.client.delete(f'/products/{unused}', headers=API_HEADERS).status_code, 404)


class CategoriesApiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        seed_menu()
        self.client = make_client()

    def test_list_counts_active_products(self) -> None:
        categories = self.client.get('/categories', headers=API_HEADERS).json()
        self.assertEqual(
            [(c['name'], c['productCount']) for c in categories],
            [('Pollos Asados', 2), ('Guarniciones', 2), ('Bebidas', 0)],
        )

    def test_create_rename_and_delete(self) -> None:
        created = self.client.post('/categories', json={'name': 'Postres'}, headers=API_HEADERS)
        self.assertEqual(created.status_code, 201)
        category_id = created.json()['id']

        renamed = self.client.patch(f'/categories/{category_id}', json={'name': 'Dulces'}, headers=API_HEADERS)
        self.assertEqual(renamed.json(), {'id': category_id, 'name': 'Dulces'})

        duplicate = self.client.post('/categories', json={'name': 'dulces'}, headers=API_HEADERS)
        self.assertEqual(duplicate.status_code, 409)

        self.assertEqual(self.client.delete(f'/categories/{category_id}', headers=API_HEADERS).status_code, 204)

    def test_category_with_products_cannot_be_deleted(self) -> None:
        category_id = self.client.get('/categories', headers=API_HEADERS).json()[0]['id']
        response = self.client.delete(f'/categories/{category_id}', headers=API_HEADERS)
        self.assertEqual(response.status_code, 409)


class InvoicesApiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.client = make_client()

    def _create(self, **overrides) -> dict:
        payload = {
            'date': '2025-01-15',
            'supplier': 'Mercadona S.A.',
            'category': 'FOOD',
            'items': [
                {'description': 'Pollos frescos', 'quantity': 10, 'unitPrice': 3.25},
                {'description': 'Aceite', 'quantity': 2, 'unitPrice': 4.1},
            ],
        }
        payload.update(overrides)
        response = self.client.post('/invoices', json=payload, headers=API_HEADERS)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_total_is_derived_from_items(self) -> None:
        invoice = self._create()
        self.assertEqual(invoice['totalAmount'], 40.7)
        self.assertEqual([item['totalPrice'] for item in invoice['items']], [32.5, 8.2])
        fetched = self.client.get(f"/invoices/{invoice['id']}", headers=API_HEADERS).json()
        self.assertEqual(fetched['supplier'], 'Mercadona S.A.')

    def test_list_filters_and_sums(self) -> None:
        self._create()
        self._create(date='2025-02-01', category='DRINKS', items=[{'description': 'Agua', 'quantity': 1, 'unitPrice': 5}])

        january = self.client.get('/invoices?from=2025-01-01&to=2025-01-31', headers=API_HEADERS).json()
        self.assertEqual(january['count'], 1)
        self.assertEqual(january['totalExpenses'], 40.7)

        drinks = self.client.get('/invoices?category=DRINKS', headers=API_HEADERS).json()
        self.assertEqual(drinks['count'], 1)
        self.assertEqual(drinks['totalExpenses'], 5.0)

    def test_invoice_requires_items(self) -> None:
        response = self.client.post(
            '/invoices',
            json={'date': '2025-01-15', 'supplier': 'X', 'category': 'FOOD', 'items': []},
            headers=API_HEADERS,
        )
        self.assertEqual(response.status_code, 400)

    def test_delete_and_missing(self) -> None:
        invoice = self._create()
        self.assertEqual(self.client.delete(f"/invoices/{invoice['id']}", headers=API_HEADERS).status_code, 204)
        self.assertEqual(self.client.get(f"/invoices/{invoice['id']}", headers=API_HEADERS).status_code, 404)


if __name__ == '__main__':
    unittest.main()
