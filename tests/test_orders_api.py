from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import func, select

from api_support import API_HEADERS, TestingSessionLocal, make_client, reset_database, seed_menu, store_settings

from pos_api.dependencies import get_notifier
from pos_api.main import app
from pos_api.models import Order, OrderStatus, Sale
from pos_api.services.notification_service import NotificationService
from pos_api.services.sales_service import create_sale_from_order
from pos_api.services.store_hours_service import StoreStatus

OPEN_STORE = patch('pos_api.services.order_service.check_store_open', return_value=StoreStatus(True))


def order_payload(*items, phone: str | None = None) -> dict:
    payload = {
        'customerName': 'Ana',
        'pickupTime': '13:30',
        'items': [{'name': name, 'quantity': quantity} for name, quantity in items],
    }
    if phone:
        payload['customerPhone'] = phone
    return payload


class OrdersApiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.products = seed_menu()
        self.client = make_client()
        OPEN_STORE.start()
        self.addCleanup(OPEN_STORE.stop)

    def _count(self, model) -> int:
        with TestingSessionLocal() as db:
            return db.execute(select(func.count()).select_from(model)).scalar_one()

    def _create(self, *items, phone: str | None = None) -> dict:
        response = self.client.post('/orders', json=order_payload(*items, phone=phone))
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _move(self, order_id: int, status: str):
        return self.client.patch(f'/orders/{order_id}/status', json={'status': status}, headers=API_HEADERS)

    def test_create_order_returns_total_with_bag_fee(self) -> None:
        body = self._create(('Pollo Entero', 2))
        self.assertEqual(body['status'], 'RECEIVED')
        self.assertEqual(body['total'], 17.10)

        detail = self.client.get(f"/orders/{body['id']}", headers=API_HEADERS).json()
        self.assertEqual(detail['customerName'], 'Ana')
        self.assertEqual(detail['items'], [{'productId': self.products['Pollo Entero'], 'name': 'Pollo Entero', 'quantity': 2, 'price': 8.5}])
        self.assertIn('delayed', detail)

    def test_large_order_without_phone_is_rejected_and_not_stored(self) -> None:
        response = self.client.post(
            '/orders', json=order_payload(('Costillar Entero', 1), ('Pollo Entero', 1), ('Pan Horneado', 1))
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Customer phone required for orders over 30€'})
        self.assertEqual(self._count(Order), 0)

    def test_large_order_with_phone_is_accepted(self) -> None:
        body = self._create(('Costillar Entero', 1), ('Pollo Entero', 1), ('Pan Horneado', 1), phone='600123456')
        self.assertEqual(body['total'], 35.40)

    def test_inactive_or_unknown_product_is_rejected(self) -> None:
        for name in ('Fanta Limón', 'Pizza'):
            response = self.client.post('/orders', json=order_payload((name, 1)))
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()['error'], 'Some products are invalid or inactive')
        self.assertEqual(self._count(Order), 0)

    def test_malformed_body_is_a_validation_error(self) -> None:
        response = self.client.post('/orders', json={'customerName': '', 'pickupTime': '25:00', 'items': []})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body['message'], 'Validation error')
        fields = {error['field'] for error in body['errors']}
        self.assertTrue({'customerName', 'pickupTime', 'items'} <= fields)

    def test_skipping_a_status_is_rejected_with_reason(self) -> None:
        order = self._create(('Pollo Entero', 1))
        response = self._move(order['id'], 'READY')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Invalid status transition from RECEIVED to READY'})
        detail = self.client.get(f"/orders/{order['id']}", headers=API_HEADERS).json()
        self.assertEqual(detail['status'], 'RECEIVED')

    def test_delivering_an_order_records_one_sale(self) -> None:
        order = self._create(('Pollo Entero', 2))
        for status in ('PREPARING', 'READY', 'DELIVERED'):
            response = self._move(order['id'], status)
            self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()['status'], 'DELIVERED')

        stats = self.client.get('/sales/stats?type=day', headers=API_HEADERS).json()
        self.assertEqual(stats['totalSales'], 17.10)
        self.assertEqual(stats['totalOrders'], 1)
        self.assertEqual(stats['topProductByUnits']['name'], 'Pollo Entero')

        again = self._move(order['id'], 'DELIVERED')
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json(), {'error': 'Cannot change status of a DELIVERED order'})
        self.assertEqual(self._count(Sale), 1)

        with TestingSessionLocal() as db:
            first = create_sale_from_order(db, order_id=order['id'])
            second = create_sale_from_order(db, order_id=order['id'])
            db.commit()
            self.assertEqual(first.id, second.id)
        self.assertEqual(self._count(Sale), 1)

    def test_cancelled_order_is_terminal(self) -> None:
        order = self._create(('Pollo Entero', 1))
        self.assertEqual(self._move(order['id'], 'CANCELLED').status_code, 200)
        response = self._move(order['id'], 'PREPARING')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Cannot change status of a CANCELLED order')
        self.assertEqual(self._count(Sale), 0)

    def test_unknown_order_is_404(self) -> None:
        self.assertEqual(self.client.get('/orders/999', headers=API_HEADERS).status_code, 404)
        self.assertEqual(self._move(999, 'PREPARING').status_code, 404)

    def test_list_orders_is_paginated_newest_first(self) -> None:
        ids = [self._create(('Pan Horneado', 1))['id'] for _ in range(3)]
        response = self.client.get('/orders?page=1&limit=2', headers=API_HEADERS)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([order['id'] for order in body['data']], [ids[2], ids[1]])
        self.assertEqual(body['pagination'], {'page': 1, 'limit': 2, 'total': 3, 'totalPages': 2})

        filtered = self.client.get('/orders?status=DELIVERED', headers=API_HEADERS).json()
        self.assertEqual(filtered['data'], [])

    def test_listing_requires_credentials(self) -> None:
        self.assertEqual(self.client.get('/orders').status_code, 401)
        self.assertEqual(self.client.get('/orders', headers={'x-api-key': 'wrong'}).status_code, 401)
        self.assertEqual(self.client.get('/orders?apiKey=test-api-key').status_code, 200)

    def test_order_creation_is_rate_limited_per_client(self) -> None:
        for _ in range(5):
            self._create(('Pan Horneado', 1))
        response = self.client.post('/orders', json=order_payload(('Pan Horneado', 1)))
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json(), {'message': 'Too many orders. Please wait a moment before trying again.'})

    def test_spoofed_forwarding_entries_share_the_proxy_bucket(self) -> None:
        statuses = []
        for index in range(8):
            response = self.client.post(
                '/orders',
                json=order_payload(('Pan Horneado', 1)),
                headers={'x-forwarded-for': f'10.0.0.{index}, 203.0.113.9'},
            )
            statuses.append(response.status_code)
        self.assertEqual(statuses, [201] * 5 + [429] * 3)

        other = self.client.post(
            '/orders', json=order_payload(('Pan Horneado', 1)), headers={'x-forwarded-for': '198.51.100.4'}
        )
        self.assertEqual(other.status_code, 201)


class OrderBroadcastTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        seed_menu()
        self.client = make_client()
        OPEN_STORE.start()
        self.addCleanup(OPEN_STORE.stop)
        self.notifier = MagicMock(spec=NotificationService)
        app.dependency_overrides[get_notifier] = lambda: self.notifier
        self.addCleanup(app.dependency_overrides.pop, get_notifier, None)

    def _move(self, order_id: int, status: str):
        return self.client.patch(f'/orders/{order_id}/status', json={'status': status}, headers=API_HEADERS)

    def test_create_and_status_changes_broadcast(self) -> None:
        order = self.client.post('/orders', json=order_payload(('Pollo Entero', 1))).json()
        self.assertEqual(self.notifier.notify_orders_updated.call_count, 1)
        self.assertEqual(self._move(order['id'], 'PREPARING').status_code, 200)
        self.assertEqual(self.notifier.notify_orders_updated.call_count, 2)

        self.assertEqual(self._move(order['id'], 'DELIVERED').status_code, 400)
        self.assertEqual(self.notifier.notify_orders_updated.call_count, 2)

    def test_sale_failure_on_delivery_is_logged_not_returned(self) -> None:
        order = self.client.post('/orders', json=order_payload(('Pollo Entero', 1))).json()
        for status in ('PREPARING', 'READY'):
            self.assertEqual(self._move(order['id'], status).status_code, 200)
        self.notifier.reset_mock()

        with patch(
            'pos_api.services.order_service.create_sale_from_order', side_effect=RuntimeError('sales table locked')
        ), self.assertLogs('pos_api.services.order_service', level='ERROR') as logs:
            response = self._move(order['id'], 'DELIVERED')

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()['status'], 'DELIVERED')
        self.assertIn(f"Failed to create sale from order {order['id']}", logs.output[0])
        self.notifier.notify_orders_updated.assert_called_once_with()
        with TestingSessionLocal() as db:
            self.assertEqual(db.get(Order, order['id']).status, OrderStatus.DELIVERED)
            self.assertEqual(db.execute(select(func.count()).select_from(Sale)).scalar_one(), 0)


class StoreGateApiTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        seed_menu()
        self.client = make_client()

    def test_disabled_orders_are_refused(self) -> None:
        store_settings(orders_enabled=False)
        response = self.client.post('/orders', json=order_payload(('Pollo Entero', 1)))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Orders are currently disabled'})

        status = self.client.get('/settings/public/status').json()
        self.assertFalse(status['open'])
        self.assertEqual(status['reason'], 'Orders are currently disabled')

    def test_missing_schedule_means_closed(self) -> None:
        response = self.client.post('/orders', json=order_payload(('Pollo Entero', 1)))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Store is closed today'})


if __name__ == '__main__':
    unittest.main()
