from __future__ import annotations

import unittest
from datetime import date, datetime

from api_support import TestingSessionLocal, reset_database, seed_menu

from pos_api.services.sales_service import (
    SaleLineInput,
    create_manual_sale,
    get_aggregated_sales,
    list_sales,
    period_range,
    previous_range,
)


class PeriodRangeTests(unittest.TestCase):
    def test_week_starts_on_monday(self) -> None:
        start, end = period_range('week', date(2025, 3, 12))
        self.assertEqual(start.date(), date(2025, 3, 10))
        self.assertEqual(end.date(), date(2025, 3, 17))

    def test_month_and_previous_month(self) -> None:
        start, end = period_range('month', date(2025, 12, 15))
        self.assertEqual((start.date(), end.date()), (date(2025, 12, 1), date(2026, 1, 1)))
        prev_start, prev_end = previous_range('month', *period_range('month', date(2025, 3, 20)))
        self.assertEqual((prev_start.date(), prev_end.date()), (date(2025, 2, 1), date(2025, 3, 1)))

    def test_custom_range_is_inclusive_of_the_to_date(self) -> None:
        start, end = period_range('custom', date(2025, 1, 1), date_from=date(2025, 1, 5), date_to=date(2025, 1, 7))
        self.assertEqual((start.date(), end.date()), (date(2025, 1, 5), date(2025, 1, 8)))
        prev_start, prev_end = previous_range('custom', start, end)
        self.assertEqual((prev_start.date(), prev_end.date()), (date(2025, 1, 2), date(2025, 1, 5)))

    def test_invalid_ranges(self) -> None:
        with self.assertRaises(ValueError):
            period_range('custom', date(2025, 1, 1))
        with self.assertRaises(ValueError):
            period_range('custom', date(2025, 1, 1), date_from=date(2025, 1, 7), date_to=date(2025, 1, 5))
        with self.assertRaises(ValueError):
            period_range('year', date(2025, 1, 1))


class ManualSaleTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.products = seed_menu()
        self.db = TestingSessionLocal()

    def tearDown(self) -> None:
        self.db.close()

    def test_manual_sale_uses_catalogue_prices(self) -> None:
        sale = create_manual_sale(
            self.db,
            items=[SaleLineInput(self.products['Pollo Entero'], 2), SaleLineInput(self.products['Papas Fritas'], 1)],
            sale_date=datetime(2025, 3, 12, 13, 0),
            notes='  ticket 14  ',
        )
        self.db.commit()
        self.assertEqual(str(sale.total_amount), '20.50')
        self.assertEqual(sale.notes, 'ticket 14')
        self.assertEqual(len(list_sales(self.db, date_from=date(2025, 3, 12), date_to=date(2025, 3, 12))), 1)
        self.assertEqual(list_sales(self.db, date_from=date(2025, 3, 13)), [])

    def test_invalid_lines_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            create_manual_sale(self.db, items=[])
        with self.assertRaises(ValueError):
            create_manual_sale(self.db, items=[SaleLineInput(self.products['Pollo Entero'], 0)])
        with self.assertRaises(ValueError):
            create_manual_sale(self.db, items=[SaleLineInput(9999, 1)])

    def test_weekly_aggregate_compares_with_previous_week(self) -> None:
        create_manual_sale(
            self.db,
            items=[SaleLineInput(self.products['Costillar Entero'], 1)],
            sale_date=datetime(2025, 3, 11, 20, 0),
        )
        create_manual_sale(
            self.db,
            items=[SaleLineInput(self.products['Papas Fritas'], 3)],
            sale_date=datetime(2025, 3, 14, 14, 0),
        )
        create_manual_sale(
            self.db,
            items=[SaleLineInput(self.products['Pollo Entero'], 1)],
            sale_date=datetime(2025, 3, 5, 14, 0),
        )
        self.db.commit()

        stats = get_aggregated_sales(self.db, period='week', base_date=date(2025, 3, 12))
        self.assertEqual(stats['totalSales'], 36.5)
        self.assertEqual(stats['totalOrders'], 2)
        self.assertEqual(stats['averageOrderValue'], 18.25)
        self.assertEqual(stats['topProductByUnits']['name'], 'Papas Fritas')
        self.assertEqual(stats['topProductByRevenue']['name'], 'Costillar Entero')
        self.assertEqual([row['name'] for row in stats['categories']], ['Pollos Asados', 'Guarniciones'])
        self.assertEqual(stats['purchaseFrequencyPerDay'], 0.29)
        self.assertEqual(stats['conversionRate'], 0)
        self.assertEqual(stats['topCustomers'], [])
        self.assertEqual(stats['previous']['totalSales'], 8.5)


if __name__ == '__main__':
    unittest.main()
