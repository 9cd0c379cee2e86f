"""
Tests for the inventory grouping engine
Tests: group keys, counters, post-filters, sorting, determinism and unit drill-down
"""
from unittest import TestCase
from pydantic import ValidationError
from inventory_service import schemas
from inventory_service.services.grouping import compute_groups, filter_units
from tests.factories import TestDataFactory, scenario_records


class GroupingScenarioTests(TestCase):

    def test_end_to_end_scenario(self):
        """Serialized units collapse into one group, the bulk record keeps its own"""
        groups = compute_groups(scenario_records())

        self.assertEqual(len(groups), 2)
        by_key = {g.product_key: g for g in groups}

        phone = by_key["acme|x1|black"]
        self.assertTrue(phone.is_serialized)
        self.assertEqual(phone.total_units, 2)
        self.assertEqual(phone.available, 1)
        self.assertEqual(phone.sold, 1)
        self.assertEqual([u.imei1 for u in phone.units], ["111", "222"])
        self.assertIsNone(phone.stock_quantity)

        bulk = by_key["p3"]
        self.assertFalse(bulk.is_serialized)
        self.assertEqual(bulk.stock_quantity, 7)
        self.assertIsNone(bulk.units)

    def test_same_configuration_with_different_imeis_collapses(self):
        records = [
            TestDataFactory.build_unit("111", serial="S-1"),
            TestDataFactory.build_unit("999", serial="S-2"),
        ]
        groups = compute_groups(records)
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].total_units, 2)

    def test_different_color_produces_distinct_groups(self):
        records = [
            TestDataFactory.build_unit("111", color="Black"),
            TestDataFactory.build_unit("222", color="White"),
        ]
        keys = sorted(g.product_key for g in compute_groups(records))
        self.assertEqual(keys, ["acme|x1|black|128gb", "acme|x1|white|128gb"])

    def test_non_serialized_records_are_never_merged(self):
        records = [
            TestDataFactory.build_product(id="a", brand="Acme", model="Y2", stock_quantity=3),
            TestDataFactory.build_product(id="b", brand="Acme", model="Y2", stock_quantity=4),
        ]
        groups = compute_groups(records)
        self.assertEqual(sorted(g.product_key for g in groups), ["a", "b"])
        for group in groups:
            self.assertEqual(group.total_units, 1)

    def test_bulk_id_equal_to_serialized_key_stays_separate(self):
        records = [
            TestDataFactory.build_product(id="acme|x1", stock_quantity=4),
            TestDataFactory.build_unit("111", brand="Acme", model="X1", color=None, storage=None),
        ]
        groups = compute_groups(records)

        self.assertEqual(len(groups), 2)
        self.assertEqual(sorted(g.is_serialized for g in groups), [False, True])
        serialized = next(g for g in groups if g.is_serialized)
        self.assertEqual(serialized.product_key, "acme|x1")
        self.assertEqual([u.imei1 for u in serialized.units], ["111"])

    def test_representative_prices_come_from_first_record(self):
        records = [
            TestDataFactory.build_unit("111", price_cost=100, price_retail=200),
            TestDataFactory.build_unit("222", price_cost=900, price_retail=990),
        ]
        group = compute_groups(records)[0]
        self.assertEqual(group.price_cost, 100)
        self.assertEqual(group.price_retail, 200)


class GroupCounterTests(TestCase):

    def test_status_counters_sum_to_total_units(self):
        statuses = ["available", "reserved", "sold", "maintenance", "defective", None, "available"]
        records = [TestDataFactory.build_unit(str(i), unit_status=s) for i, s in enumerate(statuses)]

        group = compute_groups(records)[0]

        self.assertEqual(group.total_units, 7)
        self.assertEqual(group.available, 3)
        self.assertEqual(group.in_maintenance, 1)
        self.assertEqual(
            group.available + group.reserved + group.sold + group.in_maintenance + group.defective,
            group.total_units
        )

    def test_unknown_status_counts_only_in_total(self):
        records = [
            TestDataFactory.build_unit("111", unit_status="available"),
            TestDataFactory.build_unit("222", unit_status="lost"),
        ]
        group = compute_groups(records)[0]
        self.assertEqual(group.total_units, 2)
        self.assertEqual(group.available, 1)
        self.assertEqual(group.reserved + group.sold + group.in_maintenance + group.defective, 0)
        self.assertEqual(group.units[1].unit_status, "lost")

    def test_missing_optional_fields_do_not_raise(self):
        record = TestDataFactory.build_product(name=None, brand=None, model=None, specs=None,
                                               stock_quantity=None, price_cost=None)
        record.specs = None
        groups = compute_groups([record])
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].brand, "")
        self.assertEqual(groups[0].stock_quantity, 0)

    def test_serialized_group_value_counts_available_units_only(self):
        records = [
            TestDataFactory.build_unit("111", unit_status="available", price_cost=1000),
            TestDataFactory.build_unit("222", unit_status="sold", price_cost=1000),
            TestDataFactory.build_unit("333", unit_status="available", price_cost=1200),
        ]
        self.assertEqual(compute_groups(records)[0].stock_value, 2200)


class GroupFilterAndSortTests(TestCase):

    def setUp(self):
        self.records = [
            TestDataFactory.build_unit("111", name="Banana Phone", brand="Banana", unit_status="sold",
                                       price_cost=3000),
            TestDataFactory.build_product(id="bulk-empty", name="Ágata Cabo", stock_quantity=0, price_cost=100),
            TestDataFactory.build_product(id="bulk-full", name="abacate Carregador", stock_quantity=20,
                                          price_cost=100),
            TestDataFactory.build_unit("222", name="Zebra Phone", brand="Zebra", unit_status="available",
                                       price_cost=5000),
            TestDataFactory.build_unit("333", name="Zebra Phone", brand="Zebra", unit_status="available",
                                       price_cost=5000),
        ]

    def test_only_serialized_and_only_non_serialized(self):
        serialized = compute_groups(self.records, schemas.InventoryFilters(only_serialized=True))
        self.assertTrue(all(g.is_serialized for g in serialized))
        self.assertEqual(len(serialized), 2)

        bulk = compute_groups(self.records, schemas.InventoryFilters(only_non_serialized=True))
        self.assertEqual(sorted(g.product_key for g in bulk), ["bulk-empty", "bulk-full"])

    def test_serialized_toggles_are_mutually_exclusive(self):
        with self.assertRaises(ValidationError):
            schemas.InventoryFilters(only_serialized=True, only_non_serialized=True)

    def test_only_available(self):
        groups = compute_groups(self.records, schemas.InventoryFilters(only_available=True))
        names = [g.name for g in groups]
        self.assertEqual(names, ["abacate Carregador", "Zebra Phone"])

    def test_sort_by_name_ignores_accents_and_case(self):
        names = [g.name for g in compute_groups(self.records)]
        self.assertEqual(names, ["abacate Carregador", "Ágata Cabo", "Banana Phone", "Zebra Phone"])

    def test_sort_descending_inverts_order(self):
        names = [g.name for g in compute_groups(self.records, schemas.InventoryFilters(sort_order="desc"))]
        self.assertEqual(names, ["Zebra Phone", "Banana Phone", "Ágata Cabo", "abacate Carregador"])

    def test_sort_by_quantity(self):
        groups = compute_groups(self.records, schemas.InventoryFilters(sort_by="quantity", sort_order="desc"))
        self.assertEqual(groups[0].name, "Zebra Phone")
        self.assertEqual(groups[0].total_units, 2)

    def test_sort_by_value(self):
        groups = compute_groups(self.records, schemas.InventoryFilters(sort_by="value", sort_order="desc"))
        self.assertEqual([g.stock_value for g in groups], [10000, 2000, 0, 0])

    def test_sort_by_sku_puts_missing_sku_first(self):
        records = [
            TestDataFactory.build_product(id="p1", name="Cabo", sku="B-2"),
            TestDataFactory.build_product(id="p2", name="Capa", sku=None),
            TestDataFactory.build_product(id="p3", name="Fone", sku="a-1"),
        ]
        asc = compute_groups(records, schemas.InventoryFilters(sort_by="sku"))
        self.assertEqual([g.sku for g in asc], [None, "a-1", "B-2"])

        desc = compute_groups(records, schemas.InventoryFilters(sort_by="sku", sort_order="desc"))
        self.assertEqual([g.sku for g in desc], ["B-2", "a-1", None])

    def test_grouping_is_deterministic(self):
        filters = schemas.InventoryFilters(sort_by="quantity")
        first = [g.model_dump() for g in compute_groups(self.records, filters)]
        second = [g.model_dump() for g in compute_groups(self.records, filters)]
        self.assertEqual(first, second)

    def test_record_filters_apply_before_grouping(self):
        groups = compute_groups(self.records, schemas.InventoryFilters(brand="Zebra"))
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].total_units, 2)


class FilterUnitsTests(TestCase):

    def setUp(self):
        records = [
            TestDataFactory.build_unit("356000000000001", unit_status="available"),
            TestDataFactory.build_unit("356000000000002", unit_status="sold", serial="SN-XYZ"),
            TestDataFactory.build_unit("356000000000003", unit_status="available"),
        ]
        self.group = compute_groups(records)[0]

    def test_filter_units_by_status(self):
        units = filter_units(self.group, status="available")
        self.assertEqual([u.imei1 for u in units], ["356000000000001", "356000000000003"])

    def test_filter_units_by_imei_or_serial(self):
        self.assertEqual(len(filter_units(self.group, search="0003")), 1)
        self.assertEqual(filter_units(self.group, search="sn-xyz")[0].unit_status, "sold")

    def test_filter_units_on_non_serialized_group_is_empty(self):
        bulk = compute_groups([TestDataFactory.build_product(id="p1")])[0]
        self.assertEqual(filter_units(bulk), [])
