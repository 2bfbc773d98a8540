from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest

from yoga_studio.errors import CatalogNotLoadedError, StoreError
from yoga_studio.services.catalog import (
    CatalogState,
    filter_classes,
    resolve_selection,
    summarize,
)
from yoga_studio.services.reconciler import reconcile


@pytest.fixture
def model(raw_bundle, today):
    return reconcile(raw_bundle, today)


@pytest.fixture
def store(raw_bundle):
    store = Mock()
    store.fetch_all.return_value = raw_bundle
    return store


class TestCatalogState:

    def test_no_snapshot_before_first_refresh(self, store):
        catalog = CatalogState(store)

        assert catalog.snapshot is None
        with pytest.raises(CatalogNotLoadedError):
            catalog.require()

    def test_refresh_publishes_versioned_snapshot(self, store, today):
        catalog = CatalogState(store)

        first = catalog.refresh(today=today)
        second = catalog.refresh(today=today)

        assert (first.version, second.version) == (1, 2)
        assert catalog.snapshot is second
        assert catalog.require() is second

    def test_reader_keeps_the_snapshot_it_grabbed(self, store, raw_bundle, today):
        catalog = CatalogState(store)
        held = catalog.refresh(today=today)

        store.fetch_all.return_value = {**raw_bundle, "classInstances": []}
        catalog.refresh(today=today)

        assert sorted(held.instance_by_id) == [0, 2, 4, 6, 7]
        assert len(catalog.snapshot.instance_by_id) == 0

    def test_failed_refresh_keeps_previous_snapshot(self, store, today):
        catalog = CatalogState(store)
        previous = catalog.refresh(today=today)
        store.fetch_all.side_effect = StoreError("connection refused")

        with pytest.raises(StoreError):
            catalog.refresh(today=today)

        assert catalog.snapshot is previous
        assert "connection refused" in catalog.last_error

    def test_failed_first_refresh_leaves_no_model(self, store, today):
        store.fetch_all.side_effect = StoreError("connection refused")
        catalog = CatalogState(store)

        with pytest.raises(StoreError):
            catalog.refresh(today=today)

        with pytest.raises(CatalogNotLoadedError, match="connection refused"):
            catalog.require()

    def test_refresh_defaults_to_studio_today(self, store):
        catalog = CatalogState(store)

        model = catalog.refresh()

        assert model.today is not None


class TestFilterClasses:

    def test_no_filters_keeps_everything_in_order(self, model):
        assert [c.id for c in filter_classes(model.class_list)] == [1, 2, 3]

    def test_search_is_case_insensitive_substring(self, model):
        result = filter_classes(model.class_list, search="  yOGA ")

        assert [c.description for c in result] == ["Power Yoga"]

    def test_levels(self, model):
        result = filter_classes(model.class_list, levels=["Beginner", "Intermediate"])

        assert [c.id for c in result] == [1, 3]

    def test_days_match_any(self, model):
        result = filter_classes(model.class_list, days=["Wednesday", "Tuesday"])

        assert [c.id for c in result] == [1, 2]

    def test_time_exact(self, model):
        assert [c.id for c in filter_classes(model.class_list, time="09:00")] == [1, 3]
        assert filter_classes(model.class_list, time="9:00") == []

    def test_sort_by_price(self, model):
        asc = filter_classes(model.class_list, sort="price_asc")
        desc = filter_classes(model.class_list, sort="price_desc")

        assert [c.price for c in asc] == [15, 20, 35]
        assert [c.price for c in desc] == [35, 20, 15]

    def test_filters_combine(self, model):
        result = filter_classes(model.class_list, time="09:00", levels=["Beginner"], sort="price_desc")

        assert [c.id for c in result] == [1]

    def test_unknown_sort(self, model):
        with pytest.raises(ValueError):
            filter_classes(model.class_list, sort="alphabetical")


class TestResolveSelection:

    def test_resolves_in_selection_order(self, model):
        lines = resolve_selection([7, 0], model)

        assert [l.instance_id for l in lines] == [7, 0]
        assert lines[1].class_name == "Vinyasa Flow"
        assert lines[1].teacher_name == "Ana"
        assert lines[1].time == "09:00"
        assert lines[1].price == Decimal("20")

    def test_unresolvable_ids_are_filtered(self, model):
        """Past (1), malformed (5), null slot (3) and unknown (999) ids just disappear"""
        lines = resolve_selection([1, 5, 3, 999, 2], model)

        assert [l.instance_id for l in lines] == [2]

    def test_instance_with_missing_class_is_filtered(self, today):
        model = reconcile({"classInstances": [{"classId": 4, "teacherId": 0, "date": "2026-10-30"}]}, today)

        assert 0 in model.instance_by_id
        assert resolve_selection([0], model) == []

    def test_missing_teacher_reads_unknown_teacher(self, model):
        assert resolve_selection([4], model)[0].teacher_name == "Unknown Teacher"

    def test_teacher_name_comes_from_the_embedded_teacher(self, model):
        """The line shows the teacher the instance was reconciled with"""
        instance = model.instance_by_id[0]

        assert resolve_selection([0], model)[0].teacher_name == instance.teacher.name == "Ana"

    def test_aged_out_after_new_pass(self, raw_bundle, today):
        """A cart id that resolved yesterday silently stops resolving once it is in the past"""
        old = reconcile(raw_bundle, today)
        new = reconcile(raw_bundle, today + timedelta(days=1))

        assert [l.instance_id for l in resolve_selection([0, 6], old)] == [0, 6]
        assert [l.instance_id for l in resolve_selection([0, 6], new)] == [6]


def test_summarize_counts_only_resolvable(model):
    summary = summarize([0, 7, 1, 999], model)

    assert summary.count == 2
    assert summary.total == Decimal("55")


def test_summarize_empty(model):
    summary = summarize([], model)

    assert summary.count == 0
    assert summary.total == 0
