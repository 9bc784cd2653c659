from __future__ import annotations

from datetime import datetime

import pytest

from assetcatalog.dedupe import DeletionCoordinator, duplicate_report, group_duplicates, plan_deletions
from assetcatalog.errors import NoAssetsToDeleteError
from assetcatalog.index import AssetIndex
from assetcatalog.store import RecordStore

from conftest import FakeProvider, make_asset, make_record, ts


def scenario_records():
    return [
        make_record("a", fingerprint="h1", created=ts(200)),
        make_record("b", fingerprint="h1", created=ts(100)),
        make_record("c", fingerprint="h2", created=None),
        make_record("d", fingerprint="h2", created=ts(300)),
        make_record("e", fingerprint="h2", created=ts(100)),
        make_record("f", fingerprint=None, created=ts(100)),
    ]


def ids(groups):
    return [[r.asset_identifier for r in g] for g in groups]


def test_groups_by_fingerprint_and_sorts() -> None:
    groups = group_duplicates(scenario_records())
    assert ids(groups) == [["c", "e", "d"], ["b", "a"]]


def test_grouping_is_idempotent() -> None:
    records = scenario_records()
    assert group_duplicates(records) == group_duplicates(records)


def test_missing_date_sorts_before_any_date() -> None:
    records = [
        make_record("new", fingerprint="h", created=ts(5)),
        make_record("undated", fingerprint="h", created=None),
        make_record("ancient", fingerprint="h", created=ts(0)),
    ]
    assert ids(group_duplicates(records)) == [["undated", "ancient", "new"]]


def test_naive_and_aware_dates_can_be_compared() -> None:
    records = [
        make_record("aware", fingerprint="h", created=ts(1_000)),
        make_record("naive", fingerprint="h", created=datetime(1970, 1, 1, 0, 0, 10)),
    ]
    assert ids(group_duplicates(records)) == [["naive", "aware"]]


def test_equal_dates_break_ties_by_identifier() -> None:
    records = [
        make_record("y", fingerprint="h", created=ts(7)),
        make_record("x", fingerprint="h", created=ts(7)),
    ]
    assert ids(group_duplicates(records)) == [["x", "y"]]


def test_groups_of_equal_size_have_stable_order() -> None:
    records = [
        make_record("q2", fingerprint="hq", created=ts(50)),
        make_record("q1", fingerprint="hq", created=ts(40)),
        make_record("p2", fingerprint="hp", created=ts(20)),
        make_record("p1", fingerprint="hp", created=ts(10)),
    ]
    expected = [["p1", "p2"], ["q1", "q2"]]
    assert ids(group_duplicates(records)) == expected
    assert ids(group_duplicates(list(reversed(records)))) == expected


def test_singletons_are_not_groups() -> None:
    records = [make_record("a", fingerprint="x"), make_record("b", fingerprint="y"), make_record("c")]
    assert group_duplicates(records) == []


def test_report_and_plan_account_reclaimable_bytes() -> None:
    records = [
        make_record("k", fingerprint="h", created=ts(1), size=1000),
        make_record("d1", fingerprint="h", created=ts(2), size=1000),
        make_record("d2", fingerprint="h", created=ts(3), size=1000),
    ]
    groups = group_duplicates(records)

    report = duplicate_report(groups, limit=5)
    assert report[0]["count"] == 3
    assert report[0]["keeper"] == "k"
    assert report[0]["reclaimable_bytes"] == 2000
    assert [m["identifier"] for m in report[0]["members"]] == ["k", "d1", "d2"]

    plan = plan_deletions(groups)
    assert plan["files_considered"] == 2
    assert plan["potential_bytes_reclaimed"] == 2000
    assert plan["groups"][0]["duplicates"] == ["d1", "d2"]


def _setup(tmp_path, records, assets):
    store = RecordStore(tmp_path / "asset_index.json")
    index = AssetIndex(store, {r.asset_identifier: r for r in records})
    provider = FakeProvider(assets)
    return store, index, provider, DeletionCoordinator(provider, index)


def test_deleting_non_first_member_removes_exactly_that_record(tmp_path) -> None:
    records = [
        make_record("old", fingerprint="h", created=ts(1)),
        make_record("new", fingerprint="h", created=ts(2)),
        make_record("other", fingerprint="z"),
    ]
    store, index, provider, coordinator = _setup(
        tmp_path, records, [make_asset("old", b"x"), make_asset("new", b"x"), make_asset("other", b"y")]
    )
    group = coordinator.duplicate_groups()[0]

    result = coordinator.delete_duplicates(group)

    assert provider.delete_calls == [["new"]]
    assert result.deleted == ["new"]
    assert result.failed == []
    assert result.groups == []
    assert "new" not in index
    assert set(store.load()) == {"old", "other"}


def test_rejected_deletion_leaves_group_unchanged(tmp_path) -> None:
    records = [make_record("old", fingerprint="h", created=ts(1)), make_record("new", fingerprint="h", created=ts(2))]
    store, index, provider, coordinator = _setup(tmp_path, records, [make_asset("old", b"x"), make_asset("new", b"x")])
    provider.undeletable = {"new"}
    before = coordinator.duplicate_groups()

    result = coordinator.delete_duplicates(before[0])

    assert result.deleted == []
    assert result.failed == ["new"]
    assert coordinator.duplicate_groups() == before
    assert result.groups == before


def test_partial_deletion_reports_what_was_not_removed(tmp_path) -> None:
    records = [
        make_record("k", fingerprint="h", created=ts(1)),
        make_record("d1", fingerprint="h", created=ts(2)),
        make_record("d2", fingerprint="h", created=ts(3)),
    ]
    _, index, provider, coordinator = _setup(
        tmp_path, records, [make_asset(i, b"x") for i in ("k", "d1", "d2")]
    )
    provider.undeletable = {"d2"}

    result = coordinator.delete_duplicates(coordinator.duplicate_groups()[0])

    assert result.deleted == ["d1"]
    assert result.failed == ["d2"]
    assert ids(result.groups) == [["k", "d2"]]


def test_provider_exception_counts_as_nothing_deleted(tmp_path) -> None:
    class Exploding(FakeProvider):
        def delete(self, identifiers):
            raise PermissionError("library locked")

    records = [make_record("a", fingerprint="h", created=ts(1)), make_record("b", fingerprint="h", created=ts(2))]
    index = AssetIndex(RecordStore(tmp_path / "i.json"), {r.asset_identifier: r for r in records})
    coordinator = DeletionCoordinator(Exploding([]), index)

    result = coordinator.delete_duplicates(coordinator.duplicate_groups()[0])

    assert result.deleted == []
    assert result.failed == ["b"]
    assert result.errors
    assert "b" in index


def test_degenerate_group_is_a_noop(tmp_path) -> None:
    records = [make_record("solo", fingerprint="h")]
    _, _, provider, coordinator = _setup(tmp_path, records, [make_asset("solo", b"x")])

    result = coordinator.delete_duplicates(records)

    assert result.deleted_count == 0
    assert provider.delete_calls == []


def test_group_with_no_live_targets_raises(tmp_path) -> None:
    stale = [make_record("keep", fingerprint="h", created=ts(1)), make_record("gone", fingerprint="h", created=ts(2))]
    _, _, provider, coordinator = _setup(tmp_path, [stale[0]], [make_asset("keep", b"x")])

    with pytest.raises(NoAssetsToDeleteError) as excinfo:
        coordinator.delete_duplicates(stale)

    assert excinfo.value.requested == ["gone"]
    assert provider.delete_calls == []


def test_delete_all_sums_results(tmp_path) -> None:
    records = [
        make_record("a1", fingerprint="a", created=ts(1), size=10),
        make_record("a2", fingerprint="a", created=ts(2), size=10),
        make_record("b1", fingerprint="b", created=ts(1), size=30),
        make_record("b2", fingerprint="b", created=ts(2), size=30),
    ]
    _, index, provider, coordinator = _setup(tmp_path, records, [make_asset(r.asset_identifier, b"x") for r in records])
    provider.undeletable = {"b2"}

    stats = coordinator.delete_all(coordinator.duplicate_groups())

    assert stats["files_removed"] == 1
    assert stats["groups_modified"] == 1
    assert stats["bytes_reclaimed"] == 10
    assert stats["failed"] == ["b2"]
    assert set(index.snapshot()) == {"a1", "b1", "b2"}
