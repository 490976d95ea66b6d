# tests/test_query_composer.py

import pytest

from async_docstore.base.interfaces import DocumentSnapshot, Query
from async_docstore.base.query import FilterOperator, QuerySpec, WhereFilter
from async_docstore.gateway import StoreGateway


def _seqs(page):
    return [doc["seq"] for doc in page.data]


@pytest.mark.asyncio
async def test_pagination_with_cursor(seeded_gateway):
    first = await seeded_gateway.query(
        QuerySpec(table="items", sorting_field="seq", limit=4)
    )
    assert _seqs(first) == [1, 2, 3, 4]
    assert isinstance(first.cursor, DocumentSnapshot)
    assert first.cursor.get("seq") == 4

    second = await seeded_gateway.query(
        QuerySpec(table="items", sorting_field="seq", limit=4, cursor=first.cursor)
    )
    assert _seqs(second) == [5, 6, 7, 8]

    third = await seeded_gateway.query(
        QuerySpec(table="items", sorting_field="seq", limit=4, cursor=second.cursor)
    )
    assert _seqs(third) == [9, 10]

    last = await seeded_gateway.query(
        QuerySpec(table="items", sorting_field="seq", limit=4, cursor=third.cursor)
    )
    assert last.data == []
    assert last.cursor is None


@pytest.mark.asyncio
async def test_results_carry_handle_and_fields(seeded_gateway):
    page = await seeded_gateway.query(
        QuerySpec(
            table="items",
            filters=[WhereFilter("name", "==", "Item 3")],
        )
    )
    # The stored legacy `id` field takes precedence over the handle
    assert page.data == [
        {"id": 3, "seq": 3, "name": "Item 3", "active": False, "tags": ["odd", "t0"]}
    ]
    assert page.cursor.id == "item-03"


@pytest.mark.asyncio
async def test_handle_is_used_when_no_legacy_id(gateway):
    await gateway.write("zones", "zone-a", {"label": "A"})
    page = await gateway.query(QuerySpec(table="zones"))
    assert page.data == [{"id": "zone-a", "label": "A"}]


@pytest.mark.asyncio
async def test_dict_filters_and_sorting(seeded_gateway):
    page = await seeded_gateway.query(
        QuerySpec(
            table="items",
            filters=[
                {"field": "active", "condition": "==", "value": True},
                {"field": "tags", "condition": "array-contains-any", "value": ["t1", None]},
            ],
            sorting_field="seq",
        )
    )
    # even and (seq % 3 == 1): 4, 10
    assert _seqs(page) == [4, 10]


@pytest.mark.asyncio
async def test_empty_array_filter_is_dropped(seeded_gateway):
    page = await seeded_gateway.query(
        QuerySpec(
            table="items",
            filters=[{"field": "id", "condition": "in", "value": [None, ""]}],
            sorting_field="seq",
        )
    )
    assert _seqs(page) == list(range(1, 11))


@pytest.mark.asyncio
@pytest.mark.parametrize("falsy", [0, "", False])
async def test_falsy_scalar_filter_is_dropped(seeded_gateway, falsy):
    # A filter on a falsy scalar is not applied, so every document matches
    page = await seeded_gateway.query(
        QuerySpec(
            table="items",
            filters=[WhereFilter("active", "==", falsy)],
            sorting_field="seq",
        )
    )
    assert len(page.data) == 10


@pytest.mark.asyncio
async def test_filters_are_sent_in_order_without_dedup(gateway, monkeypatch):
    captured = []

    async def capture(query: Query):
        captured.append(query)
        return []

    monkeypatch.setattr(gateway.store, "run_query", capture)

    await gateway.query(
        QuerySpec(
            table="items",
            filters=[
                WhereFilter("seq", ">", 2),
                WhereFilter("seq", ">", 2),
                WhereFilter("tags", "in", []),
                WhereFilter("name", "!=", "x"),
            ],
            sorting_field="seq",
            limit=3,
        )
    )

    (query,) = captured
    assert query.collection_name == "items"
    assert [(f.field, f.operator, f.value) for f in query.filters] == [
        ("seq", FilterOperator.GT, 2),
        ("seq", FilterOperator.GT, 2),
        ("name", FilterOperator.NE, "x"),
    ]
    assert query.orders == ("seq",)
    assert query.limit_count == 3
    assert query.cursor is None


@pytest.mark.asyncio
async def test_range_filter(seeded_gateway):
    page = await seeded_gateway.query(
        QuerySpec(
            table="items",
            filters=[WhereFilter("seq", ">=", 3), WhereFilter("seq", "<", 6)],
            sorting_field="seq",
        )
    )
    assert _seqs(page) == [3, 4, 5]


@pytest.mark.asyncio
async def test_sorting_excludes_documents_without_the_field(seeded_gateway):
    await seeded_gateway.write("items", "item-unsorted", {"name": "No seq"})
    page = await seeded_gateway.query(QuerySpec(table="items", sorting_field="seq"))
    assert len(page.data) == 10

    everything = await seeded_gateway.read_all("items")
    assert len(everything) == 11


@pytest.mark.asyncio
async def test_nonexistent_snapshots_are_filtered_but_cursor_is_raw(gateway, monkeypatch):
    raw = [
        DocumentSnapshot(id="a", data={"seq": 1}),
        DocumentSnapshot(id="b", data=None, exists=False),
    ]

    async def fake_run(query):
        return raw

    monkeypatch.setattr(gateway.store, "run_query", fake_run)

    page = await gateway.query(QuerySpec(table="items"))
    assert page.data == [{"id": "a", "seq": 1}]
    assert page.cursor is raw[-1]


@pytest.mark.asyncio
async def test_backend_errors_propagate(memory_store, logger):
    gateway = StoreGateway(memory_store, logger=logger)
    too_many = list(range(1, 40))
    with pytest.raises(ValueError, match="at most 30 values"):
        await gateway.query(
            QuerySpec(table="items", filters=[WhereFilter("id", "in", too_many)])
        )


@pytest.mark.asyncio
async def test_read_many_by_id(seeded_gateway):
    docs = await seeded_gateway.read_many_by_id("items", [2, 5, 99])
    assert sorted(doc["seq"] for doc in docs) == [2, 5]


@pytest.mark.asyncio
@pytest.mark.parametrize("id_list", [[], None, (), "1,2", 5])
async def test_read_many_by_id_guard_skips_backend(gateway, monkeypatch, id_list):
    async def must_not_run(query):
        raise AssertionError("backend must not be queried")

    monkeypatch.setattr(gateway.store, "run_query", must_not_run)

    assert await gateway.read_many_by_id("items", id_list) == []


@pytest.mark.asyncio
async def test_read_all(seeded_gateway):
    docs = await seeded_gateway.read_all("items")
    assert sorted(doc["seq"] for doc in docs) == list(range(1, 11))
    assert await seeded_gateway.read_all("empty_table") == []
