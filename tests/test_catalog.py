import pytest

from catalog import (
    DenseLayout,
    FilterState,
    SortKey,
    StandardLayout,
    apply_filters,
    category_codes,
    filter_by_category,
    filter_by_price,
    grid_spec,
    sort_products,
)
from tests.conftest import make_product


@pytest.fixture
def products():
    return [
        make_product("a", "Zeta", 30.0, "MAN", "2024-01-01T00:00:00Z"),
        make_product("b", "alpha", 10.0, "WOMAN", "2024-03-01T00:00:00Z"),
        make_product("c", "Beta", 20.0, "SHOES", "2024-02-01T00:00:00Z"),
        make_product("d", "Gamma", 10.0, "girl", "2024-02-01T00:00:00Z"),
        make_product("e", "Delta", 50.0, "ACCESSORIES", "2023-12-01T00:00:00Z"),
    ]


def ids(products):
    return [p.id for p in products]


def test_price_filter_is_closed_and_order_preserving(products):
    result = filter_by_price(products, (10, 30))
    assert ids(result) == ["a", "b", "c", "d"]


def test_price_filter_matches_subsequence_for_every_range(products):
    for lo, hi in [(0, 0), (10, 10), (11, 49), (0, 1000), (20, 50)]:
        expected = [p.id for p in products if lo <= p.price <= hi]
        assert ids(filter_by_price(products, (lo, hi))) == expected


def test_price_filter_with_inverted_range_is_empty(products):
    assert filter_by_price(products, (100, 10)) == []


@pytest.mark.parametrize("sentinel", [None, "", "all", "ALL"])
def test_category_sentinel_is_identity(products, sentinel):
    assert ids(filter_by_category(products, sentinel)) == ids(products)


def test_category_group_expands_to_backend_codes(products):
    assert ids(filter_by_category(products, "clothing")) == ["a", "b"]
    assert ids(filter_by_category(products, "Clothing")) == ["a", "b"]
    assert ids(filter_by_category(products, "shoes")) == ["c"]


def test_category_outside_table_uses_equality(products):
    assert category_codes("girl") == frozenset({"girl"})
    assert ids(filter_by_category(products, "girl")) == ["d"]


def test_unknown_category_yields_empty(products):
    assert filter_by_category(products, "hats") == []


def test_sort_price_asc_is_nondecreasing_permutation(products):
    result = sort_products(products, "price-asc")
    prices = [p.price for p in result]
    assert prices == sorted(prices)
    assert sorted(ids(result)) == sorted(ids(products))


def test_sort_price_desc(products):
    assert [p.price for p in sort_products(products, SortKey.PRICE_DESC)] == [50.0, 30.0, 20.0, 10.0, 10.0]


def test_sort_is_stable_for_ties(products):
    # b and d share price 10 and keep their input order in both directions
    assert ids(sort_products(products, "price-asc"))[:2] == ["b", "d"]
    assert ids(sort_products(products, "price-desc"))[-2:] == ["b", "d"]


def test_sort_is_idempotent(products):
    for key in SortKey:
        once = sort_products(products, key)
        assert ids(sort_products(once, key)) == ids(once)


def test_sort_name_is_case_insensitive():
    names = [make_product(n, n) for n in ["Zeta", "alpha", "Beta"]]
    assert [p.name for p in sort_products(names, "name-asc")] == ["alpha", "Beta", "Zeta"]


def test_sort_name_folds_accents():
    names = [make_product(n, n) for n in ["Zeta", "\u00c9lan", "apple", "Eagle"]]
    assert [p.name for p in sort_products(names, "name-asc")] == ["apple", "Eagle", "\u00c9lan", "Zeta"]


def test_sort_newest_first_and_unknown_key_defaults_to_newest(products):
    expected = ["b", "c", "d", "a", "e"]
    assert ids(sort_products(products, "newest")) == expected
    assert ids(sort_products(products, "bogus")) == expected
    assert ids(sort_products(products, None)) == expected


def test_sort_does_not_mutate_input(products):
    before = ids(products)
    sort_products(products, "price-desc")
    assert ids(products) == before


def test_missing_timestamp_sorts_last():
    items = [make_product("old", created_at=None), make_product("new", created_at="2024-05-01T00:00:00Z")]
    assert ids(sort_products(items, "newest")) == ["new", "old"]


def test_grid_layouts_per_family():
    assert grid_spec(StandardLayout("5x5")).columns == 5
    assert grid_spec(StandardLayout.THREE) == (3, "regular")
    assert grid_spec(DenseLayout("10x10")) == (10, "thumbnail")
    assert grid_spec(DenseLayout.SIX).density == "compact"
    assert grid_spec(DenseLayout.TWO).density == "detailed"


def test_layout_outside_family_fails_fast():
    with pytest.raises(ValueError):
        StandardLayout("6x6")
    with pytest.raises(ValueError):
        DenseLayout("3x3")
    with pytest.raises(TypeError):
        grid_spec("5x5")


def test_apply_filters_runs_the_whole_pipeline(products):
    state = FilterState(category="clothing", price_range=(0, 25), sort="price-asc")
    assert ids(apply_filters(products, state)) == ["b"]
