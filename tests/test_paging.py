import pytest

from app.core.errors import ValidationError
from app.models.product import Product
from app.services.paging import (
    Page,
    PageRequest,
    SortSpec,
    fetch_page,
    order_clauses,
    page_count,
    text_filter,
)

from conftest import make_product


def test_page_request_range_is_inclusive():
    req = PageRequest(page=3, page_size=10)
    assert req.offset == 20
    assert req.last_index == 29


@pytest.mark.parametrize("page, page_size", [(0, 10), (-1, 10), (1, 0)])
def test_page_request_rejects_out_of_range_values(page, page_size):
    with pytest.raises(ValidationError):
        PageRequest(page=page, page_size=page_size)


@pytest.mark.parametrize(
    "total, size, pages",
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (101, 50, 3)],
)
def test_page_count_is_ceiling(total, size, pages):
    assert page_count(total, size) == pages


def test_page_item_range():
    page = Page(rows=[], total_count=23, page=3, page_size=10)
    assert page.total_pages == 3
    assert page.start_item == 21
    assert page.end_item == 23

    empty = Page(rows=[], total_count=0, page=1, page_size=10)
    assert empty.start_item == 0
    assert empty.end_item == 0


def test_text_filter_ignores_blank_terms():
    assert text_filter([Product.name], "   ") is None
    assert text_filter([], "abc") is None


@pytest.fixture()
def catalog(db):
    names = [
        ("Harina de trigo", "Ingredientes"),
        ("Azúcar", "Ingredientes"),
        ("Pan integral", "Panadería"),
        ("Pan blanco", "Panadería"),
        ("Levadura", "Ingredientes"),
        ("100% cacao", "Chocolates"),
    ]
    return [make_product(db, name=n, category=c, stock=3) for n, c in names]


def test_fetch_page_counts_the_filtered_set(db, catalog):
    page = fetch_page(
        db.query(Product),
        PageRequest(1, 2),
        order_by=(Product.id.asc(),),
        search="INGRED",
        search_fields=(Product.name, Product.category),
    )

    assert page.total_count == 3
    assert page.total_pages == 2
    assert [p.name for p in page.rows] == ["Harina de trigo", "Azúcar"]


def test_fetch_page_matches_any_field(db, catalog):
    page = fetch_page(
        db.query(Product),
        PageRequest(1, 10),
        order_by=(Product.id.asc(),),
        search="pan",
        search_fields=(Product.name, Product.category),
    )

    assert {p.name for p in page.rows} == {"Pan integral", "Pan blanco"}


def test_fetch_page_treats_wildcards_literally(db, catalog):
    page = fetch_page(
        db.query(Product),
        PageRequest(1, 10),
        search="100%",
        search_fields=(Product.name,),
    )

    assert [p.name for p in page.rows] == ["100% cacao"]


def test_fetch_page_slices_by_offset(db, catalog):
    page = fetch_page(db.query(Product), PageRequest(2, 4), order_by=(Product.id.asc(),))

    assert page.total_count == 6
    assert [p.id for p in page.rows] == [catalog[4].id, catalog[5].id]


def test_empty_result_is_not_an_error(db, catalog):
    page = fetch_page(
        db.query(Product),
        PageRequest(1, 10),
        search="no-such-product",
        search_fields=(Product.name, Product.category),
    )

    assert page.rows == []
    assert page.total_count == 0
    assert page.total_pages == 0


def test_page_past_the_end_returns_no_rows(db, catalog):
    page = fetch_page(db.query(Product), PageRequest(5, 10))

    assert page.rows == []
    assert page.total_count == 6


def test_order_clauses_reject_unknown_fields():
    with pytest.raises(ValidationError):
        order_clauses(Product, SortSpec("password"), ("name", "id"))


def test_order_clauses_append_tiebreakers():
    clauses = order_clauses(
        Product,
        SortSpec("name", "asc", tiebreakers=(Product.id.desc(),)),
        ("name",),
    )
    assert len(clauses) == 2


@pytest.mark.parametrize("term", ["AZÚCAR", "azúcar", "ZÚC", "panadería".upper()])
def test_search_folds_accented_capitals(db, catalog, term):
    page = fetch_page(
        db.query(Product),
        PageRequest(1, 10),
        search=term,
        search_fields=(Product.name, Product.category),
    )

    assert page.total_count >= 1
    assert all(
        term.lower() in p.name.lower() or term.lower() in p.category.lower()
        for p in page.rows
    )
