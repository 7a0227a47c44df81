import uuid

import pytest
from sqlalchemy.orm import Query

from conftest import product_payload
from consumables.errors import ConflictError, DuplicateError, NotFoundError, ValidationError
from consumables.models.category import Category
from consumables.services import category_service, product_service, stock_service


def test_create_product(db, category) -> None:
    product = product_service.create_product(db, product_payload(category.id, product_code=" PAP-A4 "))

    assert product.id
    assert product.product_code == "PAP-A4"
    assert product.category_id == category.id
    assert product.category_name == "Office Supplies"
    assert product.reorder_point == 5


def test_create_product_invalid_input(db) -> None:
    with pytest.raises(ValidationError) as exc_info:
        product_service.create_product(db, {"name": "Stapler"})

    assert {"product_code", "category", "measurement_unit", "reorder_point"} <= set(exc_info.value.fields)


def test_duplicate_code_is_rejected(db, category, product) -> None:
    with pytest.raises(DuplicateError):
        product_service.create_product(db, product_payload(category.id, name="Another paper"))

    with pytest.raises(DuplicateError):
        product_service.create_product(db, product_payload(category.id, product_code="PAP-B5"))

    unchanged = product_service.get_product(db, product.id)
    assert unchanged.name == "A4 Paper"
    assert unchanged.product_code == "PAP-A4"


def test_get_missing_or_malformed_product(db) -> None:
    with pytest.raises(NotFoundError):
        product_service.get_product(db, str(uuid.uuid4()))
    with pytest.raises(NotFoundError):
        product_service.get_product(db, "bogus")


def test_update_product_partial(db, category, product) -> None:
    other = Category(name="Cleaning")
    db.add(other)
    db.commit()

    updated = product_service.update_product(db, product.id, {"reorder_point": 12, "category": other.id})

    assert updated.reorder_point == 12
    assert updated.category_id == other.id
    assert updated.name == "A4 Paper"


def test_update_product_checks_uniqueness(db, category, product) -> None:
    second = product_service.create_product(db, product_payload(category.id, product_code="TNR-01", name="Toner"))

    with pytest.raises(DuplicateError):
        product_service.update_product(db, second.id, {"name": "A4 Paper"})

    # Renaming to its own current values is not a conflict
    same = product_service.update_product(db, second.id, {"name": "Toner", "product_code": "TNR-01"})
    assert same.name == "Toner"


def test_update_missing_product(db) -> None:
    with pytest.raises(NotFoundError):
        product_service.update_product(db, str(uuid.uuid4()), {"name": "Ghost"})


def test_update_validates_before_lookup(db) -> None:
    with pytest.raises(ValidationError):
        product_service.update_product(db, str(uuid.uuid4()), {"reorder_point": "many"})


def test_delete_product_without_stock(db, product) -> None:
    product_service.delete_product(db, product.id)

    with pytest.raises(NotFoundError):
        product_service.get_product(db, product.id)


def test_delete_product_with_stock_is_blocked(db, product) -> None:
    stock_service.record_restock(db, {"product_id": product.id, "quantity_added": 3, "person_name": "Ana"})

    with pytest.raises(ConflictError):
        product_service.delete_product(db, product.id)

    assert product_service.get_product(db, product.id).id == product.id


def test_delete_product_racing_a_first_restock(db, product, monkeypatch: pytest.MonkeyPatch) -> None:
    stock_service.record_restock(db, {"product_id": product.id, "quantity_added": 3, "person_name": "Ana"})
    # The stock row shows up after the pre-check has already counted zero
    monkeypatch.setattr(Query, "count", lambda self: 0)

    with pytest.raises(ConflictError):
        product_service.delete_product(db, product.id)

    monkeypatch.undo()
    assert product_service.get_product(db, product.id).id == product.id


def test_unknown_category_is_a_field_error(db, category, product) -> None:
    with pytest.raises(ValidationError) as exc_info:
        product_service.create_product(
            db, product_payload(str(uuid.uuid4()), product_code="TNR-01", name="Toner")
        )
    assert exc_info.value.fields == {"category": ["Category not found"]}

    with pytest.raises(ValidationError):
        product_service.update_product(db, product.id, {"category": str(uuid.uuid4())})
    assert product_service.get_product(db, product.id).category_id == category.id


def test_delete_missing_product(db) -> None:
    with pytest.raises(NotFoundError):
        product_service.delete_product(db, str(uuid.uuid4()))


def test_list_products_search_filter_and_paging(db, category) -> None:
    other = Category(name="Pantry")
    db.add(other)
    db.commit()
    for i in range(1, 6):
        product_service.create_product(db, product_payload(category.id, product_code=f"PEN-{i}", name=f"Pen {i}"))
    product_service.create_product(db, product_payload(other.id, product_code="COF-1", name="Coffee"))

    page = product_service.list_products(db, page=2, limit=2, filters={"q": "pen"})
    assert [p.name for p in page["items"]] == ["Pen 3", "Pen 4"]
    assert page["pagination"] == {"total_items": 5, "current_page": 2, "total_pages": 3, "limit": 2}

    by_code = product_service.list_products(db, filters={"q": "cof"})
    assert [p.product_code for p in by_code["items"]] == ["COF-1"]

    pantry = product_service.list_products(db, filters={"category": other.id})
    assert [p.category_name for p in pantry["items"]] == ["Pantry"]

    desc = product_service.list_products(db, limit=1, sort_by="product_code", order="desc")
    assert desc["items"][0].product_code == "PEN-5"


def test_list_products_rejects_bad_parameters(db) -> None:
    with pytest.raises(ValidationError) as exc_info:
        product_service.list_products(db, sort_by="price")
    assert "sort_by" in exc_info.value.fields

    with pytest.raises(ValidationError) as exc_info:
        product_service.list_products(db, page=0, limit=0)
    assert set(exc_info.value.fields) == {"page", "limit"}

    with pytest.raises(ValidationError):
        product_service.list_products(db, filters={"category": "nope"})


def test_resolve_category(db, category) -> None:
    ref = category_service.resolve_category(db, category.id)
    assert ref.name == "Office Supplies"

    with pytest.raises(NotFoundError):
        category_service.resolve_category(db, str(uuid.uuid4()))
