import uuid

from consumables.schemas.product import ProductCreate, ProductUpdate
from consumables.schemas.stock import RestockCreate, UsageCreate
from consumables.schemas.validation import FORM_ERRORS_KEY, parse_reference, validate


def test_restock_payload_is_normalized() -> None:
    product_id = str(uuid.uuid4())
    result = validate(
        RestockCreate,
        {
            "product_id": f"  {product_id.upper()} ",
            "quantity_added": 20,
            "person_name": "  Ana ",
            "person_role": "   ",
            "notes": " monthly refill ",
        },
    )

    assert result.ok
    assert result.data.product_id == product_id
    assert result.data.person_name == "Ana"
    assert result.data.person_role is None
    assert result.data.notes == "monthly refill"
    assert result.data.unit is None


def test_restock_reports_every_bad_field() -> None:
    result = validate(RestockCreate, {"product_id": "not-an-id", "quantity_added": 0, "person_name": "   "})

    assert not result.ok
    assert set(result.errors) == {"product_id", "quantity_added", "person_name"}
    assert result.errors["product_id"] == ["Invalid product id"]
    assert result.errors["person_name"] == ["Person name is required"]


def test_quantity_must_be_a_real_integer() -> None:
    stock_item_id = str(uuid.uuid4())
    for bad in ("5", 2.5, True, None, -1):
        result = validate(UsageCreate, {"stock_item_id": stock_item_id, "quantity_taken": bad, "person_name": "Budi"})
        assert not result.ok, bad
        assert list(result.errors) == ["quantity_taken"]


def test_missing_fields_are_reported_by_name() -> None:
    result = validate(UsageCreate, {})

    assert not result.ok
    assert set(result.errors) == {"stock_item_id", "quantity_taken", "person_name"}


def test_non_object_input_is_a_form_error() -> None:
    result = validate(ProductCreate, ["not", "a", "dict"])

    assert not result.ok
    assert FORM_ERRORS_KEY in result.errors


def test_product_create_rules() -> None:
    result = validate(
        ProductCreate,
        {"product_code": " ", "name": "Stapler", "category": "x", "measurement_unit": "", "reorder_point": 0},
    )

    assert not result.ok
    assert result.errors["product_code"] == ["Product code is required"]
    assert result.errors["measurement_unit"] == ["Measurement unit is required"]
    assert result.errors["category"] == ["Invalid category id"]
    assert "reorder_point" in result.errors
    assert "name" not in result.errors


def test_product_update_is_partial_but_checked() -> None:
    assert validate(ProductUpdate, {}).ok
    assert validate(ProductUpdate, {"reorder_point": 3}).ok

    result = validate(ProductUpdate, {"name": None, "reorder_point": 0})
    assert not result.ok
    assert set(result.errors) == {"name", "reorder_point"}


def test_parse_reference() -> None:
    ref = uuid.uuid4()
    assert parse_reference(str(ref).upper()) == str(ref)
    assert parse_reference("nope") is None
    assert parse_reference(42) is None
