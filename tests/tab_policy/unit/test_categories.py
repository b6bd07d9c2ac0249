from tabview.tab_policy import CATEGORY_DISPLAY_ORDER, Category, category_name, coerce_category


def test_display_order_is_uncategorized_important_useful_ignore():
    assert [int(c) for c in CATEGORY_DISPLAY_ORDER] == [0, 3, 2, 1]


def test_category_name_maps_known_values_and_falls_back():
    assert category_name(Category.IMPORTANT) == "Important"
    assert category_name("2") == "Useful"
    assert category_name(0) == "Uncategorized"
    assert category_name(7) == "Category 7"
    assert category_name("misc") == "Category misc"


def test_coerce_category_rejects_non_numeric_values():
    assert coerce_category("3") == 3
    assert coerce_category(1) == 1
    assert coerce_category(None) is None
    assert coerce_category(True) is None
    assert coerce_category("high") is None
    assert coerce_category(2.0) == 2
    assert coerce_category("3.0") == 3
    assert coerce_category(2.5) is None
    assert coerce_category(float("nan")) is None
