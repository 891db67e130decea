import pytest

from opsplugs.nacos.models import ConfigItem, ConfigListResponse


def test_config_item_round_trip():
    item = ConfigItem(data_id="app.yml", group="DEFAULT_GROUP", content="a: 1", tenant="public")
    assert ConfigItem.from_dict(item.to_dict()) == item


def test_config_item_wire_keys():
    data = ConfigItem(data_id="app.yml").to_dict()
    assert sorted(data) == ["content", "dataId", "group", "tenant"]
    assert data["dataId"] == "app.yml"


def test_config_item_missing_fields_default_empty():
    assert ConfigItem.from_dict({}) == ConfigItem()


def test_config_item_case_insensitive_keys():
    assert ConfigItem.from_dict({"DATAID": "x"}).data_id == "x"


def test_config_item_wrong_type():
    with pytest.raises(ValueError):
        ConfigItem.from_dict({"dataId": 5})


def test_list_response_round_trip():
    page = ConfigListResponse(
        total_count=2,
        page_number=1,
        pages_available=1,
        page_items=[ConfigItem(data_id="a"), ConfigItem(data_id="b")],
    )
    assert ConfigListResponse.from_dict(page.to_dict()) == page


def test_list_response_absent_items_encode_null():
    page = ConfigListResponse.from_dict({"totalCount": 0})
    assert page.page_items is None
    assert page.to_dict()["pageItems"] is None


def test_list_response_rejects_non_object():
    with pytest.raises(ValueError):
        ConfigListResponse.from_dict([1, 2])


def test_list_response_rejects_bad_items():
    with pytest.raises(ValueError):
        ConfigListResponse.from_dict({"pageItems": "nope"})