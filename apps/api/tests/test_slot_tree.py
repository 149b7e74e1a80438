"""Tests for the pure slot map operations in app.services.slot_tree."""

from typing import Any

import pytest

from app.services import slot_tree
from app.services.slot_tree import SlotOperationError, SlotValidationError


def _slot(slot_id: str, parent_id: str | None, col: int = 1, row: int = 1, **extra: Any) -> dict[str, Any]:
    return {
        "id": slot_id,
        "type": extra.pop("type", "text"),
        "content": "",
        "className": extra.pop("className", ""),
        "parentClassName": "",
        "styles": extra.pop("styles", {}),
        "parentId": parent_id,
        "position": {"col": col, "row": row},
        "colSpan": extra.pop("colSpan", 4),
        "metadata": extra.pop("metadata", {}),
        **extra,
    }


@pytest.fixture
def layout() -> dict[str, Any]:
    """Skeleton cart layout plus three text slots and a nested container."""
    slots = slot_tree.empty_configuration("cart")["slots"]
    slots["a"] = _slot("a", "content_area", col=1)
    slots["b"] = _slot("b", "content_area", col=2)
    slots["c"] = _slot("c", "content_area", col=3)
    slots["box"] = _slot("box", "content_area", col=1, row=2, type="container")
    slots["inner"] = _slot("inner", "box")
    slots["deep"] = _slot("deep", "inner")
    return slots


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateSlots:
    def test_empty_configuration_is_valid(self) -> None:
        config = slot_tree.empty_configuration("category")
        assert slot_tree.is_valid(config["slots"])
        assert set(config["slots"]) == {
            "main_layout",
            "header_container",
            "content_area",
            "sidebar_area",
        }
        assert config["slot_type"] == "category_layout"
        assert config["slots"]["content_area"]["viewMode"] == ["grid", "list"]

    def test_rejects_non_object(self) -> None:
        with pytest.raises(SlotValidationError):
            slot_tree.validate_slots(["not", "a", "map"])

    def test_rejects_id_mismatch(self) -> None:
        with pytest.raises(SlotValidationError, match="invalid or missing id"):
            slot_tree.validate_slots({"x": {"id": "y", "type": "text"}})

    def test_missing_type_rejected(self) -> None:
        with pytest.raises(SlotValidationError, match="missing type"):
            slot_tree.validate_slots({"x": {"id": "x", "content": "hi", "parentId": None, "foo": 1}})

    def test_style_only_override_allowed(self) -> None:
        assert slot_tree.is_valid({"x": {"id": "x", "styles": {"color": "red"}}})

    def test_view_mode_must_be_list(self) -> None:
        with pytest.raises(SlotValidationError, match="viewMode"):
            slot_tree.validate_slots({"x": {"id": "x", "type": "text", "viewMode": "grid"}})

    def test_dangling_parent_rejected(self) -> None:
        with pytest.raises(SlotValidationError, match="non-existent parent"):
            slot_tree.validate_slots({"x": {"id": "x", "type": "text", "parentId": "ghost"}})

    def test_instance_parent_resolves_to_template(self) -> None:
        slots = {
            "card": {"id": "card", "type": "container"},
            "name": {"id": "name", "type": "text", "parentId": "card_3"},
        }
        assert slot_tree.is_valid(slots)

    def test_root_must_have_null_parent(self) -> None:
        slots = {
            "main_layout": {"id": "main_layout", "type": "container", "parentId": "other"},
            "other": {"id": "other", "type": "container"},
        }
        with pytest.raises(SlotValidationError, match="parentId: null"):
            slot_tree.validate_slots(slots)

    def test_parent_cycle_rejected(self) -> None:
        slots = {
            "x": {"id": "x", "type": "container", "parentId": "y"},
            "y": {"id": "y", "type": "container", "parentId": "x"},
        }
        with pytest.raises(SlotValidationError, match="parent cycle"):
            slot_tree.validate_slots(slots)

    def test_self_parent_rejected(self) -> None:
        with pytest.raises(SlotValidationError, match="parent cycle"):
            slot_tree.validate_slots({"x": {"id": "x", "type": "container", "parentId": "x"}})


class TestTemplateId:
    def test_strips_instance_suffix(self) -> None:
        assert slot_tree.template_id("product_card_name_0") == "product_card_name"

    def test_plain_id_unchanged(self) -> None:
        assert slot_tree.template_id("product_card_name") == "product_card_name"


# ---------------------------------------------------------------------------
# Create / delete
# ---------------------------------------------------------------------------


class TestCreateSlot:
    def test_create_slot_with_parent(self, layout: dict[str, Any]) -> None:
        updated, slot_id = slot_tree.create_slot(layout, "text", "cart", "Hello", "content_area")

        assert slot_id.startswith("new_text_")
        slot = updated[slot_id]
        assert slot["parentId"] == "content_area"
        assert slot["content"] == "Hello"
        assert slot["colSpan"] == 6
        assert slot["isCustom"] is True
        assert slot_id not in layout

    def test_product_page_slot_defaults_to_main_layout(self, layout: dict[str, Any]) -> None:
        updated, slot_id = slot_tree.create_slot(layout, "image", "product")
        assert updated[slot_id]["parentId"] == "main_layout"
        assert updated[slot_id]["colSpan"] == 12

    def test_container_gets_min_height(self, layout: dict[str, Any]) -> None:
        updated, slot_id = slot_tree.create_slot(layout, "container", "cart", parent_id="content_area")
        assert updated[slot_id]["styles"] == {"minHeight": "80px"}
        assert updated[slot_id]["colSpan"] == 12

    def test_unknown_parent_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="not found"):
            slot_tree.create_slot(layout, "text", "cart", parent_id="ghost")


class TestDeleteSlot:
    def test_delete_removes_descendants(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.delete_slot(layout, "box")

        assert "box" not in updated
        assert "inner" not in updated
        assert "deep" not in updated
        assert "a" in updated
        # Input is untouched
        assert "box" in layout

    @pytest.mark.parametrize("slot_id", ["main_layout", "header_container", "content_area", "sidebar_area"])
    def test_protected_containers(self, layout: dict[str, Any], slot_id: str) -> None:
        with pytest.raises(SlotOperationError, match="critical layout container"):
            slot_tree.delete_slot(layout, slot_id)

    def test_missing_slot(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError):
            slot_tree.delete_slot(layout, "ghost")


# ---------------------------------------------------------------------------
# Text and class changes
# ---------------------------------------------------------------------------


class TestChangeText:
    def test_change_text(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.change_text(layout, "a", "New copy")
        assert updated["a"]["content"] == "New copy"
        assert "lastModified" in updated["a"]["metadata"]
        assert layout["a"]["content"] == ""


class TestChangeClass:
    def test_alignment_moves_to_parent_class(self, layout: dict[str, Any]) -> None:
        layout["a"]["className"] = "font-bold text-left"
        updated = slot_tree.change_class(layout, "a", "text-center", is_alignment_change=True)

        assert updated["a"]["parentClassName"] == "text-center"
        assert updated["a"]["className"] == "font-bold"

    def test_alignment_detected_without_flag(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.change_class(layout, "a", "text-right")
        assert updated["a"]["parentClassName"] == "text-right"

    def test_empty_class_keeps_existing(self, layout: dict[str, Any]) -> None:
        layout["a"]["className"] = "text-lg italic"
        updated = slot_tree.change_class(layout, "a", "", styles={"color": "red"})

        assert updated["a"]["className"] == "text-lg italic"
        assert updated["a"]["styles"]["color"] == "red"

    def test_instance_materialized_and_template_updated(self) -> None:
        slots = {
            "product_card_name": {
                "id": "product_card_name",
                "type": "text",
                "content": "{{product.name}}",
                "className": "text-sm",
                "styles": {},
            }
        }
        updated = slot_tree.change_class(slots, "product_card_name_0", "text-lg")

        assert updated["product_card_name_0"]["type"] == "text"
        assert updated["product_card_name_0"]["className"] == "text-lg"
        assert updated["product_card_name"]["className"] == "text-lg"


class TestUpdateSlotConfig:
    def test_merges_styles(self, layout: dict[str, Any]) -> None:
        layout["a"]["styles"] = {"color": "red"}
        updated = slot_tree.update_slot_config(layout, "a", {"styles": {"fontSize": "12px"}, "content": "x"})
        assert updated["a"]["styles"] == {"color": "red", "fontSize": "12px"}
        assert updated["a"]["content"] == "x"

    def test_id_cannot_change(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="cannot be changed"):
            slot_tree.update_slot_config(layout, "a", {"id": "z"})

    def test_invalid_result_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotValidationError):
            slot_tree.update_slot_config(layout, "a", {"parentId": "ghost"})

    def test_reparent_under_own_descendant_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="own child"):
            slot_tree.update_slot_config(layout, "box", {"parentId": "deep"})
        assert layout["deep"]["parentId"] == "inner"

    def test_reparent_onto_self_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="own child"):
            slot_tree.update_slot_config(layout, "box", {"parentId": "box"})

    def test_reparent_elsewhere(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.update_slot_config(layout, "inner", {"parentId": "sidebar_area"})
        assert updated["inner"]["parentId"] == "sidebar_area"
        assert slot_tree.is_valid(updated)


# ---------------------------------------------------------------------------
# Move
# ---------------------------------------------------------------------------


class TestMoveSlot:
    def test_before_sibling_shifts_others(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.move_slot(layout, "c", "a", "before")

        assert updated["c"]["position"] == {"col": 1, "row": 1}
        assert updated["a"]["position"] == {"col": 2, "row": 1}
        assert updated["b"]["position"] == {"col": 3, "row": 1}

    def test_inside_container(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.move_slot(layout, "a", "box", "inside")
        assert updated["a"]["parentId"] == "box"
        # "inner" already occupies (1, 1)
        assert updated["a"]["position"] == {"col": 2, "row": 1}

    def test_inside_current_parent_lifts_to_grandparent(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.move_slot(layout, "inner", "box", "inside")
        assert updated["inner"]["parentId"] == "content_area"

    def test_into_own_descendant_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="own child"):
            slot_tree.move_slot(layout, "box", "inner", "inside")

    def test_onto_self_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="onto itself"):
            slot_tree.move_slot(layout, "a", "a", "after")

    def test_inside_non_container_rejected(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="not a container"):
            slot_tree.move_slot(layout, "a", "b", "inside")

    def test_root_cannot_move(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError):
            slot_tree.move_slot(layout, "main_layout", "a", "before")

    def test_structural_container_cannot_move(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="cannot be moved"):
            slot_tree.move_slot(layout, "sidebar_area", "header_container", "after")

    def test_missing_target(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError, match="not found"):
            slot_tree.move_slot(layout, "a", "ghost", "after")


# ---------------------------------------------------------------------------
# Resize
# ---------------------------------------------------------------------------


class TestResize:
    def test_resize_constrains_children(self, layout: dict[str, Any]) -> None:
        layout["inner"]["styles"] = {"width": "900px", "left": "160px"}
        updated = slot_tree.resize_slot(layout, "box", 4)

        assert updated["box"]["colSpan"] == 4
        assert updated["inner"]["styles"]["width"] == "240px"
        assert updated["inner"]["styles"]["left"] == "20%"

    @pytest.mark.parametrize("col_span", [0, 13])
    def test_resize_out_of_range(self, layout: dict[str, Any], col_span: int) -> None:
        with pytest.raises(SlotOperationError):
            slot_tree.resize_slot(layout, "a", col_span)

    def test_resize_instance_updates_template(self) -> None:
        slots = {"card": {"id": "card", "type": "container", "colSpan": 3}}
        updated = slot_tree.resize_slot(slots, "card_2", 6)
        assert updated["card"]["colSpan"] == 6

    def test_resize_height(self, layout: dict[str, Any]) -> None:
        updated = slot_tree.resize_height(layout, "a", 130)
        assert updated["a"]["rowSpan"] == 3
        assert updated["a"]["styles"]["minHeight"] == "130px"

    def test_resize_height_must_be_positive(self, layout: dict[str, Any]) -> None:
        with pytest.raises(SlotOperationError):
            slot_tree.resize_height(layout, "a", 0)
