"""Pure operations on a page builder slot map.

A layout is a flat ``{slot_id: slot}`` dict where each slot points at its
parent through ``parentId``. Every function here takes a slot map and returns
a new one; the input is never mutated. Operations that cannot be applied
raise :class:`SlotOperationError`.

Slots whose id ends in ``_<n>`` (``product_card_name_0``) are rendered
instances of a template slot (``product_card_name``); edits made through an
instance are written to the template so they persist.
"""

import copy
import logging
import re
import secrets
import string
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Literal

logger = logging.getLogger(__name__)

Slots = dict[str, dict[str, Any]]
DropPosition = Literal["inside", "before", "after"]

GRID_COLUMNS = 12
ROW_HEIGHT_PX = 40

ROOT_SLOT_ID = "main_layout"
ROOT_CONTAINERS = ("header_container", "content_area", "sidebar_area")
PROTECTED_SLOTS = (ROOT_SLOT_ID, *ROOT_CONTAINERS)
CONTAINER_TYPES = ("container", "grid", "flex")
ALIGNMENT_CLASSES = ("text-left", "text-center", "text-right")

DEFAULT_VIEW_MODES: dict[str, list[str]] = {
    "cart": ["emptyCart", "withProducts"],
    "category": ["grid", "list"],
    "product": ["default"],
    "checkout": ["default"],
    "header": ["default"],
}

DEFAULT_CLASS_NAMES: dict[str, str] = {
    "container": "p-4 border border-gray-200 rounded",
    "text": "text-base text-gray-900",
    "image": "w-full h-auto",
}

_INSTANCE_RE = re.compile(r"^(.+)_(\d+)$")
_PX_RE = re.compile(r"^(\d+(?:\.\d+)?)px$")
_PERCENT_RE = re.compile(r"^(\d+(?:\.\d+)?)%$")
_ID_ALPHABET = string.ascii_lowercase + string.digits


class SlotOperationError(ValueError):
    """A slot mutation was rejected."""


class SlotValidationError(SlotOperationError):
    """A slot map breaks a structural rule."""


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _format_number(value: float) -> str:
    return f"{value:g}"


def template_id(slot_id: str) -> str:
    """Strip an instance suffix: ``product_card_name_0`` -> ``product_card_name``."""
    match = _INSTANCE_RE.match(slot_id)
    return match.group(1) if match else slot_id


def _resolve_slot_id(slots: Mapping[str, Any], slot_id: str) -> str | None:
    """Return the key that stores ``slot_id``, preferring its template."""
    match = _INSTANCE_RE.match(slot_id)
    if match and match.group(1) in slots:
        return match.group(1)
    if slot_id in slots:
        return slot_id
    return None


def _col_span_value(col_span: Any) -> int:
    if isinstance(col_span, int):
        return col_span
    if isinstance(col_span, Mapping):
        return int(col_span.get("grid") or col_span.get("list") or 1)
    return 1


def _is_descendant(slots: Mapping[str, Any], slot_id: str | None, ancestor_id: str) -> bool:
    """True when ``slot_id`` is ``ancestor_id`` or sits anywhere below it."""
    visited: set[str] = set()
    current = slot_id
    while current and current not in visited:
        if current == ancestor_id:
            return True
        visited.add(current)
        current = (slots.get(current) or {}).get("parentId")
    return False


def validate_slots(slots: Any) -> None:
    """Check the structural rules of a slot map.

    Raises:
        SlotValidationError: With the first violation found.
    """
    if not isinstance(slots, Mapping):
        raise SlotValidationError("slots must be an object")

    for slot_id, slot in slots.items():
        if not isinstance(slot, Mapping):
            raise SlotValidationError(f"Slot {slot_id} is not an object")
        if slot.get("id") != slot_id:
            raise SlotValidationError(f"Slot {slot_id} has invalid or missing id")

        if not slot.get("type"):
            # Style-only overrides are merged with the default template at render time
            is_style_override = "styles" in slot and len(slot) <= 3
            if not is_style_override:
                raise SlotValidationError(f"Slot {slot_id} missing type")

        view_mode = slot.get("viewMode")
        if view_mode is not None and not isinstance(view_mode, list):
            raise SlotValidationError(f"Slot {slot_id} has invalid viewMode (not an array)")

        parent_id = slot.get("parentId")
        if parent_id and parent_id not in slots:
            is_template_slot = bool((slot.get("metadata") or {}).get("isTemplate"))
            if template_id(parent_id) not in slots and not is_template_slot:
                raise SlotValidationError(
                    f"Slot {slot_id} references non-existent parent {parent_id}"
                )

    root = slots.get(ROOT_SLOT_ID)
    if root is not None and root.get("parentId") is not None:
        raise SlotValidationError(f"{ROOT_SLOT_ID} must have parentId: null")

    for slot_id in slots:
        seen: set[str] = set()
        current: str | None = slot_id
        while isinstance(current, str) and current in slots:
            if current in seen:
                raise SlotValidationError(f"Slot {slot_id} is part of a parent cycle")
            seen.add(current)
            current = slots[current].get("parentId")


def is_valid(slots: Any) -> bool:
    """Boolean form of :func:`validate_slots`."""
    try:
        validate_slots(slots)
    except SlotValidationError as exc:
        logger.debug("Slot validation failed: %s", exc)
        return False
    return True


def empty_configuration(page_type: str) -> dict[str, Any]:
    """Skeleton layout for a page that has never been edited."""
    now = _now_iso()

    def _container(slot_id: str, parent_id: str | None, row: int, col_span: int) -> dict[str, Any]:
        return {
            "id": slot_id,
            "type": "container",
            "content": "",
            "className": "",
            "parentClassName": "",
            "styles": {},
            "parentId": parent_id,
            "position": {"col": 1, "row": row},
            "colSpan": col_span,
            "rowSpan": 1,
            "viewMode": list(DEFAULT_VIEW_MODES.get(page_type, [])),
            "metadata": {"hierarchical": True, "created": now},
        }

    slots: Slots = {
        ROOT_SLOT_ID: _container(ROOT_SLOT_ID, None, 1, GRID_COLUMNS),
        "header_container": _container("header_container", ROOT_SLOT_ID, 1, GRID_COLUMNS),
        "content_area": _container("content_area", ROOT_SLOT_ID, 2, 8),
        "sidebar_area": _container("sidebar_area", ROOT_SLOT_ID, 2, 4),
    }
    return {
        "page_name": page_type.capitalize(),
        "slot_type": f"{page_type}_layout",
        "slots": slots,
        "metadata": {"created": now, "lastModified": now},
    }


def new_slot_id(slot_type: str) -> str:
    """Generate ``new_<type>_<ms>_<rand5>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"new_{slot_type}_{int(datetime.now(UTC).timestamp() * 1000)}_{suffix}"


def create_slot(
    slots: Mapping[str, Any],
    slot_type: str,
    page_type: str,
    content: str = "",
    parent_id: str | None = None,
    metadata: Mapping[str, Any] | None = None,
) -> tuple[Slots, str]:
    """Add a custom slot with page-type defaults.

    Returns:
        Tuple of (new slot map, new slot id)
    """
    if parent_id is not None and _resolve_slot_id(slots, parent_id) is None:
        raise SlotOperationError(f"Parent slot {parent_id} not found")

    col_span = GRID_COLUMNS if slot_type == "container" else 6
    effective_parent = parent_id
    if parent_id is None and page_type in ("category", "product"):
        col_span = GRID_COLUMNS
        # Product pages keep every slot inside main_layout
        if page_type == "product" and ROOT_SLOT_ID in slots:
            effective_parent = ROOT_SLOT_ID

    slot_id = new_slot_id(slot_type)
    now = _now_iso()
    updated: Slots = copy.deepcopy(dict(slots))
    updated[slot_id] = {
        "id": slot_id,
        "type": slot_type,
        "content": content,
        "className": DEFAULT_CLASS_NAMES.get(slot_type, ""),
        "parentClassName": "",
        "styles": {"minHeight": "80px"} if slot_type == "container" else {},
        "parentId": effective_parent,
        "position": {"col": 1, "row": 1},
        "colSpan": col_span,
        "rowSpan": 1,
        "viewMode": list(DEFAULT_VIEW_MODES.get(page_type, [])),
        "isCustom": True,
        "metadata": {"created": now, "lastModified": now, **(metadata or {})},
    }
    return updated, slot_id


def delete_slot(slots: Mapping[str, Any], slot_id: str) -> Slots:
    """Remove a slot and everything nested below it."""
    if slot_id in PROTECTED_SLOTS:
        raise SlotOperationError(f"Cannot delete critical layout container: {slot_id}")
    if slot_id not in slots:
        raise SlotOperationError(f"Slot {slot_id} not found")

    doomed = {sid for sid in slots if _is_descendant(slots, sid, slot_id)}
    return {sid: copy.deepcopy(slot) for sid, slot in slots.items() if sid not in doomed}


def change_text(slots: Mapping[str, Any], slot_id: str, text: str) -> Slots:
    """Replace a slot's content."""
    if slot_id not in slots:
        raise SlotOperationError(f"Slot {slot_id} not found")
    updated: Slots = copy.deepcopy(dict(slots))
    slot = updated[slot_id]
    slot["content"] = text
    slot["metadata"] = {**(slot.get("metadata") or {}), "lastModified": _now_iso()}
    return updated


def _apply_class_change(
    slot: dict[str, Any],
    class_name: str,
    styles: Mapping[str, Any],
    metadata: Mapping[str, Any] | None,
    is_alignment_change: bool,
    keep_existing_class: bool,
) -> dict[str, Any]:
    new_classes = class_name.split()
    merged_styles = {**(slot.get("styles") or {}), **styles}
    merged_metadata = {**(slot.get("metadata") or {}), **(metadata or {}), "lastModified": _now_iso()}

    if is_alignment_change or any(cls in ALIGNMENT_CLASSES for cls in new_classes):
        # Alignment lives on the wrapper; everything else stays on the element
        existing = (slot.get("className") or "").split()
        return {
            **slot,
            "className": " ".join(cls for cls in existing if cls not in ALIGNMENT_CLASSES),
            "parentClassName": " ".join(cls for cls in new_classes if cls in ALIGNMENT_CLASSES),
            "styles": merged_styles,
            "metadata": merged_metadata,
        }

    existing_class = slot.get("className") or ""
    incoming = class_name.strip()
    if keep_existing_class:
        final_class = incoming if incoming and incoming != existing_class else existing_class
    else:
        final_class = class_name
    return {**slot, "className": final_class, "styles": merged_styles, "metadata": merged_metadata}


def change_class(
    slots: Mapping[str, Any],
    slot_id: str,
    class_name: str,
    styles: Mapping[str, Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    is_alignment_change: bool = False,
) -> Slots:
    """Update a slot's classes and styles.

    Alignment classes move to ``parentClassName``. An empty ``class_name``
    keeps the existing classes so style-only edits never wipe them. A missing
    instance slot is materialized from its template, and the change is
    mirrored onto the template.
    """
    styles = styles or {}
    updated: Slots = copy.deepcopy(dict(slots))
    base_id = template_id(slot_id)

    if slot_id not in updated:
        template = updated.get(base_id) or {}
        updated[slot_id] = {
            "id": slot_id,
            "type": template.get("type") or "text",
            "content": template.get("content") or "",
            "className": template.get("className") or "",
            "parentClassName": template.get("parentClassName") or "",
            "styles": dict(template.get("styles") or {}),
            "metadata": dict(metadata or {}),
        }

    updated[slot_id] = _apply_class_change(
        updated[slot_id], class_name, styles, metadata, is_alignment_change, keep_existing_class=True
    )

    if base_id != slot_id and base_id in updated:
        updated[base_id] = _apply_class_change(
            updated[base_id], class_name, styles, None, is_alignment_change, keep_existing_class=False
        )

    return updated


def update_slot_config(
    slots: Mapping[str, Any], slot_id: str, changes: Mapping[str, Any]
) -> Slots:
    """Shallow-merge ``changes`` into a slot; ``styles`` and ``metadata`` are merged key-wise."""
    if slot_id not in slots:
        raise SlotOperationError(f"Slot {slot_id} not found")
    if "id" in changes and changes["id"] != slot_id:
        raise SlotOperationError("Slot id cannot be changed")
    new_parent = changes.get("parentId")
    if new_parent and _is_descendant(slots, new_parent, slot_id):
        raise SlotOperationError("Cannot move a container into its own child")

    updated: Slots = copy.deepcopy(dict(slots))
    slot = updated[slot_id]
    for key, value in changes.items():
        if key in ("styles", "metadata") and isinstance(value, Mapping):
            slot[key] = {**(slot.get(key) or {}), **copy.deepcopy(dict(value))}
        else:
            slot[key] = copy.deepcopy(value)
    slot["metadata"] = {**(slot.get("metadata") or {}), "lastModified": _now_iso()}

    validate_slots(updated)
    return updated


def _first_free_position(
    slots: Mapping[str, Any], parent_id: str | None, exclude_id: str
) -> dict[str, int]:
    """Row-major scan for the first grid cell no sibling occupies."""
    taken = {
        ((s.get("position") or {}).get("row"), (s.get("position") or {}).get("col"))
        for sid, s in slots.items()
        if s.get("parentId") == parent_id and sid != exclude_id
    }
    for row in range(1, 12):
        for col in range(1, GRID_COLUMNS + 1):
            if (row, col) not in taken:
                return {"col": col, "row": row}
    return {"col": 1, "row": 12}


def move_slot(
    slots: Mapping[str, Any],
    dragged_id: str,
    target_id: str,
    position: DropPosition,
) -> Slots:
    """Reparent or reorder a slot relative to a drop target.

    ``inside`` drops into a container target (dropping onto the current
    parent lifts the slot to its grandparent). ``before``/``after`` place the
    slot next to the target, shifting later siblings forward when both share
    a parent.
    """
    if dragged_id == target_id:
        raise SlotOperationError("Cannot drop a slot onto itself")
    if dragged_id == ROOT_SLOT_ID:
        raise SlotOperationError(f"Cannot move {ROOT_SLOT_ID}")
    if dragged_id in ROOT_CONTAINERS and position == "inside":
        raise SlotOperationError("Cannot move root container inside another slot")

    actual_target = _resolve_slot_id(slots, target_id)
    if actual_target is None:
        raise SlotOperationError(f"Target slot {target_id} not found")
    actual_dragged = _resolve_slot_id(slots, dragged_id)
    if actual_dragged is None:
        raise SlotOperationError(f"Slot {dragged_id} not found")
    if actual_dragged == actual_target:
        raise SlotOperationError("Cannot drop a slot onto itself")
    if _is_descendant(slots, actual_target, actual_dragged):
        raise SlotOperationError("Cannot move a container into its own child")

    updated: Slots = copy.deepcopy(dict(slots))
    dragged = updated[actual_dragged]
    target = updated[actual_target]

    if dragged.get("type") == "container" and (dragged.get("metadata") or {}).get("hierarchical"):
        raise SlotOperationError(f"Structural container {actual_dragged} cannot be moved")

    current_parent = dragged.get("parentId")
    target_parent = target.get("parentId")
    target_pos = target.get("position") or {"col": 1, "row": 1}
    target_col = int(target_pos.get("col") or 1)
    target_row = int(target_pos.get("row") or 1)

    if position == "inside":
        if target.get("type") not in CONTAINER_TYPES:
            raise SlotOperationError(f"Slot {actual_target} is not a container")
        if current_parent is not None and template_id(current_parent) == actual_target:
            new_parent = target_parent
            if new_parent is None:
                raise SlotOperationError(f"Slot {actual_dragged} is already at the top level")
        else:
            new_parent = actual_target
        new_position = _first_free_position(updated, new_parent, actual_dragged)

    elif current_parent == target_parent:
        new_parent = current_parent
        if position == "before":
            new_position = {"col": target_col, "row": target_row}
        else:
            own = dragged.get("position") or {}
            col, row = target_col + 1, target_row
            if col > GRID_COLUMNS or (col == own.get("col") and row == own.get("row")):
                col, row = 1, target_row + 1
            new_position = {"col": col, "row": row}

    else:
        new_parent = target_parent
        if position == "before":
            new_position = {"col": 1, "row": target_row}
        else:
            col = target_col + _col_span_value(target.get("colSpan"))
            if col > GRID_COLUMNS:
                new_position = {"col": 1, "row": target_row + 1}
            else:
                new_position = {"col": col, "row": target_row}

    dragged["parentId"] = new_parent
    dragged["position"] = new_position
    dragged["metadata"] = {**(dragged.get("metadata") or {}), "lastModified": _now_iso()}

    if position != "inside" and current_parent == new_parent:
        for sid, sibling in updated.items():
            pos = sibling.get("position")
            if sid == actual_dragged or sibling.get("parentId") != new_parent or not pos:
                continue
            row, col = pos.get("row", 1), pos.get("col", 1)
            if row > new_position["row"] or (row == new_position["row"] and col >= new_position["col"]):
                if col < GRID_COLUMNS:
                    sibling["position"] = {**pos, "col": col + 1}
                else:
                    sibling["position"] = {"col": 1, "row": row + 1}

    validate_slots(updated)
    return updated


def _constrain_child_styles(styles: Mapping[str, Any], max_width_px: float) -> dict[str, Any]:
    constrained = dict(styles)
    left = constrained.get("left")
    if isinstance(left, str):
        px = _PX_RE.match(left)
        if px:
            left = f"{_format_number(max(0.0, min(80.0, float(px.group(1)) / 8)))}%"
        pct = _PERCENT_RE.match(left)
        if pct:
            left = f"{_format_number(max(0.0, min(80.0, float(pct.group(1)))))}%"
        constrained["left"] = left

    width = constrained.get("width")
    if isinstance(width, str):
        px = _PX_RE.match(width)
        if px:
            width_px = max(20.0, min(max_width_px, float(px.group(1))))
            constrained["width"] = f"{_format_number(width_px)}px"
    return constrained


def resize_slot(slots: Mapping[str, Any], slot_id: str, col_span: int) -> Slots:
    """Set a slot's column span (1-12) and keep absolutely placed children inside it.

    Resizing an instance also resizes its template.
    """
    if not 1 <= col_span <= GRID_COLUMNS:
        raise SlotOperationError(f"colSpan must be between 1 and {GRID_COLUMNS}")
    base_id = template_id(slot_id)
    if slot_id not in slots and base_id not in slots:
        raise SlotOperationError(f"Slot {slot_id} not found")

    updated: Slots = copy.deepcopy(dict(slots))
    for sid in {slot_id, base_id}:
        if sid in updated:
            updated[sid]["colSpan"] = col_span

    max_width = min(500.0, col_span * 60.0)
    for sid, child in updated.items():
        if child.get("parentId") in (slot_id, base_id) and child.get("styles"):
            updated[sid] = {**child, "styles": _constrain_child_styles(child["styles"], max_width)}
    return updated


def resize_height(slots: Mapping[str, Any], slot_id: str, height_px: float) -> Slots:
    """Set ``minHeight`` and derive ``rowSpan`` from 40px rows."""
    if slot_id not in slots:
        raise SlotOperationError(f"Slot {slot_id} not found")
    if height_px <= 0:
        raise SlotOperationError("Height must be positive")
    updated: Slots = copy.deepcopy(dict(slots))
    slot = updated[slot_id]
    slot["rowSpan"] = max(1, round(height_px / ROW_HEIGHT_PX))
    slot["styles"] = {**(slot.get("styles") or {}), "minHeight": f"{_format_number(height_px)}px"}
    return updated
