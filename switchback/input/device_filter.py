"""Device filtering: keep physical keyboards and mice, skip virtual devices."""

from __future__ import annotations

# Name fragments that identify devices to exclude.  Our own virtual keyboard
# matches "virtual"; the fragments also cover other injectors and remappers.
EXCLUDE_NAME_FRAGMENTS = [
    "virtual",
    "switchback",
    "uinput",
    "ydotool",
    "xdotool",
]


def should_include_device(device_name: str, exclude: list[str] | None = None) -> bool:
    """Return True if a device called *device_name* should be read."""
    lower = (device_name or "").lower()
    fragments = EXCLUDE_NAME_FRAGMENTS + [f.lower() for f in (exclude or [])]
    return not any(fragment in lower for fragment in fragments)


def classify_capabilities(keys: set[int], key_a: int, btn_left: int, btn_right: int) -> str | None:
    """Return ``'keyboard'``, ``'mouse'`` or None for a set of EV_KEY codes."""
    if key_a in keys:
        return "keyboard"
    if btn_left in keys or btn_right in keys:
        return "mouse"
    return None
