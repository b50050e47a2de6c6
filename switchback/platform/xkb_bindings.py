"""ctypes bindings to libX11 for XKB group (layout) state."""

from __future__ import annotations

import ctypes
import ctypes.util

XKB_USE_CORE_KBD = 0x0100


class XkbStateRec(ctypes.Structure):
    """Minimal XkbStateRec — only the fields we need."""
    _fields_ = [
        ("group", ctypes.c_ubyte),
        ("locked_group", ctypes.c_ubyte),
        ("base_group", ctypes.c_ushort),
        ("latched_group", ctypes.c_ushort),
        ("mods", ctypes.c_ubyte),
        ("base_mods", ctypes.c_ubyte),
        ("latched_mods", ctypes.c_ubyte),
        ("locked_mods", ctypes.c_ubyte),
        ("compat_state", ctypes.c_ubyte),
        ("grab_mods", ctypes.c_ubyte),
        ("compat_grab_mods", ctypes.c_ubyte),
        ("lookup_mods", ctypes.c_ubyte),
        ("compat_lookup_mods", ctypes.c_ubyte),
        ("ptr_buttons", ctypes.c_ushort),
    ]


def load_libx11():
    """Load libX11 with argument types configured, or None if it is missing."""
    path = ctypes.util.find_library("X11")
    if not path:
        return None
    try:
        lib = ctypes.cdll.LoadLibrary(path)
    except OSError:
        return None

    lib.XInitThreads.argtypes = []
    lib.XInitThreads.restype = ctypes.c_int
    lib.XOpenDisplay.argtypes = [ctypes.c_char_p]
    lib.XOpenDisplay.restype = ctypes.c_void_p
    lib.XCloseDisplay.argtypes = [ctypes.c_void_p]
    lib.XCloseDisplay.restype = ctypes.c_int
    lib.XkbGetState.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.POINTER(XkbStateRec)]
    lib.XkbGetState.restype = ctypes.c_int
    lib.XkbLockGroup.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.c_uint]
    lib.XkbLockGroup.restype = ctypes.c_int
    lib.XFlush.argtypes = [ctypes.c_void_p]
    lib.XFlush.restype = ctypes.c_int
    lib.XSync.argtypes = [ctypes.c_void_p, ctypes.c_int]
    lib.XSync.restype = ctypes.c_int
    return lib


def get_current_group(lib, display_ptr) -> int | None:
    """Return the current XKB group index (0-based), or None on failure."""
    state = XkbStateRec()
    if lib.XkbGetState(display_ptr, XKB_USE_CORE_KBD, ctypes.byref(state)) == 0:
        return int(state.group)
    return None


def lock_group(lib, display_ptr, group: int) -> None:
    """Switch to XKB group by index."""
    lib.XkbLockGroup(display_ptr, XKB_USE_CORE_KBD, group)
    lib.XSync(display_ptr, 0)
