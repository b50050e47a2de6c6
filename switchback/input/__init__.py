"""evdev input: devices, virtual keyboard, key decoding."""
