from .errors import ValidationError

DEFAULT_PREFERENCES = {
    "theme": "dark",
    "language": "zh-CN",
    "auto_update": True,
    "show_tray_icon": True,
    # Fill photos.captured_at from EXIF when the caller does not supply one.
    "exif_captured_at": False,
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def _coerce(key, value):
    default = DEFAULT_PREFERENCES[key]
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)
    if value is None:
        return default
    return str(value).strip() or default


def normalize_preferences(stored):
    prefs = dict(DEFAULT_PREFERENCES)
    if not isinstance(stored, dict):
        return prefs
    for key, value in stored.items():
        if key in DEFAULT_PREFERENCES:
            prefs[key] = _coerce(key, value)
    return prefs


def validate_preference(key, value):
    if key not in DEFAULT_PREFERENCES:
        raise ValidationError(f"Unknown preference: {key}")
    return _coerce(key, value)
