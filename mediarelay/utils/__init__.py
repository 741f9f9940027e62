from .keys import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES, build_object_key, validate_image_upload
from .placeholders import configured, is_placeholder_value

__all__ = [
    "ALLOWED_IMAGE_TYPES",
    "MAX_IMAGE_BYTES",
    "build_object_key",
    "configured",
    "is_placeholder_value",
    "validate_image_upload",
]
