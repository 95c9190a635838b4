"""
Record types shared by every pipeline stage.

`ContentRecord` is the persisted entity; `FieldBag` is the loosely typed
mapping produced by the recovery tiers before validation.
"""

from .schema import ContentRecord, ContentType, FieldBag, EXCLUDED_CATEGORY  # noqa: F401
