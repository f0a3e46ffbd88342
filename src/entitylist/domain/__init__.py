from .fields import FieldResolver, FieldSchema, MappingFieldResolver
from .models import (
    ColumnConfig,
    FilterCriterion,
    FilterLogic,
    FilterSet,
    Preferences,
    SortDirection,
    SortSpec,
)

__all__ = [
    "ColumnConfig",
    "FieldResolver",
    "FieldSchema",
    "FilterCriterion",
    "FilterLogic",
    "FilterSet",
    "MappingFieldResolver",
    "Preferences",
    "SortDirection",
    "SortSpec",
]
