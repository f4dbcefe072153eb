"""Cache key naming for repository entries.

Every key for an entity type starts with that type's prefix, so a whole type
can be found or cleared with a prefix search.

Underscores in a type name are escaped, so the name always ends at the first
underscore after `KEY_PREFIX`. That keeps one type's prefix from matching the
keys of another type whose name merely starts the same way (`Widget` and
`Widget_Part`), and makes keys unique per (type name, id) pair. Two classes
sharing a name still share keys; give them separate partitions.
"""

from typing import Any

KEY_PREFIX = "uRepo_"


def _escape_type_name(name: str) -> str:
    return name.replace("%", "%25").replace("_", "%5F")


def cache_type_key(entity_type: type) -> str:
    """Return the key prefix shared by every cached entity of a type.

    Examples:
        >>> cache_type_key(Widget)
        'uRepo_Widget_'
        >>> cache_type_key(Widget_Part)
        'uRepo_Widget%5FPart_'
    """
    return f"{KEY_PREFIX}{_escape_type_name(entity_type.__name__)}_"


def cache_id_key(entity_type: type, entity_id: Any) -> str:
    """Return the cache key of one entity of a type.

    Examples:
        >>> cache_id_key(Widget, 42)
        'uRepo_Widget_42'
    """
    return f"{cache_type_key(entity_type)}{entity_id}"
