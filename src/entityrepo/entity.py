"""
Entity identity model.

Defines what an entity is for the repository layer: an object whose
equality and hash come from its concrete type and identifier, plus a
diagnostic ``__str__`` driven by per-type display templates.

Manifesto:
    - **Identity, not attributes:** Two instances are the same entity when
      their concrete types match exactly and their ids are equal
    - **Unsaved entities never collide:** Instances holding an unset id are
      never equal, so a set of new entities keeps every one of them
    - **Explicit display capability:** Each type declares its display
      template (class attribute or ``register_display``) instead of being
      inspected reflectively
    - **Diagnostics never throw:** ``str(entity)`` falls back to the default
      description on any template failure

Architecture:
    ::

        Entity                         __str__  ─► registered template
          │  __display_name__                      ─► __display_name__
          │  __debug_display__                     ─► __debug_display__
          │                                        ─► object.__repr__
          ▼
        IdEntity                       __eq__   type(a) is type(b)
             id                                 and both ids set
             id_is_unset()                      and a.id == b.id
                                       __hash__ hash(id) or 0

    Unset id sentinels per identifier type::

        any type   → None
        int        → 0
        str        → ""
        uuid.UUID  → UUID(int=0)
        (more via register_id_default)

Examples:
    >>> class Widget(IdEntity):
    ...     def __init__(self, id=None, name=""):
    ...         self.id = id
    ...         self.name = name
    >>> Widget(1) == Widget(1)
    True
    >>> Widget() == Widget()
    False
    >>> str(Widget(3))
    'Widget #3'

    >>> register_display(Widget, "{name} ({id})")
    >>> str(Widget(3, "bolt"))
    'bolt (3)'

Tags:
    entity, identity, equality, hashing, display, repository
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, ClassVar


_ID_DEFAULTS: dict[type, Any] = {
    int: 0,
    str: "",
    uuid.UUID: uuid.UUID(int=0),
}

# Append-only; keyed by concrete entity type.
_DISPLAY_TEMPLATES: dict[type, str | None] = {}


def register_id_default(id_type: type, value: Any) -> None:
    """Declare the unset sentinel for an identifier type."""
    _ID_DEFAULTS[id_type] = value


def register_display(entity_type: type, template: str) -> None:
    """
    Bind a display template to an entity type.

    The template is a ``str.format`` pattern over the entity's attributes;
    ``{type_name}`` resolves to the concrete class name. Registration takes
    precedence over class-level ``__display_name__`` / ``__debug_display__``.
    """
    _DISPLAY_TEMPLATES[entity_type] = template


def display_template(entity_type: type) -> str | None:
    """Resolve (and cache) the display template for *entity_type*."""
    try:
        return _DISPLAY_TEMPLATES[entity_type]
    except KeyError:
        pass
    template = getattr(entity_type, "__display_name__", None)
    if template is None:
        template = getattr(entity_type, "__debug_display__", None)
    return _DISPLAY_TEMPLATES.setdefault(entity_type, template)


class _EntityFields(dict):
    """format_map source resolving names against the entity's attributes."""

    def __init__(self, entity: Any):
        super().__init__()
        self._entity = entity

    def __missing__(self, key: str) -> Any:
        if key == "type_name":
            return type(self._entity).__name__
        return getattr(self._entity, key)


class Entity:
    """
    Base for everything the repository persists.

    Carries no state of its own; mapped subclasses get their columns from
    :class:`~entityrepo.orm.base.EntityBase`. Subclasses may set
    ``__display_name__`` or ``__debug_display__`` to shape ``str()``.
    """

    __display_name__: ClassVar[str | None] = None
    __debug_display__: ClassVar[str | None] = None

    def __str__(self) -> str:
        try:
            template = display_template(type(self))
            if template is None:
                return object.__repr__(self)
            return template.format_map(_EntityFields(self))
        except Exception:
            return object.__repr__(self)


class IdEntity(Entity):
    """
    Entity with an identifier.

    Equality holds only between instances of the exact same class whose ids
    are both set and equal. An instance with an unset id equals nothing, not
    even itself through ``==``; identity checks (``is``, ``x in [x]``) are
    unaffected.
    """

    __debug_display__: ClassVar[str | None] = "{type_name} #{id}"

    if TYPE_CHECKING:
        id: Any

    @classmethod
    def id_is_unset(cls, value: Any) -> bool:
        """True when *value* is the unset sentinel for its type."""
        if value is None:
            return True
        default = _ID_DEFAULTS.get(type(value), None)
        return default is not None and value == default

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return False
        own_id = getattr(self, "id", None)
        other_id = getattr(other, "id", None)
        if self.id_is_unset(own_id) or self.id_is_unset(other_id):
            return False
        return bool(own_id == other_id)

    def __hash__(self) -> int:
        own_id = getattr(self, "id", None)
        if self.id_is_unset(own_id):
            return 0
        return hash(own_id)


__all__ = [
    "Entity",
    "IdEntity",
    "register_display",
    "register_id_default",
    "display_template",
]
