"""
Shared metaclass for definition objects (options and commands).

Both Option and Command are constructed once from sanitized metadata and are
read-only afterwards. DefinitionType gives them a common shape:

- __typename__ derived from the class name (camel-case split with hyphens),
  used as the subject of construction-time error messages.
- read-only properties for every name listed in __introspectable__, backed by
  the private "_{name}" attribute (see utils.mirror).
- stable __repr__/__rich_repr__ restricted to __displayable__ when given.
"""
import functools
import operator
import re

from .utils import Unset, coalesce, mirror, rename


class DefinitionType(type):
    """
    Metaclass that turns definition classes into introspectable, read-only types.

    Conventions
    - __typename__ is derived from the class name (“Option” → “option”).
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(names=('-o', '--output'), dest='output', ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


__all__ = (
    "DefinitionType",
)
