"""Shared model parameters."""

from collections.abc import Mapping, MutableMapping


class Properties(MutableMapping):
    """A mutable mapping of model-wide parameters with attribute access.

    The core reads from it but never writes to it; changes only happen
    through explicit user code, e.g. ``model.properties.dt = 0.5``.

    Attributes:
        model : the model instance to which these properties belong

    """

    __slots__ = ("__dict__", "model")

    def __init__(self, values: Mapping | None = None, /, **kwargs):
        """Initialize Properties.

        Args:
            values: a mapping with initial values
            kwargs: further initial values

        """
        self.model = None
        if values is not None:
            self.__dict__.update(values)
        self.__dict__.update(kwargs)

    def __setitem__(self, key, value):  # noqa: D105
        self.__dict__[key] = value

    def __getitem__(self, key):  # noqa: D105
        return self.__dict__[key]

    def __delitem__(self, key):  # noqa: D105
        del self.__dict__[key]

    def __iter__(self):  # noqa: D105
        return iter(self.__dict__)

    def __len__(self):  # noqa: D105
        return len(self.__dict__)

    def __getattr__(self, key):  # noqa: D105
        # only called when normal lookup fails
        raise AttributeError(f"No model property named '{key}'")

    def __setattr__(self, key, value):  # noqa: D105
        if key not in self.__slots__:
            self.__setitem__(key, value)
        else:
            super().__setattr__(key, value)

    def __delattr__(self, key):  # noqa: D105
        if key not in self.__slots__:
            self.__delitem__(key)
        else:
            super().__delattr__(key)

    def __getstate__(self):  # noqa: D105
        return {"values": dict(self.__dict__), "model": self.model}

    def __setstate__(self, state):  # noqa: D105
        object.__setattr__(self, "model", state["model"])
        self.__dict__.update(state["values"])

    def __repr__(self):  # noqa: D105
        return f"Properties({self.__dict__!r})"

    def to_dict(self) -> dict:
        """Return a dict representation of the properties."""
        return self.__dict__.copy()
