"""Exceptions raised by the permeation model."""


class PermeationError(Exception):
    """Base class for all oxyperm errors."""


class UnknownMaterial(PermeationError, KeyError):
    """Material id does not resolve against the catalog."""

    def __init__(self, material_id, known=()):
        self.material_id = material_id
        self.known = tuple(known)
        msg = f"Unknown material '{material_id}'."
        if self.known:
            msg += f" Known: {sorted(self.known)}"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return str(self.args[0])


class InvalidGeometry(PermeationError, ValueError):
    """Pipe dimensions that cannot describe a physical bore."""


class MalformedMaterial(PermeationError, ValueError):
    """Catalog entry missing the coefficients its regime requires."""
