"""Primary keys for docflow rows (templates, versions, runs, steps, approvals, audit entries)."""

from cuid2 import Cuid

# Fits every String(64) id column with room to spare.
ID_LENGTH = 24

_cuid = Cuid(length=ID_LENGTH)


def generate_cuid() -> str:
    """Return a new collision-resistant CUID2 id."""
    return _cuid.generate()
