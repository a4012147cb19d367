"""
Refuge Model

The fixed set of refuges tracked on the FFCAM booking system.
"""

from collections import namedtuple

# Status value stored for a fully booked date
FULL = "Full"

Refuge = namedtuple('Refuge', ['name', 'structure_id'])

REFUGES = (
    Refuge('Tête Rousse', 'BK_STRUCTURE:29'),
    Refuge('du Goûter', 'BK_STRUCTURE:30'),
)


def get_refuge(name):
    """Return the refuge with the given name, or None."""
    for refuge in REFUGES:
        if refuge.name == name:
            return refuge
    return None
