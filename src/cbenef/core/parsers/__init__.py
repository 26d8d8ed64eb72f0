"""
Per-state document parsers.
"""
from .base import StateParser
from .sc import SCParser
from .es import ESParser
from .pr import PRParser
from .rj import RJParser

# State code -> parser class
PARSERS = {
    "SC": SCParser,
    "ES": ESParser,
    "PR": PRParser,
    "RJ": RJParser,
}

__all__ = [
    "StateParser",
    "SCParser",
    "ESParser",
    "PRParser",
    "RJParser",
    "PARSERS",
]
