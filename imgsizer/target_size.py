"""
TargetSize - Named derivative sizes and their configured edge lengths.
"""

from enum import Enum
from typing import Dict, Optional


class TargetSize(Enum):
    """
    Named derivative sizes.

    The value is the short identifier used in derivative file names.
    """
    ORIGINAL = 'og'
    XL = 'xl'
    LG = 'lg'
    MD = 'md'
    SM = 'sm'
    XS = 'xs'

    @property
    def config_key(self) -> str:
        """Key of this size in the [resize] config table."""
        return self.name.lower()

    @property
    def default_px(self) -> int:
        return DEFAULT_SIZES[self]

    def to_px(self, overrides: Optional[Dict[str, int]] = None) -> int:
        """Edge length in pixels, honoring config overrides."""
        if overrides and overrides.get(self.config_key):
            return int(overrides[self.config_key])
        return self.default_px

    @classmethod
    def transform_variant(cls, name: Optional[str]) -> Optional['TargetSize']:
        """
        Resolve the shape pass size selector.

        Args:
            name: One of none, original, xl, lg, md, sm, xs (None means md)

        Returns:
            The selected size, or None when the shape pass is disabled
        """
        if name is None:
            return cls.MD
        if not isinstance(name, str):
            raise ValueError(f"Transform variant must be a string, got {name!r}")
        key = name.strip().lower()
        if key == 'none':
            return None
        for size in cls:
            if size.config_key == key:
                return size
        raise ValueError(f"Unknown transform variant: {name!r}")


DEFAULT_SIZES = {
    TargetSize.ORIGINAL: 2500,
    TargetSize.XL: 1200,
    TargetSize.LG: 600,
    TargetSize.MD: 300,
    TargetSize.SM: 150,
    TargetSize.XS: 75,
}
