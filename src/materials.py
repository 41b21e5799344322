"""
Sheet stock for laser-cut layers.

Sheet sizes and thicknesses of common laser-cutting stock, plus the
unit-normalized MaterialSettings used by the nester and the splitter.
Everything downstream works in millimetres.
"""

from dataclasses import dataclass
from typing import List, Tuple

INCH_TO_MM = 25.4

VALID_UNITS = ("mm", "in")


@dataclass
class Material:
    """A stock sheet material."""

    name: str
    thicknesses_inch: List[float]  # Available thicknesses in inches
    max_size_inch: Tuple[float, float] = (12, 24)  # Sheet size (w, h)

    @property
    def thicknesses_mm(self) -> List[float]:
        return [t * INCH_TO_MM for t in self.thicknesses_inch]

    @property
    def max_size_mm(self) -> Tuple[float, float]:
        return (self.max_size_inch[0] * INCH_TO_MM, self.max_size_inch[1] * INCH_TO_MM)


MATERIALS = {
    "plywood_baltic_birch": Material(
        name="Baltic Birch Plywood",
        thicknesses_inch=[0.125, 0.250],
        max_size_inch=(12, 20),
    ),
    "mdf": Material(
        name="MDF",
        thicknesses_inch=[0.125, 0.250],
        max_size_inch=(12, 24),
    ),
    "cardboard": Material(
        name="Corrugated Cardboard",
        thicknesses_inch=[0.118, 0.157],
        max_size_inch=(24, 36),
    ),
    "acrylic_clear": Material(
        name="Acrylic Clear",
        thicknesses_inch=[0.118, 0.220],
        max_size_inch=(12, 24),
    ),
    "foam_board": Material(
        name="Foam Board",
        thicknesses_inch=[0.197],
        max_size_inch=(20, 30),
    ),
}


@dataclass
class MaterialSettings:
    """Sheet dimensions as entered by the user, in *unit*."""

    width: float = 200.0
    length: float = 200.0
    thickness: float = 3.0
    unit: str = "mm"

    def __post_init__(self):
        if self.unit not in VALID_UNITS:
            raise ValueError(f"Unknown unit {self.unit!r}; expected one of {VALID_UNITS}")

    @property
    def scale_factor(self) -> float:
        return INCH_TO_MM if self.unit == "in" else 1.0

    @property
    def width_mm(self) -> float:
        return self.width * self.scale_factor

    @property
    def length_mm(self) -> float:
        return self.length * self.scale_factor

    @property
    def thickness_mm(self) -> float:
        return self.thickness * self.scale_factor

    @classmethod
    def from_material(cls, material_key: str, thickness_index: int = 0) -> "MaterialSettings":
        """Build settings (in inches) from a catalog entry."""
        mat = MATERIALS[material_key]
        w, h = mat.max_size_inch
        return cls(
            width=w,
            length=h,
            thickness=mat.thicknesses_inch[thickness_index],
            unit="in",
        )
