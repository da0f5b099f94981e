"""3D transformation utilities for scene entities.

Provides Transform3D for representing position, rotation, and scale of a
scene entity as the editor stores them (rotation in degrees).
"""

from __future__ import annotations

import numpy as np
from pydantic import BaseModel, Field

Vector3 = tuple[float, float, float]


class Transform3D(BaseModel):
    """3D transformation: position + rotation + scale.

    Attributes:
        position: XYZ position in scene units
        rotation: XYZ Euler angles in degrees (applied in XYZ order)
        scale: Per-axis scale factors
    """

    position: Vector3 = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ position"
    )
    rotation: Vector3 = Field(
        default=(0.0, 0.0, 0.0),
        description="XYZ rotation in degrees (Euler angles)"
    )
    scale: Vector3 = Field(
        default=(1.0, 1.0, 1.0),
        description="XYZ scale factors"
    )

    model_config = {"frozen": True}

    def rotation_radians(self) -> Vector3:
        """Rotation converted to radians.

        Rotation is kept in degrees everywhere else; this is only called
        when a script statement is emitted.
        """
        x, y, z = np.radians(np.asarray(self.rotation, dtype=np.float64)).tolist()
        return (x, y, z)

    @classmethod
    def identity(cls) -> Transform3D:
        """Return identity transform (no transformation)."""
        return cls()

    def __repr__(self) -> str:
        return (
            f"Transform3D(pos={self.position}, "
            f"rot={self.rotation}, scale={self.scale})"
        )
