"""Small immutable vector, quaternion and transform types used by the grass pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar, Union

F32_EPSILON = 1.1920929e-07
"""Machine epsilon of a 32-bit float, used as the threshold for degenerate values."""

Scalar = Union[int, float]


@dataclass(frozen=True)
class Vec2:
    """A two-component vector."""

    x: float = 0.0
    y: float = 0.0

    ZERO: ClassVar[Vec2]
    ONE: ClassVar[Vec2]
    X: ClassVar[Vec2]
    Y: ClassVar[Vec2]

    @classmethod
    def splat(cls, value: float) -> Vec2:
        return cls(value, value)

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __neg__(self) -> Vec2:
        return Vec2(-self.x, -self.y)

    def __mul__(self, other: Vec2 | Scalar) -> Vec2:
        if isinstance(other, Vec2):
            return Vec2(self.x * other.x, self.y * other.y)
        return Vec2(self.x * other, self.y * other)

    def __rmul__(self, other: Scalar) -> Vec2:
        return Vec2(self.x * other, self.y * other)

    def __truediv__(self, other: Vec2 | Scalar) -> Vec2:
        if isinstance(other, Vec2):
            return Vec2(self.x / other.x, self.y / other.y)
        return Vec2(self.x / other, self.y / other)

    def __iter__(self):
        yield self.x
        yield self.y

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize_or_zero(self) -> Vec2:
        length = self.length()
        if length > 0.0 and math.isfinite(length):
            return self / length
        return Vec2()

    def clamp(self, low: Vec2, high: Vec2) -> Vec2:
        return self.max(low).min(high)

    def min(self, other: Vec2) -> Vec2:
        return Vec2(min(self.x, other.x), min(self.y, other.y))

    def max(self, other: Vec2) -> Vec2:
        return Vec2(max(self.x, other.x), max(self.y, other.y))


Vec2.ZERO = Vec2(0.0, 0.0)
Vec2.ONE = Vec2(1.0, 1.0)
Vec2.X = Vec2(1.0, 0.0)
Vec2.Y = Vec2(0.0, 1.0)


@dataclass(frozen=True)
class Vec3:
    """A three-component vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    ZERO: ClassVar[Vec3]
    ONE: ClassVar[Vec3]
    X: ClassVar[Vec3]
    Y: ClassVar[Vec3]
    Z: ClassVar[Vec3]

    @classmethod
    def splat(cls, value: float) -> Vec3:
        return cls(value, value, value)

    def __add__(self, other: Vec3) -> Vec3:
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vec3) -> Vec3:
        return Vec3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self) -> Vec3:
        return Vec3(-self.x, -self.y, -self.z)

    def __mul__(self, other: Vec3 | Scalar) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3(self.x * other.x, self.y * other.y, self.z * other.z)
        return Vec3(self.x * other, self.y * other, self.z * other)

    def __rmul__(self, other: Scalar) -> Vec3:
        return Vec3(self.x * other, self.y * other, self.z * other)

    def __truediv__(self, other: Vec3 | Scalar) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3(self.x / other.x, self.y / other.y, self.z / other.z)
        return Vec3(self.x / other, self.y / other, self.z / other)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def to_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def length_squared(self) -> float:
        return self.dot(self)

    def length(self) -> float:
        return math.sqrt(self.length_squared())

    def normalize_or_zero(self) -> Vec3:
        length = self.length()
        if length > 0.0 and math.isfinite(length):
            return self / length
        return Vec3()

    def dot(self, other: Vec3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vec3) -> Vec3:
        return Vec3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def lerp(self, other: Vec3, t: float) -> Vec3:
        return self + (other - self) * t

    def distance(self, other: Vec3) -> float:
        return (self - other).length()

    def xz(self) -> Vec2:
        return Vec2(self.x, self.z)

    def abs(self) -> Vec3:
        return Vec3(abs(self.x), abs(self.y), abs(self.z))

    def min(self, other: Vec3) -> Vec3:
        return Vec3(min(self.x, other.x), min(self.y, other.y), min(self.z, other.z))

    def max(self, other: Vec3) -> Vec3:
        return Vec3(max(self.x, other.x), max(self.y, other.y), max(self.z, other.z))

    def max_element(self) -> float:
        return max(self.x, self.y, self.z)


Vec3.ZERO = Vec3(0.0, 0.0, 0.0)
Vec3.ONE = Vec3(1.0, 1.0, 1.0)
Vec3.X = Vec3(1.0, 0.0, 0.0)
Vec3.Y = Vec3(0.0, 1.0, 0.0)
Vec3.Z = Vec3(0.0, 0.0, 1.0)


@dataclass(frozen=True)
class Quat:
    """A unit quaternion describing a rotation; defaults to identity."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_rotation_x(cls, angle: float) -> Quat:
        half = angle * 0.5
        return cls(math.sin(half), 0.0, 0.0, math.cos(half))

    @classmethod
    def from_rotation_y(cls, angle: float) -> Quat:
        half = angle * 0.5
        return cls(0.0, math.sin(half), 0.0, math.cos(half))

    def inverse(self) -> Quat:
        return Quat(-self.x, -self.y, -self.z, self.w)

    def rotate(self, vector: Vec3) -> Vec3:
        axis = Vec3(self.x, self.y, self.z)
        twice = axis.cross(vector) * 2.0
        return vector + twice * self.w + axis.cross(twice)

    def __mul__(self, other: Quat | Vec3):
        if isinstance(other, Vec3):
            return self.rotate(other)
        return Quat(
            self.w * other.x + self.x * other.w + self.y * other.z - self.z * other.y,
            self.w * other.y - self.x * other.z + self.y * other.w + self.z * other.x,
            self.w * other.z + self.x * other.y - self.y * other.x + self.z * other.w,
            self.w * other.w - self.x * other.x - self.y * other.y - self.z * other.z,
        )


@dataclass(frozen=True)
class Transform:
    """Translation, rotation and scale applied in scale-rotate-translate order.

    Inverse and composition are exact for uniform scale.
    """

    translation: Vec3 = field(default_factory=Vec3)
    rotation: Quat = field(default_factory=Quat)
    scale: Vec3 = field(default_factory=lambda: Vec3(1.0, 1.0, 1.0))

    def transform_point(self, point: Vec3) -> Vec3:
        return self.translation + self.rotation.rotate(self.scale * point)

    def inverse(self) -> Transform:
        inv_rotation = self.rotation.inverse()
        inv_scale = Vec3(1.0 / self.scale.x, 1.0 / self.scale.y, 1.0 / self.scale.z)
        inv_translation = inv_scale * inv_rotation.rotate(-self.translation)
        return Transform(inv_translation, inv_rotation, inv_scale)

    def mul_transform(self, other: Transform) -> Transform:
        """Compose so that the result applies ``other`` first, then ``self``."""
        return Transform(
            self.transform_point(other.translation),
            self.rotation * other.rotation,
            self.scale * other.scale,
        )