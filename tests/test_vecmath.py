import math

import pytest

from grassfield.vecmath import Quat, Transform, Vec2, Vec3


def assert_vec3_close(a, b, tol=1e-9):
    assert a.x == pytest.approx(b.x, abs=tol)
    assert a.y == pytest.approx(b.y, abs=tol)
    assert a.z == pytest.approx(b.z, abs=tol)


def test_vec3_normalize_has_unit_length():
    assert Vec3(3.0, 4.0, 12.0).normalize_or_zero().length() == pytest.approx(1.0)


def test_vec3_normalize_zero_stays_zero():
    assert Vec3().normalize_or_zero() == Vec3.ZERO


def test_vec2_normalize_and_length_squared():
    v = Vec2(3.0, 4.0)
    assert v.length_squared() == pytest.approx(v.length() ** 2)
    assert v.normalize_or_zero().length() == pytest.approx(1.0)
    assert Vec2().normalize_or_zero() == Vec2.ZERO


def test_cross_is_perpendicular_to_inputs():
    a = Vec3(1.0, 2.0, 3.0)
    b = Vec3(-2.0, 0.5, 4.0)
    c = a.cross(b)
    assert c.dot(a) == pytest.approx(0.0, abs=1e-9)
    assert c.dot(b) == pytest.approx(0.0, abs=1e-9)


def test_lerp_endpoints():
    a = Vec3(1.0, 2.0, 3.0)
    b = Vec3(5.0, -1.0, 0.0)
    assert a.lerp(b, 0.0) == a
    assert a.lerp(b, 1.0) == b


def test_distance_matches_difference_length():
    a = Vec3(1.0, 2.0, 3.0)
    b = Vec3(4.0, 6.0, 3.0)
    assert a.distance(b) == b.distance(a)
    assert a.distance(b) == (a - b).length()


def test_xz_abs_and_max_element():
    v = Vec3(-2.0, 7.0, -9.0)
    assert v.xz() == Vec2(-2.0, -9.0)
    assert v.abs() == Vec3(2.0, 7.0, 9.0)
    assert v.max_element() == 7.0


def test_elementwise_min_max_and_clamp():
    a = Vec3(1.0, 5.0, -3.0)
    b = Vec3(2.0, 4.0, -4.0)
    assert a.min(b) == Vec3(1.0, 4.0, -4.0)
    assert a.max(b) == Vec3(2.0, 5.0, -3.0)
    clamped = Vec2(-0.5, 1.5).clamp(Vec2.ZERO, Vec2.ONE)
    assert clamped == Vec2(0.0, 1.0)
    assert Vec2(1.0, 3.0).min(Vec2(2.0, 2.0)) == Vec2(1.0, 2.0)
    assert Vec2(1.0, 3.0).max(Vec2(2.0, 2.0)) == Vec2(2.0, 3.0)


def test_quat_rotation_y_quarter_turn_maps_z_to_x():
    rotated = Quat.from_rotation_y(math.pi / 2).rotate(Vec3.Z)
    assert_vec3_close(rotated, Vec3.X)


def test_quat_inverse_round_trip():
    q = Quat.from_rotation_x(0.7) * Quat.from_rotation_y(-1.3)
    v = Vec3(0.3, -2.0, 5.0)
    assert_vec3_close(q.inverse().rotate(q.rotate(v)), v)


def test_quat_rotation_preserves_length():
    v = Vec3(1.0, 2.0, 2.0)
    assert Quat.from_rotation_x(1.1).rotate(v).length() == pytest.approx(v.length())


def test_transform_inverse_round_trip():
    t = Transform(Vec3(1.0, -2.0, 3.0), Quat.from_rotation_y(0.4), Vec3.splat(2.0))
    p = Vec3(0.5, 0.25, -7.0)
    assert_vec3_close(t.inverse().transform_point(t.transform_point(p)), p)


def test_mul_transform_matches_sequential_application():
    a = Transform(Vec3(1.0, 0.0, 0.0), Quat.from_rotation_x(0.3), Vec3.splat(1.5))
    b = Transform(Vec3(0.0, 2.0, -1.0), Quat.from_rotation_y(-0.8), Vec3.splat(0.5))
    p = Vec3(1.0, 1.0, 1.0)
    assert_vec3_close(a.mul_transform(b).transform_point(p), a.transform_point(b.transform_point(p)))


def test_default_transform_is_identity():
    p = Vec3(4.0, 5.0, 6.0)
    assert Transform().transform_point(p) == p