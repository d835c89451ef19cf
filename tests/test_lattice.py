"""Tests for the allocation effect lattice."""

from __future__ import annotations

import itertools

import pytest

from alloc_checker.effects.lattice import Effect, EffectRange, compare, meet

NO = Effect.NO_ALLOC
MAY = Effect.MAY_ALLOC
ALL = [NO, MAY]


class TestCompare:
    @pytest.mark.parametrize("e", ALL)
    def test_reflexive(self, e):
        assert compare(e, e) == 0

    def test_no_alloc_below_may_alloc(self):
        assert compare(NO, MAY) == -1
        assert compare(MAY, NO) == 1

    def test_antisymmetric(self):
        for a, b in itertools.product(ALL, ALL):
            assert compare(a, b) == -compare(b, a)

    def test_predicates(self):
        assert NO.no_alloc and not NO.may_alloc
        assert MAY.may_alloc and not MAY.no_alloc

    def test_str_is_marker_name(self):
        assert str(NO) == "NoAlloc"
        assert str(MAY) == "MayAlloc"


class TestMeet:
    def test_meet_picks_restrictive(self):
        assert meet(NO, MAY) is NO
        assert meet(MAY, NO) is NO

    @pytest.mark.parametrize("e", ALL)
    def test_idempotent(self, e):
        assert meet(e, e) is e

    def test_commutative(self):
        for a, b in itertools.product(ALL, ALL):
            assert meet(a, b) == meet(b, a)

    def test_associative(self):
        for a, b, c in itertools.product(ALL, ALL, ALL):
            assert meet(meet(a, b), c) == meet(a, meet(b, c))

    def test_meet_is_lower_bound(self):
        for a, b in itertools.product(ALL, ALL):
            m = meet(a, b)
            assert compare(m, a) <= 0 and compare(m, b) <= 0


class TestEffectRange:
    def test_single_bound_fills_other(self):
        r = EffectRange.from_bounds(NO, None)
        assert r.min is NO and r.max is NO
        r = EffectRange.from_bounds(None, MAY)
        assert r.min is MAY and r.max is MAY

    def test_bounds_by_keyword(self):
        r = EffectRange.from_bounds(lo=NO, hi=MAY)
        assert (r.min, r.max) == (NO, MAY)
        assert EffectRange.from_bounds(hi=NO, lo=None) == EffectRange(NO, NO)

    def test_no_bounds_rejected(self):
        with pytest.raises(ValueError):
            EffectRange.from_bounds(None, None)

    def test_conflicting(self):
        assert EffectRange.from_bounds(NO, MAY).conflicting
        assert not EffectRange.from_bounds(MAY, MAY).conflicting

    def test_immutable(self):
        r = EffectRange.from_bounds(NO, MAY)
        with pytest.raises(AttributeError):
            r.min = MAY  # type: ignore[misc]

    def test_str(self):
        assert str(EffectRange.from_bounds(NO, MAY)) == "(NoAlloc, MayAlloc)"
